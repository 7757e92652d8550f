"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

from patient_registry.models.enums import (
    EducationLevel,
    Gender,
    MaritalStatus,
    PatientStatus,
    RaceColor,
    label_for,
)
from patient_registry.services.documents import parse_date, remove_formatting


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Patient identity
# ---------------------------------------------------------------------------

DIGIT_FIELDS = ("cpf", "cns", "zipCode", "phone")


class PatientIdentity(CamelModel):
    """A validated, normalized registration – what the record store receives."""

    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    mother_name: str
    race_color: RaceColor

    father_name: str | None = None
    cpf: str | None = None
    cns: str | None = None
    rg: str | None = None

    birth_city: str | None = None
    birth_state: str | None = None
    birth_country: str | None = None

    phone: str | None = None
    email: str | None = None

    zip_code: str | None = None
    address: str | None = None
    address_number: str | None = None
    address_complement: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None

    marital_status: MaritalStatus | None = None
    education_level: EducationLevel | None = None
    occupation: str | None = None
    occupation_cbo_code: str | None = None

    blood_type: str | None = None
    allergies: str | None = None
    medical_history: str | None = None

    status: PatientStatus = PatientStatus.ACTIVE

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> PatientIdentity:
        """
        Build the store payload from form values that already passed validation:
        strings trimmed, empty optionals dropped, documents reduced to digits.
        """
        cleaned: dict[str, Any] = {}
        for key, value in form.items():
            if isinstance(value, str):
                value = value.strip()
                if key in DIGIT_FIELDS:
                    value = remove_formatting(value)
                if value == "":
                    continue
            cleaned[key] = value
        cleaned["dateOfBirth"] = parse_date(cleaned.get("dateOfBirth"))
        return cls.model_validate(cleaned)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredRecord(PatientIdentity):
    id: UUID
    patient_code: str
    created_at: datetime
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------

class DuplicateSearchCriteria(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth_from: date | None = None
    date_of_birth_to: date | None = None


class DuplicateCandidate(CamelModel):
    """A stored patient similar to the one being registered."""

    id: UUID
    patient_code: str | None = None
    first_name: str
    last_name: str
    date_of_birth: date
    mother_name: str | None = None
    cpf: str | None = None
    cns: str | None = None
    status: PatientStatus = PatientStatus.ACTIVE

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status_label(self) -> str:
        return label_for(self.status)


# ---------------------------------------------------------------------------
# Form validation / health
# ---------------------------------------------------------------------------

class FormValidationResponse(BaseModel):
    valid: bool
    errors: dict[str, str] = {}


class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
