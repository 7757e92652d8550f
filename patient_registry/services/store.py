"""
Record store behind the registration flow.

`RecordStore` is the only capability the validation/deduplication core
needs: similarity search, create, update (and a lookup by id for the API).
`SQLAlchemyRecordStore` implements it over the `patients` table;
`create_record_store` picks it or the REST store from settings.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from patient_registry.config import settings
from patient_registry.exceptions import RecordNotFoundError, StoreConflictError, StoreError
from patient_registry.models.patient import Patient
from patient_registry.schemas.api import (
    DuplicateCandidate,
    DuplicateSearchCriteria,
    PatientIdentity,
    StoredRecord,
)
from patient_registry.services.audit import changed_fields, log_action
from patient_registry.services.encryption import EncryptionService
from patient_registry.services.rest_store import RestRecordStore

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    def search(self, criteria: DuplicateSearchCriteria) -> list[DuplicateCandidate]: ...

    def create(self, identity: PatientIdentity) -> StoredRecord: ...

    def update(self, record_id: UUID, identity: PatientIdentity) -> StoredRecord: ...

    def get(self, record_id: UUID) -> StoredRecord: ...


# payload key -> Patient column; everything else goes to Patient.details
COLUMN_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "dateOfBirth": "date_of_birth",
    "gender": "gender",
    "motherName": "mother_name",
    "fatherName": "father_name",
    "rg": "rg",
    "raceColor": "race_color",
    "status": "status",
}
ENCRYPTED_FIELDS = ("cpf", "cns")

_LIKE_ESCAPE = "\\"


def _like_prefix(value: str) -> str:
    escaped = (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"{escaped}%"


class SQLAlchemyRecordStore:
    """Stores patients in the relational database, one transaction per write."""

    def __init__(
        self,
        db: Session,
        encryption: EncryptionService | None = None,
        actor: str = "registration_api",
    ):
        self.db = db
        self.encryption = encryption or _default_encryption()
        self.actor = actor

    # -- mapping ---------------------------------------------------------------

    def _apply(self, patient: Patient, identity: PatientIdentity) -> None:
        payload = identity.model_dump(mode="python", by_alias=True)
        details: dict[str, Any] = {}
        for key, value in payload.items():
            if key in COLUMN_FIELDS:
                if hasattr(value, "value"):
                    value = value.value
                setattr(patient, COLUMN_FIELDS[key], value)
            elif key in ENCRYPTED_FIELDS:
                setattr(patient, f"encrypted_{key}", self.encryption.encrypt(value))
            elif value is not None:
                details[key] = value.value if hasattr(value, "value") else value
        patient.details = details

    def _to_record(self, patient: Patient) -> StoredRecord:
        data: dict[str, Any] = dict(patient.details or {})
        for key, column in COLUMN_FIELDS.items():
            data[key] = getattr(patient, column)
        for key in ENCRYPTED_FIELDS:
            data[key] = self.encryption.decrypt(getattr(patient, f"encrypted_{key}"))
        data.update(
            id=patient.id,
            patientCode=patient.patient_code,
            createdAt=patient.created_at,
            updatedAt=patient.updated_at,
        )
        return StoredRecord.model_validate(data)

    def _to_candidate(self, patient: Patient) -> DuplicateCandidate:
        return DuplicateCandidate(
            id=patient.id,
            patient_code=patient.patient_code,
            first_name=patient.first_name,
            last_name=patient.last_name,
            date_of_birth=patient.date_of_birth,
            mother_name=patient.mother_name,
            cpf=self.encryption.decrypt(patient.encrypted_cpf),
            cns=self.encryption.decrypt(patient.encrypted_cns),
            status=patient.status,
        )

    # -- RecordStore -------------------------------------------------------------

    def search(self, criteria: DuplicateSearchCriteria) -> list[DuplicateCandidate]:
        """Case-insensitive first-name prefix + last name + birth-date range."""
        query = select(Patient)
        if criteria.first_name:
            query = query.where(
                Patient.first_name.ilike(_like_prefix(criteria.first_name.strip()), escape=_LIKE_ESCAPE)
            )
        if criteria.last_name:
            query = query.where(func.lower(Patient.last_name) == criteria.last_name.strip().lower())
        if criteria.date_of_birth_from:
            query = query.where(Patient.date_of_birth >= criteria.date_of_birth_from)
        if criteria.date_of_birth_to:
            query = query.where(Patient.date_of_birth <= criteria.date_of_birth_to)
        query = query.order_by(Patient.last_name, Patient.first_name, Patient.created_at)

        try:
            patients = self.db.scalars(query).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Duplicate search failed: {exc}") from exc
        return [self._to_candidate(p) for p in patients]

    def get(self, record_id: UUID) -> StoredRecord:
        patient = self.db.get(Patient, record_id)
        if patient is None:
            raise RecordNotFoundError(f"Patient {record_id} not found")
        return self._to_record(patient)

    def create(self, identity: PatientIdentity) -> StoredRecord:
        patient = Patient(patient_code=f"P{uuid.uuid4().hex[:8].upper()}")
        self._apply(patient, identity)
        try:
            self.db.add(patient)
            self.db.flush()
            log_action(
                self.db,
                actor=self.actor,
                action="create",
                resource_type="Patient",
                resource_id=patient.id,
                detail={"patientCode": patient.patient_code},
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StoreConflictError(f"Patient conflicts with an existing record: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"Could not create patient: {exc}") from exc

        self.db.refresh(patient)
        logger.info("Created patient %s", patient.patient_code)
        return self._to_record(patient)

    def update(self, record_id: UUID, identity: PatientIdentity) -> StoredRecord:
        patient = self.db.get(Patient, record_id)
        if patient is None:
            raise RecordNotFoundError(f"Patient {record_id} not found")

        before = self._to_record(patient).model_dump(
            mode="json", by_alias=True, exclude_none=True, include=set(PatientIdentity.model_fields)
        )
        after = identity.to_payload()
        self._apply(patient, identity)
        try:
            self.db.flush()
            log_action(
                self.db,
                actor=self.actor,
                action="update",
                resource_type="Patient",
                resource_id=patient.id,
                detail={"changed": changed_fields(before, after)},
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StoreConflictError(f"Patient conflicts with an existing record: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"Could not update patient {record_id}: {exc}") from exc

        self.db.refresh(patient)
        return self._to_record(patient)


_encryption: EncryptionService | None = None


def _default_encryption() -> EncryptionService:
    # one key per process, so records stay readable across stores
    global _encryption
    if _encryption is None:
        _encryption = EncryptionService()
    return _encryption


def create_record_store(db: Session | None = None) -> RecordStore:
    """The store selected by RECORD_STORE_BACKEND ("sql" needs a session)."""
    backend = settings.RECORD_STORE_BACKEND
    if backend == "rest":
        return RestRecordStore()
    if backend == "sql":
        if db is None:
            raise ValueError("The sql record store needs a database session")
        return SQLAlchemyRecordStore(db)
    raise ValueError(f"Unknown record store backend: {backend}")
