"""
JSON schema for the patient registration form.

The schema is the single contract for every screen that registers or edits a
patient. Each property carries an `errorMessages` map (JSON-Schema keyword ->
message shown next to the field); validators ignore unknown keywords, so the
schema itself stays valid Draft-7.

Mandatory text fields are expressed with `minLength` and mandatory codes with
`enum` because the form always submits every key (see PATIENT_FORM_DEFAULTS).
Document checks use custom formats registered in services/validation.py.
"""

from __future__ import annotations

from typing import Any

from patient_registry.models.enums import (
    BLOOD_TYPES,
    EducationLevel,
    Gender,
    MaritalStatus,
    PatientStatus,
    RaceColor,
)

NAME_PATTERN = "^[A-Za-zÀ-ÿ\\s'-]+$"
OPTIONAL_NAME_PATTERN = "^[A-Za-zÀ-ÿ\\s'-]*$"
DOCUMENT_PATTERN = "^[\\d\\s.-]*$"

CPF_OR_CNS_REQUIRED = "CPF or CNS (SUS card) is required"


def _text(max_length: int, label: str) -> dict[str, Any]:
    return {
        "type": "string",
        "maxLength": max_length,
        "errorMessages": {"maxLength": f"{label} is too long"},
    }


def _name(label: str, min_length: int, max_length: int, min_message: str) -> dict[str, Any]:
    return {
        "type": "string",
        "minLength": min_length,
        "maxLength": max_length,
        "pattern": NAME_PATTERN,
        "errorMessages": {
            "minLength": min_message,
            "maxLength": f"{label} is too long",
            "pattern": f"{label} contains invalid characters",
        },
    }


def _optional_enum(values: list[str], message: str) -> dict[str, Any]:
    return {
        "type": "string",
        "enum": [*values, ""],
        "errorMessages": {"enum": message},
    }


def _optional_format(fmt: str, message: str) -> dict[str, Any]:
    return {"type": "string", "format": fmt, "errorMessages": {"format": message}}


def build_patient_form_schema(enforce_cns_checksum: bool = True) -> dict:
    """Build the registration schema.

    `enforce_cns_checksum=False` relaxes CNS to the length-only rule
    (at most 15 digits) used by older registration screens.
    """
    if enforce_cns_checksum:
        cns_rule = _optional_format("cns", "Invalid CNS (SUS card)")
    else:
        # digits, spaces and mask punctuation only; checked before the length
        cns_rule = {
            "type": "string",
            "pattern": DOCUMENT_PATTERN,
            "format": "cns-length",
            "errorMessages": {
                "pattern": "CNS must contain only digits",
                "format": "CNS must have at most 15 digits",
            },
        }

    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": "Patient registration form",
        "description": "Essential patient data, including the fields required by the death certificate.",
        "type": "object",
        "properties": {
            # -- identification ------------------------------------------------
            "firstName": _name("First name", 2, 100, "First name must have at least 2 characters"),
            "lastName": _name("Last name", 2, 100, "Last name must have at least 2 characters"),
            "dateOfBirth": {
                "type": "string",
                "minLength": 1,
                "format": "date-of-birth",
                "errorMessages": {
                    "minLength": "Date of birth is required",
                    "format": "Invalid date of birth (cannot be in the future, maximum age 150 years)",
                },
            },
            "gender": {
                "type": "string",
                "enum": [g.value for g in Gender],
                "errorMessages": {"enum": "Select a gender"},
            },
            # -- family (mother's name is mandatory for the death certificate) --
            "motherName": _name(
                "Mother's name", 5, 200, "Mother's name is required (at least 5 characters)"
            ),
            "fatherName": {
                "type": "string",
                "maxLength": 200,
                "pattern": OPTIONAL_NAME_PATTERN,
                "errorMessages": {
                    "maxLength": "Father's name is too long",
                    "pattern": "Father's name contains invalid characters",
                },
            },
            # -- documents -----------------------------------------------------
            "cpf": _optional_format("cpf", "Invalid CPF"),
            "cns": cns_rule,
            "rg": _text(20, "RG"),
            # -- birthplace ----------------------------------------------------
            "birthCity": _text(100, "Birth city"),
            "birthState": _text(2, "Birth state (UF)"),
            "birthCountry": _text(100, "Birth country"),
            # -- contact -------------------------------------------------------
            "phone": _optional_format("br-phone", "Invalid phone (format: (00) 00000-0000)"),
            "email": _optional_format("email-address", "Invalid e-mail"),
            # -- address -------------------------------------------------------
            "zipCode": _optional_format("cep", "Invalid CEP (format: 00000-000)"),
            "address": _text(200, "Address"),
            "addressNumber": _text(10, "Address number"),
            "addressComplement": _text(100, "Address complement"),
            "neighborhood": _text(100, "Neighborhood"),
            "city": _text(100, "City"),
            "state": _text(2, "State (UF)"),
            # -- demographics / socioeconomic ----------------------------------
            "raceColor": {
                "type": "string",
                "enum": [r.value for r in RaceColor],
                "errorMessages": {"enum": "Select race/colour"},
            },
            "maritalStatus": _optional_enum(
                [m.value for m in MaritalStatus], "Invalid marital status"
            ),
            "educationLevel": _optional_enum(
                [e.value for e in EducationLevel], "Invalid education level"
            ),
            "occupation": _text(100, "Occupation"),
            "occupationCboCode": _text(10, "CBO code"),
            # -- clinical ------------------------------------------------------
            "bloodType": _optional_enum(list(BLOOD_TYPES), "Invalid blood type"),
            "allergies": _text(1000, "Allergies text"),
            "medicalHistory": _text(2000, "Medical history"),
            "status": {
                "type": "string",
                "enum": [s.value for s in PatientStatus],
                "errorMessages": {"enum": "Invalid status"},
            },
        },
    }


PATIENT_FORM_DEFAULTS: dict[str, str] = {
    "firstName": "",
    "lastName": "",
    "dateOfBirth": "",
    "gender": Gender.UNKNOWN.value,
    "motherName": "",
    "fatherName": "",
    "cpf": "",
    "cns": "",
    "rg": "",
    "birthCity": "",
    "birthState": "",
    "birthCountry": "Brasil",
    "phone": "",
    "email": "",
    "zipCode": "",
    "address": "",
    "addressNumber": "",
    "addressComplement": "",
    "neighborhood": "",
    "city": "",
    "state": "",
    "raceColor": RaceColor.UNKNOWN.value,
    "maritalStatus": MaritalStatus.UNKNOWN.value,
    "educationLevel": EducationLevel.UNKNOWN.value,
    "occupation": "",
    "occupationCboCode": "",
    "bloodType": "",
    "allergies": "",
    "medicalHistory": "",
    "status": PatientStatus.ACTIVE.value,
}

PATIENT_FORM_FIELDS = tuple(PATIENT_FORM_DEFAULTS)
