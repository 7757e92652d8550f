"""
Schema-driven validation of the patient registration form.

- Every violated rule is collected (never fail-fast) so the form can show
  all errors at once.
- Each field reports only its first violated rule.
- The CPF-or-CNS rule is a record-level rule, reported on the `cpf` field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import Any, Callable, Mapping

import jsonschema
from pydantic import ValidationError

from patient_registry.config import settings
from patient_registry.schemas.api import PatientIdentity
from patient_registry.schemas.patient_form import (
    CPF_OR_CNS_REQUIRED,
    PATIENT_FORM_DEFAULTS,
    build_patient_form_schema,
)
from patient_registry.services.documents import (
    remove_formatting,
    validate_cep,
    validate_cns,
    validate_cpf,
    validate_date_of_birth,
    validate_email,
    validate_phone,
)

RECORD_LEVEL_FIELD = "cpf"

format_checker = jsonschema.FormatChecker(formats=())


def _optional(check: Callable[[str], bool]) -> Callable[[object], bool]:
    """Empty values pass; mandatory fields are enforced with minLength/enum."""

    def wrapped(instance: object) -> bool:
        if not isinstance(instance, str) or instance.strip() == "":
            return True
        return check(instance)

    return wrapped


format_checker.checks("cpf")(_optional(validate_cpf))
format_checker.checks("cns")(_optional(validate_cns))
format_checker.checks("cns-length")(_optional(lambda v: 0 < len(remove_formatting(v)) <= 15))
format_checker.checks("cep")(_optional(validate_cep))
format_checker.checks("br-phone")(_optional(validate_phone))
format_checker.checks("email-address")(_optional(validate_email))
format_checker.checks("date-of-birth")(_optional(validate_date_of_birth))


@dataclass
class FormValidationResult:
    """Field name -> first error message for that field."""

    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        # first violated rule wins
        self.errors.setdefault(field_name, message)


def _cpf_or_cns_present(form: Mapping[str, Any]) -> str | None:
    has_cpf = bool(str(form.get("cpf") or "").strip())
    has_cns = bool(str(form.get("cns") or "").strip())
    if has_cpf or has_cns:
        return None
    return CPF_OR_CNS_REQUIRED


# (field the error is shown on, rule returning a message or None)
RECORD_RULES: list[tuple[str, Callable[[Mapping[str, Any]], str | None]]] = [
    (RECORD_LEVEL_FIELD, _cpf_or_cns_present),
]


def prepare_form(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Fill in defaults for missing keys and coerce None/dates to strings.

    Strings are trimmed, so the rules see what `PatientIdentity.from_form`
    will store: a name of only spaces is an empty name.
    """
    form: dict[str, Any] = dict(PATIENT_FORM_DEFAULTS)
    for key, value in (values or {}).items():
        if value is None:
            value = ""
        elif isinstance(value, date):
            value = value.isoformat()
        elif hasattr(value, "value") and isinstance(value.value, str):
            value = value.value  # enum members
        elif isinstance(value, str):
            value = value.strip()
        form[key] = value
    return form


@lru_cache(maxsize=2)
def _form_validator(enforce_cns_checksum: bool) -> jsonschema.Draft7Validator:
    schema = build_patient_form_schema(enforce_cns_checksum)
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema, format_checker=format_checker)


def validate_patient_form(
    values: Mapping[str, Any] | None,
    *,
    enforce_cns_checksum: bool | None = None,
) -> FormValidationResult:
    """Run every field rule and every record-level rule over the form."""
    if enforce_cns_checksum is None:
        enforce_cns_checksum = settings.CNS_CHECKSUM_ENFORCED
    form = prepare_form(values)
    validator = _form_validator(enforce_cns_checksum)
    result = FormValidationResult()

    for error in validator.iter_errors(form):
        if not error.path:
            continue
        field_name = str(error.path[0])
        messages = error.schema.get("errorMessages", {}) if isinstance(error.schema, dict) else {}
        result.add(field_name, messages.get(error.validator, "Invalid value"))

    for field_name, rule in RECORD_RULES:
        message = rule(form)
        if message:
            result.add(field_name, message)

    return result


def build_identity(
    values: Mapping[str, Any] | None,
) -> tuple[PatientIdentity | None, FormValidationResult]:
    """
    Validate the form and normalize it into the payload the store receives.

    The identity is None whenever the result carries errors. Anything the
    normalized model still rejects is reported as a field error, never raised.
    """
    result = validate_patient_form(values)
    if not result.is_valid:
        return None, result
    try:
        return PatientIdentity.from_form(prepare_form(values)), result
    except ValidationError as exc:
        for error in exc.errors():
            field_name = str(error["loc"][0]) if error["loc"] else RECORD_LEVEL_FIELD
            result.add(field_name, "Invalid value")
        return None, result
