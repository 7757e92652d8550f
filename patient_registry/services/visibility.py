"""
Which optional fields a form shows, as a pure function of its current values.

Kept apart from rendering so the rules can be tested without a UI.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

# Staff registration: clinical roles carry a specialization
CLINICAL_ROLES = frozenset({"Médico", "Enfermeiro", "Fisioterapeuta"})
STAFF_BASE_FIELDS = frozenset(
    {"firstName", "lastName", "role", "phone", "email", "hireDate", "status"}
)

# New attendance: insurance details only for private health plans
INSURANCE_PAYMENT_TYPE = "convenio"
ATTENDANCE_BASE_FIELDS = frozenset({"type", "paymentType", "chiefComplaint"})
INSURANCE_FIELDS = frozenset({"healthInsuranceName", "healthInsuranceNumber"})


def _staff_fields(values: Mapping[str, Any]) -> frozenset[str]:
    if values.get("role") in CLINICAL_ROLES:
        return STAFF_BASE_FIELDS | {"specialization"}
    return STAFF_BASE_FIELDS


def _attendance_fields(values: Mapping[str, Any]) -> frozenset[str]:
    if values.get("paymentType") == INSURANCE_PAYMENT_TYPE:
        return ATTENDANCE_BASE_FIELDS | INSURANCE_FIELDS
    return ATTENDANCE_BASE_FIELDS


FORM_RULES: dict[str, Callable[[Mapping[str, Any]], frozenset[str]]] = {
    "staff": _staff_fields,
    "attendance": _attendance_fields,
}


def visible_fields(form: str, values: Mapping[str, Any]) -> frozenset[str]:
    """Fields of `form` that should be displayed for the given values."""
    try:
        rule = FORM_RULES[form]
    except KeyError:
        raise ValueError(f"Unknown form: {form}") from None
    return rule(values)
