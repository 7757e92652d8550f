"""
Validators and display masks for Brazilian identity documents.

Every function here is pure: no I/O, no hidden state. The checksum rules
must match what the national health-system registries compute, so keep the
arithmetic exactly as written.
"""

from __future__ import annotations

import re
from datetime import date, datetime

MAX_AGE_YEARS = 150

_NON_DIGITS = re.compile(r"\D")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

CNS_DEFINITIVE_PREFIXES = frozenset("12")
CNS_PROVISIONAL_PREFIXES = frozenset("789")


def remove_formatting(value: str) -> str:
    """Strip everything but digits."""
    return _NON_DIGITS.sub("", value or "")


# ---------------------------------------------------------------------------
# Checksummed documents
# ---------------------------------------------------------------------------

def _cpf_check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * (weight_start - i) for i, d in enumerate(digits))
    digit = 11 - (total % 11)
    return 0 if digit >= 10 else digit


def validate_cpf(raw: str) -> bool:
    """CPF: 11 digits, not all identical, two mod-11 check digits."""
    digits = remove_formatting(raw)
    if len(digits) != 11:
        return False
    if len(set(digits)) == 1:
        return False

    if _cpf_check_digit(digits[:9], 10) != int(digits[9]):
        return False
    return _cpf_check_digit(digits[:10], 11) == int(digits[10])


def validate_cns(raw: str) -> bool:
    """
    CNS (Cartão Nacional de Saúde): 15 digits whose weighted sum
    (weights 15..1) is divisible by 11.

    Only definitive (1, 2) and provisional (7, 8, 9) cards exist; any other
    leading digit is rejected before the checksum is looked at.
    """
    digits = remove_formatting(raw)
    if len(digits) != 15:
        return False
    if digits[0] not in CNS_DEFINITIVE_PREFIXES | CNS_PROVISIONAL_PREFIXES:
        return False
    total = sum(int(d) * (15 - i) for i, d in enumerate(digits))
    return total % 11 == 0


# ---------------------------------------------------------------------------
# Format-only checks
# ---------------------------------------------------------------------------

def validate_cep(raw: str) -> bool:
    return len(remove_formatting(raw)) == 8


def validate_phone(raw: str) -> bool:
    # 10 digits for landlines, 11 for mobiles (area code included)
    return len(remove_formatting(raw)) in (10, 11)


def validate_email(raw: str) -> bool:
    return bool(raw) and _EMAIL_RE.fullmatch(raw) is not None


def parse_date(raw: str | date | None) -> date | None:
    """Parse an ISO date (or the date part of an ISO datetime)."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not raw:
        return None
    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def age_in_years(born: date, today: date) -> int:
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return years


def validate_date_of_birth(raw: str | date | None, today: date | None = None) -> bool:
    """A parseable date, not in the future, at most 150 years ago."""
    born = parse_date(raw)
    if born is None:
        return False
    today = today or date.today()
    if born > today:
        return False
    return age_in_years(born, today) <= MAX_AGE_YEARS


# ---------------------------------------------------------------------------
# Display masks (only applied once the digit count is complete)
# ---------------------------------------------------------------------------

def format_cpf(value: str) -> str:
    digits = remove_formatting(value)
    if len(digits) != 11:
        return value
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_cns(value: str) -> str:
    digits = remove_formatting(value)
    if len(digits) != 15:
        return value
    return f"{digits[:3]} {digits[3:7]} {digits[7:11]} {digits[11:]}"


def format_cep(value: str) -> str:
    digits = remove_formatting(value)
    if len(digits) != 8:
        return value
    return f"{digits[:5]}-{digits[5:]}"


def format_phone(value: str) -> str:
    digits = remove_formatting(value)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return value
