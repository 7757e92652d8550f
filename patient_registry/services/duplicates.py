"""
Duplicate-candidate search for patient registration.

Detection is advisory: it decides *when* the store is asked for similar
patients and never blocks registration on its own failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from patient_registry.config import settings
from patient_registry.schemas.api import DuplicateCandidate, DuplicateSearchCriteria
from patient_registry.services.documents import parse_date
from patient_registry.services.store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateQuery:
    """The identity fields watched for duplicates, as typed by the user."""

    first_name: str
    last_name: str
    date_of_birth: str

    def is_searchable(self, min_name_length: int | None = None) -> bool:
        min_len = min_name_length or settings.DUPLICATE_SEARCH_MIN_NAME_LENGTH
        return (
            len(self.first_name.strip()) >= min_len
            and len(self.last_name.strip()) >= min_len
            and bool(self.date_of_birth.strip())
        )


def build_criteria(
    query: DuplicateQuery,
    date_of_birth_to: date | None = None,
    tolerance_days: int | None = None,
) -> DuplicateSearchCriteria | None:
    """Store criteria for `query`, or None when the birth date does not parse."""
    born = parse_date(query.date_of_birth)
    if born is None:
        return None
    if date_of_birth_to is not None:
        start, end = born, date_of_birth_to
    else:
        if tolerance_days is None:
            tolerance_days = settings.DUPLICATE_SEARCH_DOB_TOLERANCE_DAYS
        start = born - timedelta(days=tolerance_days)
        end = born + timedelta(days=tolerance_days)
    return DuplicateSearchCriteria(
        first_name=query.first_name.strip(),
        last_name=query.last_name.strip(),
        date_of_birth_from=start,
        date_of_birth_to=end,
    )


def find_duplicate_candidates(
    store: RecordStore,
    first_name: str,
    last_name: str,
    date_of_birth: str,
    *,
    editing: bool = False,
    date_of_birth_to: date | None = None,
    tolerance_days: int | None = None,
) -> list[DuplicateCandidate]:
    """
    Ask the store for patients similar to the one being registered.

    Returns [] without touching the store when the names are too short, the
    birth date is missing, or an existing record is being edited (a record
    is never a duplicate of itself). Store failures are logged and also
    yield [].
    """
    if editing:
        return []
    query = DuplicateQuery(first_name or "", last_name or "", date_of_birth or "")
    if not query.is_searchable():
        return []
    criteria = build_criteria(query, date_of_birth_to, tolerance_days)
    if criteria is None:
        return []

    try:
        candidates = list(store.search(criteria))
    except Exception as exc:
        logger.warning("Duplicate search failed, continuing without candidates: %s", exc)
        return []

    if candidates:
        logger.info("Duplicate search: %d possible duplicate(s)", len(candidates))
    return candidates
