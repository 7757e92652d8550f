"""Tests for duplicate-candidate search gating – a mock store, no database."""

from datetime import date
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from patient_registry.exceptions import StoreError
from patient_registry.schemas.api import DuplicateCandidate
from patient_registry.services.duplicates import (
    DuplicateQuery,
    build_criteria,
    find_duplicate_candidates,
)


def _candidate(first="João", status="active"):
    return DuplicateCandidate(
        id=uuid4(),
        first_name=first,
        last_name="Silva",
        date_of_birth=date(1990, 5, 10),
        status=status,
    )


@pytest.fixture
def store():
    mock = MagicMock()
    mock.search.return_value = []
    return mock


@pytest.mark.parametrize("first,last,born", [
    ("J", "Silva", "1990-05-10"),
    ("João", "S", "1990-05-10"),
    ("João", "Silva", ""),
    (" J ", "Silva", "1990-05-10"),
])
def test_short_or_incomplete_input_never_searches(store, first, last, born):
    assert find_duplicate_candidates(store, first, last, born) == []
    store.search.assert_not_called()


def test_edit_mode_never_searches(store):
    assert find_duplicate_candidates(store, "João", "Silva", "1990-05-10", editing=True) == []
    store.search.assert_not_called()


def test_unparseable_birth_date_never_searches(store):
    assert find_duplicate_candidates(store, "João", "Silva", "10/05/1990") == []
    store.search.assert_not_called()


def test_candidates_returned_in_store_order(store):
    first, second = _candidate("Joana"), _candidate("João", status="deceased")
    store.search.return_value = [first, second]

    found = find_duplicate_candidates(store, "Jo", "Silva", "1990-05-10")

    assert found == [first, second]
    criteria = store.search.call_args.args[0]
    assert criteria.first_name == "Jo"
    assert criteria.last_name == "Silva"
    assert criteria.date_of_birth_from == criteria.date_of_birth_to == date(1990, 5, 10)
    assert second.status_label == "Falecido"


def test_store_failure_degrades_to_no_candidates(store, caplog):
    store.search.side_effect = StoreError("connection refused")

    assert find_duplicate_candidates(store, "João", "Silva", "1990-05-10") == []
    assert "Duplicate search failed" in caplog.text


def test_birth_date_tolerance_widens_range():
    criteria = build_criteria(DuplicateQuery("João", "Silva", "1990-05-10"), tolerance_days=2)
    assert criteria.date_of_birth_from == date(1990, 5, 8)
    assert criteria.date_of_birth_to == date(1990, 5, 12)


def test_explicit_range_overrides_tolerance():
    criteria = build_criteria(
        DuplicateQuery("João", "Silva", "1990-05-10"),
        date_of_birth_to=date(1990, 6, 1),
        tolerance_days=5,
    )
    assert criteria.date_of_birth_from == date(1990, 5, 10)
    assert criteria.date_of_birth_to == date(1990, 6, 1)
