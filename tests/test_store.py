"""Tests for the SQLAlchemy record store (in-memory SQLite)."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from conftest import VALID_CNS, VALID_CPF, make_form
from patient_registry.config import settings
from patient_registry.exceptions import RecordNotFoundError
from patient_registry.models.enums import PatientStatus
from patient_registry.models.patient import AuditLog, Patient
from patient_registry.schemas.api import DuplicateSearchCriteria, PatientIdentity
from patient_registry.services.rest_store import RestRecordStore
from patient_registry.services.store import SQLAlchemyRecordStore, create_record_store


@pytest.fixture
def store(db_session, encryption):
    return SQLAlchemyRecordStore(db_session, encryption=encryption, actor="test")


def _identity(**overrides):
    return PatientIdentity.from_form(make_form(**overrides))


def _criteria(first="João", last="Silva", born=date(1990, 5, 10)):
    return DuplicateSearchCriteria(
        first_name=first, last_name=last, date_of_birth_from=born, date_of_birth_to=born
    )


def test_create_assigns_code_and_round_trips(store):
    record = store.create(_identity(phone="(11) 98765-4321", maritalStatus="casado"))

    assert record.patient_code.startswith("P")
    assert len(record.patient_code) == 9
    assert record.first_name == "João"
    assert record.cpf == VALID_CPF
    assert record.phone == "11987654321"
    assert record.marital_status == "casado"
    assert record.created_at is not None

    assert store.get(record.id) == record


def test_documents_encrypted_at_rest(store, db_session):
    record = store.create(_identity(cns=VALID_CNS))
    row = db_session.get(Patient, record.id)

    assert row.encrypted_cpf and VALID_CPF not in row.encrypted_cpf
    assert row.encrypted_cns and VALID_CNS not in row.encrypted_cns
    assert "cpf" not in row.details


def test_create_writes_audit_entry_without_documents(store, db_session):
    record = store.create(_identity())
    entries = db_session.scalars(select(AuditLog)).all()

    assert len(entries) == 1
    assert entries[0].action == "create"
    assert entries[0].actor == "test"
    assert entries[0].resource_id == record.id
    assert VALID_CPF not in str(entries[0].detail)


def test_search_matches_prefix_case_insensitively(store):
    joao = store.create(_identity())
    store.create(_identity(firstName="Pedro"))
    store.create(_identity(dateOfBirth="1991-05-10"))

    found = store.search(_criteria(first="jo", last="SILVA"))

    assert [c.id for c in found] == [joao.id]
    assert found[0].cpf == VALID_CPF
    assert found[0].status == PatientStatus.ACTIVE


def test_search_orders_by_name_then_creation(store):
    second = store.create(_identity(firstName="Joana"))
    first = store.create(_identity(firstName="Joana"))
    third = store.create(_identity(firstName="João"))

    found = store.search(_criteria(first="Jo"))

    assert [c.id for c in found] == [second.id, first.id, third.id]


def test_search_date_range(store):
    store.create(_identity(dateOfBirth="1990-05-09"))
    store.create(_identity(dateOfBirth="1990-05-12"))

    criteria = DuplicateSearchCriteria(
        first_name="João",
        last_name="Silva",
        date_of_birth_from=date(1990, 5, 8),
        date_of_birth_to=date(1990, 5, 10),
    )
    found = store.search(criteria)

    assert [c.date_of_birth for c in found] == [date(1990, 5, 9)]


def test_like_wildcards_are_literal(store):
    store.create(_identity())
    assert store.search(_criteria(first="%")) == []
    assert store.search(_criteria(first="J_ão")) == []


def test_update_changes_fields_and_audits(store, db_session):
    record = store.create(_identity())

    updated = store.update(record.id, _identity(lastName="Souza", status="deceased"))

    assert updated.id == record.id
    assert updated.patient_code == record.patient_code
    assert updated.last_name == "Souza"
    assert updated.status == PatientStatus.DECEASED
    entry = db_session.scalars(select(AuditLog).where(AuditLog.action == "update")).one()
    assert entry.detail == {"changed": ["lastName", "status"]}


def test_update_unknown_record(store):
    with pytest.raises(RecordNotFoundError):
        store.update(uuid4(), _identity())


def test_get_unknown_record(store):
    with pytest.raises(RecordNotFoundError):
        store.get(uuid4())


def test_update_audit_names_changed_documents_without_values(store, db_session):
    record = store.create(_identity())

    store.update(record.id, _identity(cpf="111.444.777-35"))

    entry = db_session.scalars(select(AuditLog).where(AuditLog.action == "update")).one()
    assert entry.detail == {"changed": ["cpf"]}
    assert "11144477735" not in str(entry.detail)
    assert VALID_CPF not in str(entry.detail)


def test_store_factory_defaults_to_database(db_session, monkeypatch):
    monkeypatch.setattr(settings, "RECORD_STORE_BACKEND", "sql")
    assert isinstance(create_record_store(db_session), SQLAlchemyRecordStore)
    with pytest.raises(ValueError, match="database session"):
        create_record_store()


def test_store_factory_selects_rest_backend(monkeypatch):
    monkeypatch.setattr(settings, "RECORD_STORE_BACKEND", "rest")
    monkeypatch.setattr(settings, "RECORD_STORE_URL", "http://central:8000/api/v1/")

    store = create_record_store()

    assert isinstance(store, RestRecordStore)
    assert store.base_url == "http://central:8000/api/v1"


def test_store_factory_rejects_unknown_backend(monkeypatch):
    monkeypatch.setattr(settings, "RECORD_STORE_BACKEND", "mongo")
    with pytest.raises(ValueError, match="mongo"):
        create_record_store()
