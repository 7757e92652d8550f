"""Shared fixtures – in-memory SQLite stands in for PostgreSQL."""

import os

# must be set before patient_registry.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from patient_registry.models.database import Base, build_engine, get_db, init_db
from patient_registry.services.encryption import EncryptionService


VALID_CPF = "52998224725"
VALID_CNS = "700000000000005"


def make_form(**overrides):
    """A registration form that passes validation."""
    form = {
        "firstName": "João",
        "lastName": "Silva",
        "dateOfBirth": "1990-05-10",
        "gender": "M",
        "motherName": "Maria Silva",
        "raceColor": "parda",
        "cpf": VALID_CPF,
        "cns": "",
    }
    form.update(overrides)
    return form


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def encryption():
    return EncryptionService()


@pytest.fixture
def client(db_engine):
    """API client whose get_db dependency yields sessions on the test engine."""
    from patient_registry.main import app

    test_session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = test_session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
