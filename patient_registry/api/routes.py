"""
FastAPI routes – patient registration API.

The validation and duplicate-search endpoints back the registration screens
(and the REST record store); create/update always re-validate server side.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from patient_registry.config import settings
from patient_registry.exceptions import RecordNotFoundError, StoreConflictError, StoreError
from patient_registry.models.database import get_db
from patient_registry.models.enums import (
    EducationLevel,
    Gender,
    MaritalStatus,
    PatientStatus,
    RaceColor,
    labels_by_value,
)
from patient_registry.schemas.api import (
    DuplicateCandidate,
    FormValidationResponse,
    HealthResponse,
    PatientIdentity,
    StoredRecord,
)
from patient_registry.services.duplicates import find_duplicate_candidates
from patient_registry.services.store import RecordStore, create_record_store
from patient_registry.services.validation import build_identity, validate_patient_form
from patient_registry.services.visibility import visible_fields

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return create_record_store(db)


def _store_failure(exc: StoreError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail="Patient not found")
    if isinstance(exc, StoreConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    logger.error("Record store failure: %s", exc)
    return HTTPException(status_code=502, detail="Record store unavailable")


def _validated_identity(form: dict[str, Any]) -> PatientIdentity | JSONResponse:
    identity, result = build_identity(form)
    if identity is None:
        return JSONResponse(status_code=422, content={"errors": result.errors})
    return identity


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health endpoint – verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        db_status = "disconnected"
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        database=db_status,
    )


# ---------------------------------------------------------------------------
# Validation and duplicate search
# ---------------------------------------------------------------------------

@router.post("/patients/validate", response_model=FormValidationResponse)
def validate_form(form: dict[str, Any] = Body(...)):
    """Validate a registration form without saving it; returns every error."""
    result = validate_patient_form(form)
    return FormValidationResponse(valid=result.is_valid, errors=result.errors)


@router.get("/patients/search/duplicates", response_model=list[DuplicateCandidate])
def search_duplicates(
    first_name: str = Query("", alias="firstName"),
    last_name: str = Query("", alias="lastName"),
    date_of_birth: str = Query("", alias="dateOfBirth"),
    date_of_birth_to: date | None = Query(None, alias="dateOfBirthTo"),
    store: RecordStore = Depends(get_store),
):
    """Patients similar to the one being registered (empty when input is too short)."""
    return find_duplicate_candidates(
        store,
        first_name,
        last_name,
        date_of_birth,
        date_of_birth_to=date_of_birth_to,
    )


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

@router.post("/patients", response_model=StoredRecord, status_code=201)
def create_patient(form: dict[str, Any] = Body(...), store: RecordStore = Depends(get_store)):
    identity = _validated_identity(form)
    if isinstance(identity, JSONResponse):
        return identity
    try:
        return store.create(identity)
    except StoreError as exc:
        raise _store_failure(exc) from exc


@router.get("/patients/{patient_id}", response_model=StoredRecord)
def get_patient(patient_id: UUID, store: RecordStore = Depends(get_store)):
    try:
        return store.get(patient_id)
    except StoreError as exc:
        raise _store_failure(exc) from exc


@router.put("/patients/{patient_id}", response_model=StoredRecord)
def update_patient(
    patient_id: UUID,
    form: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
):
    identity = _validated_identity(form)
    if isinstance(identity, JSONResponse):
        return identity
    try:
        return store.update(patient_id, identity)
    except StoreError as exc:
        raise _store_failure(exc) from exc


# ---------------------------------------------------------------------------
# Form metadata
# ---------------------------------------------------------------------------

@router.get("/labels")
def list_labels() -> dict[str, dict[str, str]]:
    """Display labels for every coded field."""
    return {
        "gender": labels_by_value(Gender),
        "raceColor": labels_by_value(RaceColor),
        "maritalStatus": labels_by_value(MaritalStatus),
        "educationLevel": labels_by_value(EducationLevel),
        "status": labels_by_value(PatientStatus),
    }


@router.post("/forms/{form_name}/visible-fields")
def form_visible_fields(form_name: str, values: dict[str, Any] = Body(...)):
    try:
        fields = visible_fields(form_name, values)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"fields": sorted(fields)}
