"""
FastAPI application entrypoint.

Run locally:  uvicorn patient_registry.main:app --reload
"""

import logging

from fastapi import FastAPI

from patient_registry.api.routes import router
from patient_registry.config import settings
from patient_registry.models.database import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)

app = FastAPI(
    title="Patient Registry API",
    description=(
        "Patient registration for Brazilian hospitals: CPF/CNS validation, "
        "essential-data rules for the death certificate, and duplicate "
        "detection before a new record is created."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
def on_startup():
    init_db()
