"""Record store backed by a remote patients REST API.

Speaks the same endpoints this service exposes under /api/v1, so one
registry instance can front another (e.g. a reception kiosk talking to the
hospital's central registry). Selected with RECORD_STORE_BACKEND=rest.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import requests

from patient_registry.config import settings
from patient_registry.exceptions import RecordNotFoundError, StoreConflictError, StoreError
from patient_registry.schemas.api import (
    DuplicateCandidate,
    DuplicateSearchCriteria,
    PatientIdentity,
    StoredRecord,
)

logger = logging.getLogger(__name__)


class RestRecordStore:
    """RecordStore over HTTP.

    Attributes:
        base_url: API root, e.g. ``http://registry:8000/api/v1``.
        timeout: Seconds allowed per request (connect + read).
        session: ``requests.Session`` reused across calls.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or settings.RECORD_STORE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise StoreError(f"{method} {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise StoreError(f"{method} {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise RecordNotFoundError(f"{method} {url}: not found")
        if response.status_code == 409:
            raise StoreConflictError(f"{method} {url}: {response.text}")
        if response.status_code >= 400:
            logger.error("Store responded %s for %s %s", response.status_code, method, url)
            raise StoreError(f"{method} {url} returned HTTP {response.status_code}: {response.text}")
        return response.json()

    def search(self, criteria: DuplicateSearchCriteria) -> list[DuplicateCandidate]:
        params = {
            "firstName": criteria.first_name,
            "lastName": criteria.last_name,
        }
        if criteria.date_of_birth_from:
            params["dateOfBirth"] = criteria.date_of_birth_from.isoformat()
        if criteria.date_of_birth_to:
            params["dateOfBirthTo"] = criteria.date_of_birth_to.isoformat()
        data = self._request("GET", "/patients/search/duplicates", params=params)
        return [DuplicateCandidate.model_validate(item) for item in data]

    def get(self, record_id: UUID) -> StoredRecord:
        return StoredRecord.model_validate(self._request("GET", f"/patients/{record_id}"))

    def create(self, identity: PatientIdentity) -> StoredRecord:
        data = self._request("POST", "/patients", json=identity.to_payload())
        return StoredRecord.model_validate(data)

    def update(self, record_id: UUID, identity: PatientIdentity) -> StoredRecord:
        data = self._request("PUT", f"/patients/{record_id}", json=identity.to_payload())
        return StoredRecord.model_validate(data)
