"""
Registration workflow: one short-lived state machine per registration attempt.

    EDITING -> VALIDATING -> DUPLICATES_FOUND -> READY -> SUBMITTING -> DONE
                    |               (user resolves)          |
                    +-> EDITING (field errors)               +-> FAILED

- Field validation runs on every change and never blocks typing.
- Changes to the watched identity fields schedule a debounced duplicate
  search; only the most recently issued search may update `duplicates`.
- Submission is gated on validation, then on the user resolving any
  duplicates found, and is a single in-flight operation.
- Store failures land in FAILED with the input kept for a retry.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any
from uuid import UUID

from patient_registry.config import settings
from patient_registry.schemas.api import DuplicateCandidate, PatientIdentity, StoredRecord
from patient_registry.schemas.patient_form import PATIENT_FORM_DEFAULTS
from patient_registry.services.debounce import Debouncer
from patient_registry.services.duplicates import find_duplicate_candidates
from patient_registry.services.store import RecordStore
from patient_registry.services.validation import (
    FormValidationResult,
    build_identity,
    validate_patient_form,
)

logger = logging.getLogger(__name__)

WATCHED_FIELDS = frozenset({"firstName", "lastName", "dateOfBirth"})


class WorkflowState(str, Enum):
    EDITING = "editing"
    VALIDATING = "validating"
    DUPLICATES_FOUND = "duplicates_found"
    READY = "ready"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class DuplicateResolution(str, Enum):
    CONFIRM_NEW = "confirm_new"
    USE_EXISTING = "use_existing"


class RegistrationOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    EXISTING_SELECTED = "existing_selected"


class RegistrationWorkflow:
    """
    Drives one registration (or edit) form against a record store.

    Store calls run in a worker thread and are bounded by `timeout` seconds.
    Use as an async context manager, or call `close()` when the form goes
    away, so no stray duplicate search completes afterwards.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        record_id: UUID | None = None,
        initial: dict[str, Any] | None = None,
        debounce_seconds: float | None = None,
        timeout: float | None = None,
    ):
        self.store = store
        self.record_id = record_id
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS
        if debounce_seconds is None:
            debounce_seconds = settings.DUPLICATE_SEARCH_DEBOUNCE_MS / 1000

        self.form: dict[str, Any] = {**PATIENT_FORM_DEFAULTS, **(initial or {})}
        self.state = WorkflowState.EDITING
        self.errors: dict[str, str] = {}

        self.duplicates: list[DuplicateCandidate] = []
        self.checking_duplicates = False
        self.resolution: DuplicateResolution | None = None
        self.pending_identity: PatientIdentity | None = None

        self.is_submitting = False
        self.submit_error: str | None = None
        self.result: StoredRecord | None = None
        self.selected_record: DuplicateCandidate | None = None
        self.outcome: RegistrationOutcome | None = None

        self._search_generation = 0
        self._debouncer = Debouncer(debounce_seconds, self._run_duplicate_search)

    async def __aenter__(self) -> RegistrationWorkflow:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def editing_existing(self) -> bool:
        return self.record_id is not None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> bool:
        return self.update(**{name: value})

    def update(self, **values: Any) -> bool:
        """
        Apply user input, re-validate, and schedule a duplicate search if needed.

        Returns False, leaving the form untouched, while a submission is in
        flight: the form is locked until the store answers.
        """
        if self.is_submitting:
            logger.warning("Edit ignored: the form is locked while saving")
            return False
        self.form.update(values)
        if self.state != WorkflowState.EDITING:
            # editing reopens the form; a pending duplicate decision is void
            self.pending_identity = None
            self.state = WorkflowState.EDITING
        self.errors = self.validate().errors
        if WATCHED_FIELDS.intersection(values):
            self._schedule_duplicate_search()
        return True

    def validate(self) -> FormValidationResult:
        return validate_patient_form(self.form)

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    def _schedule_duplicate_search(self) -> None:
        self._debouncer.cancel()
        if self.editing_existing:
            return
        first = str(self.form.get("firstName") or "")
        last = str(self.form.get("lastName") or "")
        born = str(self.form.get("dateOfBirth") or "")
        self._search_generation += 1
        self._debouncer.schedule(self._search_generation, first, last, born)

    async def _run_duplicate_search(
        self, generation: int, first_name: str, last_name: str, date_of_birth: str
    ) -> None:
        self.checking_duplicates = True
        try:
            found = await asyncio.wait_for(
                asyncio.to_thread(
                    find_duplicate_candidates,
                    self.store,
                    first_name,
                    last_name,
                    date_of_birth,
                    editing=self.editing_existing,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Duplicate search timed out after %ss", self.timeout)
            found = []
        finally:
            if generation == self._search_generation:
                self.checking_duplicates = False

        if generation != self._search_generation:
            logger.debug("Discarding stale duplicate search #%d", generation)
            return
        self.duplicates = found

    async def wait_for_duplicate_search(self) -> None:
        """Let any fired search finish (pending timers are not forced)."""
        await self._debouncer.drain()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self) -> WorkflowState:
        if self.is_submitting:
            logger.warning("Submit ignored: a submission is already in flight")
            return self.state

        self.state = WorkflowState.VALIDATING
        identity, result = build_identity(self.form)
        self.errors = result.errors
        if identity is None:
            self.state = WorkflowState.EDITING
            return self.state

        if self.duplicates and self.resolution is None and not self.editing_existing:
            self.pending_identity = identity
            self.state = WorkflowState.DUPLICATES_FOUND
            return self.state

        return await self._submit(identity)

    async def confirm_new(self) -> WorkflowState:
        """User confirms this is a different patient despite the similarity."""
        if self.state != WorkflowState.DUPLICATES_FOUND or self.pending_identity is None:
            raise RuntimeError("No duplicate decision is pending")
        self.resolution = DuplicateResolution.CONFIRM_NEW
        return await self._submit(self.pending_identity)

    def select_existing(self, candidate: DuplicateCandidate) -> WorkflowState:
        """User adopts an existing record: abandon this registration and hand it off."""
        if self.state != WorkflowState.DUPLICATES_FOUND:
            raise RuntimeError("No duplicate decision is pending")
        self.resolution = DuplicateResolution.USE_EXISTING
        self.selected_record = candidate
        self.outcome = RegistrationOutcome.EXISTING_SELECTED
        logger.info("Registration abandoned in favour of existing patient %s", candidate.id)
        self._clear()
        self.state = WorkflowState.DONE
        return self.state

    def dismiss_duplicates(self) -> WorkflowState:
        """The duplicate dialog was closed without a decision."""
        if self.state == WorkflowState.DUPLICATES_FOUND:
            self.pending_identity = None
            self.state = WorkflowState.EDITING
        return self.state

    async def _submit(self, identity: PatientIdentity) -> WorkflowState:
        if self.is_submitting:
            logger.warning("Submit ignored: a submission is already in flight")
            return self.state
        self.is_submitting = True
        self.state = WorkflowState.READY
        self.submit_error = None
        try:
            self.state = WorkflowState.SUBMITTING
            if self.editing_existing:
                call = asyncio.to_thread(self.store.update, self.record_id, identity)
            else:
                call = asyncio.to_thread(self.store.create, identity)
            record = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Saving patient timed out after %ss", self.timeout)
            self.submit_error = f"The record store did not answer within {self.timeout:g}s"
            self.state = WorkflowState.FAILED
        except Exception as exc:
            logger.error("Saving patient failed: %s", exc)
            self.submit_error = str(exc) or exc.__class__.__name__
            self.state = WorkflowState.FAILED
        else:
            self.result = record
            self.outcome = (
                RegistrationOutcome.UPDATED if self.editing_existing else RegistrationOutcome.CREATED
            )
            self._clear()
            self.state = WorkflowState.DONE
        finally:
            self.is_submitting = False

        if self.state == WorkflowState.FAILED:
            # the next attempt must be a fresh decision
            self.resolution = None
        return self.state

    def _clear(self) -> None:
        """Reset transient state so the next registration starts clean."""
        self._debouncer.cancel()
        self._search_generation += 1
        self.form = dict(PATIENT_FORM_DEFAULTS)
        self.errors = {}
        self.duplicates = []
        self.checking_duplicates = False
        self.resolution = None
        self.pending_identity = None

    def close(self) -> None:
        """Tear down: no pending or in-flight duplicate search survives the form."""
        self._search_generation += 1
        self._debouncer.close()
