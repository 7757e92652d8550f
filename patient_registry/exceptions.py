"""Exception hierarchy for the patient registry.

Field validation problems are never raised; they are returned as data. These
exceptions cover failures of the record store behind the registration flow.
"""


class PatientRegistryError(Exception):
    """Base class for all patient registry errors."""


class StoreError(PatientRegistryError):
    """The record store rejected or could not complete an operation.

    Examples:
        - Connection refused / timeout talking to the patients API
        - Database error while writing the record
    """


class RecordNotFoundError(StoreError):
    """No record exists with the requested id."""


class StoreConflictError(StoreError):
    """The write conflicts with an existing record (e.g. duplicate patient code)."""
