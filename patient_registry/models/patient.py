"""
Relational model for registered patients.

- Identity fields used by the duplicate search (names, date of birth) are
  stored in plain text so they can be queried.
- National documents (CPF, CNS) are PHI and stored encrypted.
- Every write leaves an audit trail.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

from patient_registry.models.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Patient – registration record (contains PHI)
# ---------------------------------------------------------------------------
class Patient(Base):
    __tablename__ = "patients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_code = Column(String(16), unique=True, nullable=False, comment="System-generated code")

    # Identification – plain text, searched for duplicates
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(16), nullable=False)
    mother_name = Column(String(200), nullable=False)
    father_name = Column(String(200))

    # PHI documents – encrypted at rest
    encrypted_cpf = Column(Text, nullable=True, comment="Fernet-encrypted CPF digits")
    encrypted_cns = Column(Text, nullable=True, comment="Fernet-encrypted CNS digits")
    rg = Column(String(20))

    # Demographics / address / clinical – the rest of the form
    race_color = Column(String(32), nullable=False)
    details = Column(
        JSON().with_variant(JSONB, "postgresql"),
        default=dict,
        comment="Remaining optional registration fields (camelCase keys)",
    )

    status = Column(String(16), default="active", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_patients_identity", "last_name", "first_name", "date_of_birth"),
    )


# ---------------------------------------------------------------------------
# Audit Log – immutable compliance trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="create | read | update | delete")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(Uuid, nullable=False)
    detail = Column(JSON().with_variant(JSONB, "postgresql"), comment="Diff or context for the action")
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)
