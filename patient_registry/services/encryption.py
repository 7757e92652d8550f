"""
Application-layer encryption for national document numbers (CPF, CNS).

The key comes from PHI_ENCRYPTION_KEY. Without one, an ephemeral key is
generated, which is only good for development and tests: anything encrypted
with it is unreadable after a restart.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

from patient_registry.config import settings

logger = logging.getLogger(__name__)


class EncryptionService:
    """Wraps Fernet symmetric encryption for PHI fields."""

    def __init__(self, key: str | bytes | None = None):
        raw_key = key or settings.PHI_ENCRYPTION_KEY
        if not raw_key:
            logger.warning("PHI_ENCRYPTION_KEY not set – using an ephemeral key")
            raw_key = Fernet.generate_key()
        self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)

    def encrypt(self, plaintext: str | None) -> str | None:
        """Encrypt a document number; empty values are stored as NULL."""
        if not plaintext:
            return None
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str | None) -> str | None:
        if not ciphertext:
            return None
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            raise ValueError("Document ciphertext does not match the configured key") from exc
