"""Fernet-based field encryption for free-text health log fields.

Notes and free-form values (meal descriptions, symptom notes, doses) are
encrypted before they reach SQLite. Numeric macro columns and timestamps stay
in the clear so per-day aggregation can query them directly.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts and decrypts optional text fields with Fernet.

    ``None`` passes through untouched in both directions, so an absent note
    stays absent rather than becoming an encrypted empty string.

    Usage::

        encryptor = FieldEncryptor(key="...")
        token = encryptor.encrypt("felt queasy after lunch")
        encryptor.decrypt(token)  # "felt queasy after lunch"
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string. Generate with
                 :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, text: str | None) -> str | None:
        """Encrypt a text value to a Fernet token string."""
        if text is None:
            return None
        try:
            return self._fernet.encrypt(text.encode("utf-8")).decode("utf-8")
        except (TypeError, AttributeError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc

    def decrypt(self, token: str | None) -> str | None:
        """Decrypt a Fernet token string back to text.

        Raises:
            EncryptionError: If the token is invalid or the key is wrong.
        """
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded 32-byte Fernet key."""
        return Fernet.generate_key().decode("utf-8")
