"""Vault exceptions.

``DecryptionError`` is deliberately uniform: it never says which envelope
layer failed. Structural problems found before any cryptographic operation
raise ``InvalidFieldError`` instead.
"""


class VaultError(Exception):
    """Base class for all Secure-TX errors."""


class ConfigurationError(VaultError, RuntimeError):
    """Master key (or other required setting) is absent or malformed."""


class InvalidPayloadError(VaultError, ValueError):
    """Encrypt input cannot be sealed (empty party id, non-JSON payload)."""


class InvalidFieldError(VaultError, ValueError):
    """A stored record field failed the pre-crypto structural check."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DecryptionError(VaultError):
    """Authentication failed at the wrap or payload layer."""

    default_message = "Decryption failed: data may be tampered or invalid"

    def __init__(self, message: str = default_message):
        super().__init__(message)


class RecordNotFound(VaultError, KeyError):
    """No record is stored under the requested id."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"Record not found: {self.record_id}"
