"""Envelope Vault — AES-256-GCM envelope encryption for JSON payloads.

Security Note (Threat Model):
    The master key is held in process memory for the process lifetime and
    every DEK exists in memory for the duration of a single call. A memory
    dump of the process exposes the master key and thus every record.
    Mitigation requires HSM integration which is out of scope.
"""

from .config import VaultConfig, load_master_key, parse_master_key, generate_master_key
from .envelope import encrypt_record, decrypt_record, validate_record
from .exceptions import (
    VaultError,
    ConfigurationError,
    InvalidPayloadError,
    InvalidFieldError,
    DecryptionError,
    RecordNotFound,
)
from .records import SecureRecord

__all__ = [
    "VaultConfig",
    "load_master_key",
    "parse_master_key",
    "generate_master_key",
    "encrypt_record",
    "decrypt_record",
    "validate_record",
    "VaultError",
    "ConfigurationError",
    "InvalidPayloadError",
    "InvalidFieldError",
    "DecryptionError",
    "RecordNotFound",
    "SecureRecord",
]
