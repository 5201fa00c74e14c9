"""
Vault Configuration — Master key loading and validated settings.

Reads the master key from the environment in the format:
    MASTER_KEY_HEX = <64 hex characters (32-byte key)>

There is no default key. A missing or malformed key is a fatal
configuration error and encrypt/decrypt must not run.

Security Note:
    Never log key material. Only log the key version.
"""
import os
import secrets
import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..conf import (
    MASTER_KEY_ENV,
    STORE_BACKEND_ENV,
    STORE_PATH_ENV,
    DATABASE_URL_ENV,
    HOST_ENV,
    PORT_ENV,
    CORS_ORIGIN_ENV,
    DEFAULT_STORE_BACKEND,
    DEFAULT_STORE_PATH,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from .crypto import KEY_LENGTH, is_hex
from .exceptions import ConfigurationError
from .records import MASTER_KEY_VERSION

logger = logging.getLogger("secure_tx.vault")


def parse_master_key(value: Optional[str]) -> bytes:
    """Decode a 64-char hex master key.

    Raises:
        ConfigurationError: If value is missing, not hex, or not 32 bytes.
    """
    if not value:
        raise ConfigurationError(
            f"{MASTER_KEY_ENV} is not set. "
            f"Set {MASTER_KEY_ENV}=<64 hex characters (32 bytes)>"
        )
    value = value.strip()
    if not is_hex(value, KEY_LENGTH * 2):
        raise ConfigurationError(
            f"{MASTER_KEY_ENV} must be {KEY_LENGTH * 2} hex characters "
            f"({KEY_LENGTH} bytes), got {len(value)} characters"
        )
    return bytes.fromhex(value)


def load_master_key() -> bytes:
    """Load the master key from the MASTER_KEY_HEX environment variable.

    Returns:
        Raw 32-byte master key.

    Raises:
        ConfigurationError: If the variable is absent or malformed.
    """
    key = parse_master_key(os.environ.get(MASTER_KEY_ENV))
    logger.debug("Loaded master key version %d", MASTER_KEY_VERSION)
    return key


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return it as hex.

    This is a utility for operators to generate new keys.
    """
    return secrets.token_hex(KEY_LENGTH)


class VaultConfig(BaseModel):
    """Validated Secure-TX configuration."""

    master_key: bytes = Field(repr=False)
    mk_version: int = Field(default=MASTER_KEY_VERSION)
    store_backend: Literal["memory", "json", "postgres"] = DEFAULT_STORE_BACKEND
    store_path: str = Field(default=DEFAULT_STORE_PATH, min_length=1)
    database_url: Optional[str] = Field(default=None, repr=False)
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    cors_origin: Optional[str] = None

    @field_validator("master_key")
    @classmethod
    def validate_master_key(cls, v: bytes) -> bytes:
        """Master key must be exactly 32 bytes."""
        if len(v) != KEY_LENGTH:
            raise ValueError(
                f"master_key must be exactly {KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @field_validator("mk_version")
    @classmethod
    def validate_mk_version(cls, v: int) -> int:
        """Only the static key version is supported."""
        if v != MASTER_KEY_VERSION:
            raise ValueError(f"Unsupported master key version: {v}")
        return v

    @model_validator(mode="after")
    def validate_database_url(self) -> "VaultConfig":
        """Postgres backend needs a connection string."""
        if self.store_backend == "postgres" and not self.database_url:
            raise ValueError(
                f"{DATABASE_URL_ENV} is required when store_backend is 'postgres'"
            )
        return self

    @classmethod
    def from_env(cls, master_key: Optional[bytes] = None) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Args:
            master_key: Raw key to use instead of MASTER_KEY_HEX.

        Raises:
            ConfigurationError: If the master key or any setting is invalid.
        """
        if master_key is None:
            master_key = load_master_key()
        try:
            return cls(
                master_key=master_key,
                store_backend=os.environ.get(STORE_BACKEND_ENV, DEFAULT_STORE_BACKEND),
                store_path=os.environ.get(STORE_PATH_ENV, DEFAULT_STORE_PATH),
                database_url=os.environ.get(DATABASE_URL_ENV),
                host=os.environ.get(HOST_ENV, DEFAULT_HOST),
                port=os.environ.get(PORT_ENV, DEFAULT_PORT),
                cors_origin=os.environ.get(CORS_ORIGIN_ENV) or None,
            )
        except ValidationError as err:
            raise ConfigurationError(f"Invalid Secure-TX configuration: {err}") from err
