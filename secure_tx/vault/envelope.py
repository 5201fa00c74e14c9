"""
Envelope Encryption — seal JSON payloads into SecureRecords and open them.

Each record gets its own DEK; the DEK is wrapped under the master key.
Opening a record validates every field's structure first, then unwraps the
DEK and decrypts the payload. Any cryptographic failure is reported as one
generic ``DecryptionError`` regardless of the layer that failed.

Security Note:
    Never log plaintext, ciphertext or key material. Only record ids,
    party ids and failure classes are logged.
"""
import logging
from typing import Any

from cryptography.exceptions import InvalidTag

from .crypto import (
    ALGORITHM,
    KEY_LENGTH,
    NONCE_SIZE,
    TAG_SIZE,
    aead_decrypt,
    aead_encrypt,
    deserialize_payload,
    generate_dek,
    generate_record_id,
    is_hex,
    serialize_payload,
    unwrap_dek,
    wrap_dek,
)
from .exceptions import (
    ConfigurationError,
    DecryptionError,
    InvalidFieldError,
    InvalidPayloadError,
)
from .records import MASTER_KEY_VERSION, SecureRecord, utc_timestamp

logger = logging.getLogger("secure_tx.vault")

# (field, exact hex length or None, error message)
_FIELD_RULES = (
    (
        "payload_nonce", NONCE_SIZE * 2,
        "Invalid payload nonce: must be exactly 12 bytes (24 hex characters)",
    ),
    (
        "payload_tag", TAG_SIZE * 2,
        "Invalid payload tag: must be exactly 16 bytes (32 hex characters)",
    ),
    (
        "dek_wrap_nonce", NONCE_SIZE * 2,
        "Invalid DEK wrap nonce: must be exactly 12 bytes (24 hex characters)",
    ),
    (
        "dek_wrap_tag", TAG_SIZE * 2,
        "Invalid DEK wrap tag: must be exactly 16 bytes (32 hex characters)",
    ),
    ("payload_ct", None, "Invalid ciphertext hex"),
    ("dek_wrapped", None, "Invalid wrapped DEK hex"),
)


def _check_master_key(master_key: bytes) -> None:
    if not isinstance(master_key, (bytes, bytearray)) or len(master_key) != KEY_LENGTH:
        raise ConfigurationError(
            f"Master key must be exactly {KEY_LENGTH} bytes"
        )


# ---------------------------------------------------------------------------
# Encrypt
# ---------------------------------------------------------------------------

def encrypt_record(party_id: str, payload: Any, master_key: bytes) -> SecureRecord:
    """Seal a JSON payload into a new SecureRecord.

    Args:
        party_id: Non-empty owner/party tag, stored as-is.
        payload: Any JSON-serializable value.
        master_key: Raw 32-byte master key.

    Returns:
        A new, unpersisted SecureRecord.

    Raises:
        ConfigurationError: If master_key is not 32 bytes.
        InvalidPayloadError: If party_id is empty or payload is not JSON.
    """
    _check_master_key(master_key)
    if not isinstance(party_id, str) or not party_id:
        raise InvalidPayloadError("partyId must be a non-empty string")
    try:
        plaintext = serialize_payload(payload)
    except TypeError as err:
        raise InvalidPayloadError(f"payload is not JSON-serializable: {err}") from err

    dek = generate_dek()
    payload_nonce, payload_ct, payload_tag = aead_encrypt(dek, plaintext)
    wrap_nonce, dek_wrapped, wrap_tag = wrap_dek(dek, bytes(master_key))

    return SecureRecord(
        id=generate_record_id(),
        party_id=party_id,
        created_at=utc_timestamp(),
        payload_nonce=payload_nonce.hex(),
        payload_ct=payload_ct.hex(),
        payload_tag=payload_tag.hex(),
        dek_wrap_nonce=wrap_nonce.hex(),
        dek_wrapped=dek_wrapped.hex(),
        dek_wrap_tag=wrap_tag.hex(),
        alg=ALGORITHM,
        mk_version=MASTER_KEY_VERSION,
    )


# ---------------------------------------------------------------------------
# Decrypt
# ---------------------------------------------------------------------------

def validate_record(record: SecureRecord) -> None:
    """Structural check of every binary field, run before any crypto.

    Raises:
        InvalidFieldError: On the first field that is not well-formed hex
            of the expected size, or on an unsupported alg/mk_version.
    """
    for field, length, message in _FIELD_RULES:
        if not is_hex(getattr(record, field), length):
            raise InvalidFieldError(field, message)
    if record.alg != ALGORITHM:
        raise InvalidFieldError("alg", f"Unsupported algorithm: must be {ALGORITHM}")
    if record.mk_version != MASTER_KEY_VERSION:
        raise InvalidFieldError(
            "mk_version",
            f"Unsupported master key version: must be {MASTER_KEY_VERSION}",
        )


def decrypt_record(record: SecureRecord, master_key: bytes) -> Any:
    """Validate and open a SecureRecord.

    Args:
        record: Record produced by :func:`encrypt_record`.
        master_key: Raw 32-byte master key.

    Returns:
        The original JSON value.

    Raises:
        ConfigurationError: If master_key is not 32 bytes.
        InvalidFieldError: If a field fails the structural check.
        DecryptionError: If authentication fails at either layer or the
            plaintext is not UTF-8 JSON.
    """
    _check_master_key(master_key)
    validate_record(record)

    try:
        dek = unwrap_dek(
            bytes.fromhex(record.dek_wrap_nonce),
            bytes.fromhex(record.dek_wrapped),
            bytes.fromhex(record.dek_wrap_tag),
            bytes(master_key),
        )
        plaintext = aead_decrypt(
            dek,
            bytes.fromhex(record.payload_nonce),
            bytes.fromhex(record.payload_ct),
            bytes.fromhex(record.payload_tag),
        )
        return deserialize_payload(plaintext)
    except (InvalidTag, ValueError) as err:
        logger.debug(
            "Envelope open failed: record=%s reason=%s",
            record.id, type(err).__name__,
        )
        raise DecryptionError() from None
