"""
Vault Crypto Core — AEAD primitives, DEK wrapping and payload serialization.

Implements the two layers of the Secure-TX envelope:
- Payload layer: fresh DEK (32B) → AES-256-GCM → payload_ct + payload_tag
- Wrap layer: MASTER_KEY → AES-256-GCM over the DEK's hex text → dek_wrapped

Security Note:
    Never log plaintext, ciphertext, DEK or master key values.
    Nonces are random 96-bit and drawn independently for every encryption.
"""
import os
import re
import logging
from typing import Any, Optional

import orjson
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger("secure_tx.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
KEY_LENGTH = 32  # AES-256

ALGORITHM = "AES-256-GCM"

_HEX_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})*")


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

def generate_dek() -> bytes:
    """Return a fresh 32-byte data-encryption-key from the OS CSPRNG."""
    return os.urandom(KEY_LENGTH)


def generate_record_id() -> str:
    """Return a random 8-byte record id as 16 lowercase hex chars."""
    return os.urandom(8).hex()


# ---------------------------------------------------------------------------
# AEAD
# ---------------------------------------------------------------------------

def aead_encrypt(key: bytes, plaintext: bytes) -> tuple[bytes, bytes, bytes]:
    """Encrypt plaintext with AES-256-GCM under a fresh nonce.

    Args:
        key: 32-byte AES key.
        plaintext: Data to encrypt.

    Returns:
        Tuple of (nonce 12B, ciphertext, tag 16B).
    """
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    return nonce, sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]


def aead_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, tag: bytes) -> bytes:
    """Decrypt and verify an AES-256-GCM ciphertext.

    Raises:
        cryptography.exceptions.InvalidTag: If authentication fails.
        ValueError: If the key or nonce has an unusable size.
    """
    return AESGCM(key).decrypt(nonce, ciphertext + tag, None)


# ---------------------------------------------------------------------------
# DEK wrapping
# ---------------------------------------------------------------------------

def wrap_dek(dek: bytes, master_key: bytes) -> tuple[bytes, bytes, bytes]:
    """Wrap a DEK under the master key.

    The wrapped plaintext is the DEK's 64-char lowercase hex text, not the
    raw bytes. Stored records depend on this format.

    Returns:
        Tuple of (wrap nonce, wrapped DEK, wrap tag).
    """
    return aead_encrypt(master_key, dek.hex().encode("utf-8"))


def unwrap_dek(
    nonce: bytes, wrapped: bytes, tag: bytes, master_key: bytes
) -> bytes:
    """Recover a DEK wrapped by :func:`wrap_dek`.

    Raises:
        cryptography.exceptions.InvalidTag: If the wrap tag does not verify.
        ValueError: If the unwrapped text is not a 32-byte hex key.
    """
    dek_hex = aead_decrypt(master_key, nonce, wrapped, tag).decode("utf-8")
    dek = bytes.fromhex(dek_hex)
    if len(dek) != KEY_LENGTH:
        raise ValueError(f"unwrapped DEK is {len(dek)} bytes, expected {KEY_LENGTH}")
    return dek


# ---------------------------------------------------------------------------
# Hex helpers
# ---------------------------------------------------------------------------

def is_hex(value: Any, length: Optional[int] = None) -> bool:
    """Check that value is an even-length hex string (any case).

    Args:
        value: Candidate string.
        length: Exact number of hex characters required, if given.
    """
    if not isinstance(value, str):
        return False
    if length is not None and len(value) != length:
        return False
    return _HEX_PATTERN.fullmatch(value) is not None


# ---------------------------------------------------------------------------
# Payload serialization
# ---------------------------------------------------------------------------

def serialize_payload(value: Any) -> bytes:
    """Serialize a JSON value to compact UTF-8 JSON bytes.

    Key order is preserved as given; no schema is applied.

    Raises:
        TypeError: If value is not JSON-serializable.
    """
    return orjson.dumps(value)


def deserialize_payload(data: bytes) -> Any:
    """Parse UTF-8 JSON bytes produced by :func:`serialize_payload`.

    Raises:
        ValueError: On invalid UTF-8 or invalid JSON.
    """
    return orjson.loads(data)
