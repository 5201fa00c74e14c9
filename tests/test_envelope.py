"""
Tests for envelope encryption.

Tests cover:
- Round-trip of arbitrary JSON values
- Record shape (field sizes, constants, wire names)
- Fresh ids, nonces and DEKs per record
- Tamper rejection at the payload and wrap layers
- Structural field validation before any crypto
- Master key checks
"""
import os
import re

import pytest
from pydantic import ValidationError

from secure_tx.vault import (
    ConfigurationError,
    DecryptionError,
    InvalidFieldError,
    InvalidPayloadError,
    SecureRecord,
    decrypt_record,
    encrypt_record,
)
from secure_tx.vault import envelope
from secure_tx.vault.crypto import aead_encrypt, is_hex, unwrap_dek, wrap_dek
from secure_tx.vault.records import utc_timestamp

GENERIC_MESSAGE = "Decryption failed: data may be tampered or invalid"


@pytest.fixture
def record(master_key):
    return encrypt_record("party_1", {"amount": 500, "user": "alice"}, master_key)


def _flip_hex_char(value: str, index: int = 0) -> str:
    ch = value[index]
    swapped = "1" if ch != "1" else "2"
    return value[:index] + swapped + value[index + 1:]


# --- Round-trip ---

class TestRoundTrip:
    """decrypt(encrypt(x)) == x."""

    def test_example_scenario(self, record, master_key):
        assert decrypt_record(record, master_key) == {"amount": 500, "user": "alice"}

    @pytest.mark.parametrize("payload", [
        None,
        True,
        0,
        -12.5,
        "",
        "plain text with ünïcödé",
        [],
        {},
        [1, "two", {"three": [3, None]}],
        {"nested": {"deep": {"list": [1, 2, {"x": False}]}}},
    ])
    def test_json_values(self, master_key, payload):
        sealed = encrypt_record("p", payload, master_key)
        assert decrypt_record(sealed, master_key) == payload

    def test_decrypt_does_not_modify_record(self, record, master_key):
        before = record.to_dict()
        decrypt_record(record, master_key)
        decrypt_record(record, master_key)
        assert record.to_dict() == before

    def test_uppercase_hex_accepted(self, record, master_key):
        upper = record.replace(
            payload_nonce=record.payload_nonce.upper(),
            payload_ct=record.payload_ct.upper(),
            payload_tag=record.payload_tag.upper(),
            dek_wrap_nonce=record.dek_wrap_nonce.upper(),
            dek_wrapped=record.dek_wrapped.upper(),
            dek_wrap_tag=record.dek_wrap_tag.upper(),
        )
        assert decrypt_record(upper, master_key) == {"amount": 500, "user": "alice"}


# --- Record shape ---

class TestRecordShape:
    """Field sizes and constants of a freshly sealed record."""

    def test_field_sizes(self, record):
        assert re.fullmatch(r"[0-9a-f]{16}", record.id)
        assert len(record.payload_nonce) == 24
        assert len(record.payload_tag) == 32
        assert len(record.dek_wrap_nonce) == 24
        assert len(record.dek_wrap_tag) == 32
        # 64 hex chars of DEK text -> 64 bytes of ciphertext
        assert len(record.dek_wrapped) == 128

    def test_payload_ciphertext_matches_compact_json_length(self, record):
        plaintext = b'{"amount":500,"user":"alice"}'
        assert len(record.payload_ct) == len(plaintext) * 2

    def test_constants(self, record):
        assert record.alg == "AES-256-GCM"
        assert record.mk_version == 1
        assert record.party_id == "party_1"
        assert record.created_at.endswith("Z")

    def test_utc_timestamp_format(self):
        assert re.fullmatch(
            r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp(),
        )

    def test_wire_names(self, record):
        data = record.to_dict()
        assert set(data) == {
            "id", "partyId", "createdAt",
            "payload_nonce", "payload_ct", "payload_tag",
            "dek_wrap_nonce", "dek_wrapped", "dek_wrap_tag",
            "alg", "mk_version",
        }
        assert SecureRecord.from_dict(data) == record

    def test_dek_not_in_record(self, master_key, monkeypatch):
        dek = bytes(range(32))
        monkeypatch.setattr(envelope, "generate_dek", lambda: dek)
        sealed = encrypt_record("p", {"a": 1}, master_key)
        serialized = str(sealed.to_dict()).lower()
        assert dek.hex() not in serialized

    def test_record_is_immutable(self, record):
        with pytest.raises(ValidationError):
            record.payload_ct = "00"


# --- Uniqueness ---

class TestUniqueness:
    """Every encrypt call draws fresh randomness."""

    def test_identical_inputs_produce_distinct_records(self, master_key):
        first = encrypt_record("party_1", {"k": "v"}, master_key)
        second = encrypt_record("party_1", {"k": "v"}, master_key)
        assert first.id != second.id
        assert first.payload_nonce != second.payload_nonce
        assert first.dek_wrap_nonce != second.dek_wrap_nonce
        assert first.payload_ct != second.payload_ct
        assert first.dek_wrapped != second.dek_wrapped

    def test_payload_and_wrap_nonces_independent(self, record):
        assert record.payload_nonce != record.dek_wrap_nonce


# --- Tamper rejection ---

class TestTamperRejection:
    """AEAD failures collapse to one generic error."""

    @pytest.mark.parametrize("index", [0, 5, -1])
    def test_flipped_ciphertext_byte(self, record, master_key, index):
        ct = bytearray(bytes.fromhex(record.payload_ct))
        ct[index] ^= 0xFF
        tampered = record.replace(payload_ct=ct.hex())
        with pytest.raises(DecryptionError) as exc:
            decrypt_record(tampered, master_key)
        assert str(exc.value) == GENERIC_MESSAGE

    def test_replaced_payload_tag(self, record, master_key):
        tampered = record.replace(payload_tag="f" * 32)
        with pytest.raises(DecryptionError):
            decrypt_record(tampered, master_key)

    def test_replaced_payload_nonce(self, record, master_key):
        tampered = record.replace(payload_nonce=_flip_hex_char(record.payload_nonce))
        with pytest.raises(DecryptionError):
            decrypt_record(tampered, master_key)

    def test_tampered_wrapped_dek(self, record, master_key):
        tampered = record.replace(dek_wrapped=_flip_hex_char(record.dek_wrapped, 10))
        with pytest.raises(DecryptionError) as exc:
            decrypt_record(tampered, master_key)
        assert str(exc.value) == GENERIC_MESSAGE

    def test_replaced_wrap_tag(self, record, master_key):
        tampered = record.replace(dek_wrap_tag="0" * 32)
        with pytest.raises(DecryptionError):
            decrypt_record(tampered, master_key)

    def test_truncated_ciphertext(self, record, master_key):
        tampered = record.replace(payload_ct=record.payload_ct[:-2])
        with pytest.raises(DecryptionError):
            decrypt_record(tampered, master_key)

    def test_swapped_envelope_between_records(self, master_key):
        first = encrypt_record("a", {"n": 1}, master_key)
        second = encrypt_record("b", {"n": 2}, master_key)
        mixed = first.replace(
            dek_wrap_nonce=second.dek_wrap_nonce,
            dek_wrapped=second.dek_wrapped,
            dek_wrap_tag=second.dek_wrap_tag,
        )
        with pytest.raises(DecryptionError):
            decrypt_record(mixed, master_key)

    def test_wrong_master_key(self, record):
        with pytest.raises(DecryptionError):
            decrypt_record(record, os.urandom(32))

    def test_generic_error_hides_cause(self, record, master_key):
        tampered = record.replace(payload_tag="f" * 32)
        with pytest.raises(DecryptionError) as exc:
            decrypt_record(tampered, master_key)
        assert exc.value.__cause__ is None
        assert exc.value.__suppress_context__ is True

    def test_non_json_plaintext(self, master_key):
        # A validly sealed record whose payload is not JSON.
        dek = os.urandom(32)
        nonce, ct, tag = aead_encrypt(dek, b"\xff\xfe not json")
        wrap_nonce, wrapped, wrap_tag = wrap_dek(dek, master_key)
        record = encrypt_record("p", 1, master_key).replace(
            payload_nonce=nonce.hex(),
            payload_ct=ct.hex(),
            payload_tag=tag.hex(),
            dek_wrap_nonce=wrap_nonce.hex(),
            dek_wrapped=wrapped.hex(),
            dek_wrap_tag=wrap_tag.hex(),
        )
        with pytest.raises(DecryptionError):
            decrypt_record(record, master_key)


# --- Structural validation ---

class TestStructuralValidation:
    """Malformed fields are rejected before any crypto runs."""

    @pytest.fixture
    def no_crypto(self, monkeypatch):
        def _fail(*args, **kwargs):
            raise AssertionError("crypto must not run")
        monkeypatch.setattr(envelope, "unwrap_dek", _fail)
        monkeypatch.setattr(envelope, "aead_decrypt", _fail)

    def test_short_payload_nonce(self, record, master_key, no_crypto):
        with pytest.raises(InvalidFieldError, match="Invalid payload nonce") as exc:
            decrypt_record(record.replace(payload_nonce="abc"), master_key)
        assert exc.value.field == "payload_nonce"

    def test_non_hex_ciphertext(self, record, master_key, no_crypto):
        bad = "g" * len(record.payload_ct)
        with pytest.raises(InvalidFieldError, match="Invalid ciphertext hex") as exc:
            decrypt_record(record.replace(payload_ct=bad), master_key)
        assert exc.value.field == "payload_ct"

    @pytest.mark.parametrize("field, value, message", [
        ("payload_tag", "ab" * 15, "Invalid payload tag"),
        ("payload_tag", "z" * 32, "Invalid payload tag"),
        ("dek_wrap_nonce", "0" * 26, "Invalid DEK wrap nonce"),
        ("dek_wrap_tag", "", "Invalid DEK wrap tag"),
        ("dek_wrapped", "xyz0", "Invalid wrapped DEK hex"),
        ("payload_ct", "abc", "Invalid ciphertext hex"),
        ("alg", "AES-128-CBC", "Unsupported algorithm"),
        ("mk_version", 2, "Unsupported master key version"),
    ])
    def test_invalid_fields(self, record, master_key, no_crypto, field, value, message):
        with pytest.raises(InvalidFieldError, match=message) as exc:
            decrypt_record(record.replace(**{field: value}), master_key)
        assert exc.value.field == field

    @pytest.mark.parametrize("field, suffix, message", [
        ("payload_ct", "\n", "Invalid ciphertext hex"),
        ("dek_wrapped", "\n", "Invalid wrapped DEK hex"),
        ("payload_ct", " ", "Invalid ciphertext hex"),
        ("payload_nonce", "\n", "Invalid payload nonce"),
    ])
    def test_trailing_whitespace_rejected(self, record, master_key, no_crypto,
                                          field, suffix, message):
        value = getattr(record, field) + suffix
        with pytest.raises(InvalidFieldError, match=message) as exc:
            decrypt_record(record.replace(**{field: value}), master_key)
        assert exc.value.field == field

    def test_is_hex_requires_whole_string(self):
        assert is_hex("abcd")
        assert not is_hex("abcd\n")
        assert not is_hex("ab\ncd")

    def test_error_does_not_echo_field_content(self, record, master_key):
        bad = "<script>" + "0" * 16
        with pytest.raises(InvalidFieldError) as exc:
            decrypt_record(record.replace(payload_nonce=bad), master_key)
        assert "<script>" not in str(exc.value)

    def test_empty_ciphertext_passes_structural_check(self, record, master_key):
        # Structurally valid, cryptographically wrong.
        with pytest.raises(DecryptionError):
            decrypt_record(record.replace(payload_ct=""), master_key)


# --- Master key and inputs ---

class TestInputs:

    @pytest.mark.parametrize("key", [b"", b"\x00" * 16, b"\x00" * 33, None, "00" * 32])
    def test_bad_master_key_on_encrypt(self, key):
        with pytest.raises(ConfigurationError):
            encrypt_record("p", {"a": 1}, key)

    def test_bad_master_key_on_decrypt(self, record):
        with pytest.raises(ConfigurationError):
            decrypt_record(record, b"short")

    def test_empty_party_id(self, master_key):
        with pytest.raises(InvalidPayloadError):
            encrypt_record("", {"a": 1}, master_key)

    def test_unserializable_payload(self, master_key):
        with pytest.raises(InvalidPayloadError):
            encrypt_record("p", {"a": object()}, master_key)


# --- DEK wrapping ---

class TestDekWrapping:

    def test_wrap_unwrap(self, master_key):
        dek = os.urandom(32)
        nonce, wrapped, tag = wrap_dek(dek, master_key)
        assert len(nonce) == 12
        assert len(tag) == 16
        assert unwrap_dek(nonce, wrapped, tag, master_key) == dek

    def test_unwrap_rejects_wrong_length_key_text(self, master_key):
        nonce, wrapped, tag = aead_encrypt(master_key, b"00" * 16)
        with pytest.raises(ValueError):
            unwrap_dek(nonce, wrapped, tag, master_key)
