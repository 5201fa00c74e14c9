"""SecureRecord — the sealed, storable unit produced by envelope encryption.

All binary fields are hex strings. Field contents are not checked on load:
a tampered record must still be loadable so that decryption can reject it
with a field-specific error.
"""
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .crypto import ALGORITHM

MASTER_KEY_VERSION = 1


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and ``Z``."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_timestamp(text: str) -> datetime:
    """Parse a ``createdAt`` string back into an aware UTC datetime."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utc_timestamp() -> str:
    """Current UTC time in the ``createdAt`` wire format."""
    return format_timestamp(datetime.now(timezone.utc))


class SecureRecord(BaseModel):
    """Envelope-encrypted record.

    Wire names follow the public JSON contract (``partyId``, ``createdAt``);
    both the wire names and the Python field names are accepted on input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    party_id: str = Field(alias="partyId")
    created_at: str = Field(alias="createdAt")

    payload_nonce: str
    payload_ct: str
    payload_tag: str

    dek_wrap_nonce: str
    dek_wrapped: str
    dek_wrap_tag: str

    alg: str = ALGORITHM
    mk_version: int = MASTER_KEY_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Return the wire-form mapping of this record."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecureRecord":
        """Build a record from its wire form (or Python field names)."""
        return cls.model_validate(data)

    def replace(self, **changes: Any) -> "SecureRecord":
        """Return a copy with some fields replaced; records are never mutated."""
        return self.model_copy(update=changes)
