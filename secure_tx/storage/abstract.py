"""Record Store contract.

Implementations must guarantee:
- ``put`` is atomic per id,
- ``get`` returns the most recently put record for an id, or ``None``,
- concurrent ``put`` calls with different ids never interfere.
"""
from typing import Optional, Protocol, runtime_checkable

from ..vault.records import SecureRecord


@runtime_checkable
class RecordStore(Protocol):
    """Key-value persistence for SecureRecords."""

    async def put(self, record_id: str, record: SecureRecord) -> None:
        ...

    async def get(self, record_id: str) -> Optional[SecureRecord]:
        ...

    async def list(self) -> list[SecureRecord]:
        ...
