"""In-memory Record Store."""
from typing import Optional

from ..vault.records import SecureRecord


class MemoryRecordStore:
    """Dict-backed store; contents live for the process lifetime only."""

    def __init__(self):
        self._records: dict[str, SecureRecord] = {}

    async def put(self, record_id: str, record: SecureRecord) -> None:
        self._records[record_id] = record

    async def get(self, record_id: str) -> Optional[SecureRecord]:
        return self._records.get(record_id)

    async def list(self) -> list[SecureRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
