"""
JSON file Record Store.

Records are kept in a single JSON object keyed by record id. Every ``put``
rewrites the whole file through a temporary file and ``os.replace`` so a
reader never observes a half-written file.
"""
import os
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import orjson

from ..vault.records import SecureRecord

logger = logging.getLogger("secure_tx.storage")


class JsonFileRecordStore:
    """File-backed store suitable for single-process deployments."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._records: Optional[dict[str, SecureRecord]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, SecureRecord]:
        if not self._path.exists():
            return {}
        raw = orjson.loads(self._path.read_bytes() or b"{}")
        return {
            record_id: SecureRecord.from_dict(data)
            for record_id, data in raw.items()
        }

    def _write(self, snapshot: dict[str, dict]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_bytes(orjson.dumps(snapshot, option=orjson.OPT_INDENT_2))
        os.replace(tmp, self._path)

    async def _load(self) -> dict[str, SecureRecord]:
        if self._records is None:
            self._records = await asyncio.to_thread(self._read)
            logger.debug(
                "Loaded %d record(s) from %s", len(self._records), self._path,
            )
        return self._records

    async def put(self, record_id: str, record: SecureRecord) -> None:
        async with self._lock:
            records = await self._load()
            snapshot = {rid: rec.to_dict() for rid, rec in records.items()}
            snapshot[record_id] = record.to_dict()
            await asyncio.to_thread(self._write, snapshot)
            # cache only what reached the disk
            records[record_id] = record

    async def get(self, record_id: str) -> Optional[SecureRecord]:
        async with self._lock:
            records = await self._load()
            return records.get(record_id)

    async def list(self) -> list[SecureRecord]:
        async with self._lock:
            records = await self._load()
            return list(records.values())
