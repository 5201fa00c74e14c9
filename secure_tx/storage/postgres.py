"""
PostgreSQL Record Store over an asyncpg-compatible connection pool.

Security Note:
    Only sealed records are written; plaintext and DEKs never reach the DB.
"""
import logging
from typing import Any, Optional

from ..vault.records import SecureRecord, format_timestamp, parse_timestamp

logger = logging.getLogger("secure_tx.storage")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tx_secure_records (
    id TEXT PRIMARY KEY,
    party_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    payload_nonce TEXT NOT NULL,
    payload_ct TEXT NOT NULL,
    payload_tag TEXT NOT NULL,
    dek_wrap_nonce TEXT NOT NULL,
    dek_wrapped TEXT NOT NULL,
    dek_wrap_tag TEXT NOT NULL,
    alg TEXT NOT NULL,
    mk_version INTEGER NOT NULL
)
"""

_UPSERT_RECORD = """
INSERT INTO tx_secure_records (
    id, party_id, created_at,
    payload_nonce, payload_ct, payload_tag,
    dek_wrap_nonce, dek_wrapped, dek_wrap_tag,
    alg, mk_version
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
ON CONFLICT (id)
DO UPDATE SET party_id = EXCLUDED.party_id,
             created_at = EXCLUDED.created_at,
             payload_nonce = EXCLUDED.payload_nonce,
             payload_ct = EXCLUDED.payload_ct,
             payload_tag = EXCLUDED.payload_tag,
             dek_wrap_nonce = EXCLUDED.dek_wrap_nonce,
             dek_wrapped = EXCLUDED.dek_wrapped,
             dek_wrap_tag = EXCLUDED.dek_wrap_tag,
             alg = EXCLUDED.alg,
             mk_version = EXCLUDED.mk_version
"""

_SELECT_RECORD = """
SELECT id, party_id, created_at, payload_nonce, payload_ct, payload_tag,
       dek_wrap_nonce, dek_wrapped, dek_wrap_tag, alg, mk_version
FROM tx_secure_records
WHERE id = $1
"""

_SELECT_ALL = """
SELECT id, party_id, created_at, payload_nonce, payload_ct, payload_tag,
       dek_wrap_nonce, dek_wrapped, dek_wrap_tag, alg, mk_version
FROM tx_secure_records
ORDER BY created_at DESC
"""


def _row_to_record(row: Any) -> SecureRecord:
    return SecureRecord(
        id=row["id"],
        party_id=row["party_id"],
        created_at=format_timestamp(row["created_at"]),
        payload_nonce=row["payload_nonce"],
        payload_ct=row["payload_ct"],
        payload_tag=row["payload_tag"],
        dek_wrap_nonce=row["dek_wrap_nonce"],
        dek_wrapped=row["dek_wrapped"],
        dek_wrap_tag=row["dek_wrap_tag"],
        alg=row["alg"],
        mk_version=row["mk_version"],
    )


class PostgresRecordStore:
    """Record store backed by the ``tx_secure_records`` table."""

    def __init__(self, db_pool: Any):
        self._db = db_pool

    async def create_table(self) -> None:
        """Create the records table if it does not exist."""
        async with self._db.acquire() as conn:
            await conn.execute(_CREATE_TABLE)
        logger.info("Ensured table tx_secure_records exists")

    async def put(self, record_id: str, record: SecureRecord) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(
                _UPSERT_RECORD,
                record_id,
                record.party_id,
                parse_timestamp(record.created_at),
                record.payload_nonce,
                record.payload_ct,
                record.payload_tag,
                record.dek_wrap_nonce,
                record.dek_wrapped,
                record.dek_wrap_tag,
                record.alg,
                record.mk_version,
            )

    async def get(self, record_id: str) -> Optional[SecureRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_RECORD, record_id)
        if row is None:
            return None
        return _row_to_record(row)

    async def list(self) -> list[SecureRecord]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL)
        return [_row_to_record(row) for row in rows]

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._db.close()
