"""Record Store implementations, selected by ``VaultConfig.store_backend``."""
import logging

from ..vault.config import VaultConfig
from .abstract import RecordStore
from .memory import MemoryRecordStore
from .jsonfile import JsonFileRecordStore
from .postgres import PostgresRecordStore

logger = logging.getLogger("secure_tx.storage")


async def create_db_pool(database_url: str):
    """Open an asyncpg connection pool (requires the ``postgres`` extra)."""
    import asyncpg

    return await asyncpg.create_pool(dsn=database_url)


async def create_store(config: VaultConfig) -> RecordStore:
    """Build the Record Store named by the configuration.

    Args:
        config: Validated configuration.

    Returns:
        A ready-to-use store. For ``postgres`` the table is created if
        missing.
    """
    backend = config.store_backend
    if backend == "json":
        store = JsonFileRecordStore(config.store_path)
    elif backend == "postgres":
        pool = await create_db_pool(config.database_url)
        store = PostgresRecordStore(pool)
        await store.create_table()
    else:
        store = MemoryRecordStore()
    logger.info("Using %s record store", backend)
    return store


__all__ = [
    "RecordStore",
    "MemoryRecordStore",
    "JsonFileRecordStore",
    "PostgresRecordStore",
    "create_store",
    "create_db_pool",
]
