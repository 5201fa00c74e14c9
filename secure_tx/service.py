"""
TxService — envelope-encrypt payloads and keep them in a Record Store.

The service is constructed explicitly with the master key and a store;
there is no process-wide instance.

Security Note:
    Never log plaintext or ciphertext values. Only record ids, party ids
    and operations are logged.
"""
import logging
from typing import Any

from .storage import RecordStore
from .vault.envelope import encrypt_record, decrypt_record
from .vault.exceptions import RecordNotFound
from .vault.records import SecureRecord

logger = logging.getLogger("secure_tx.service")


class TxService:
    """Encrypt, fetch, list and decrypt SecureRecords."""

    def __init__(self, master_key: bytes, store: RecordStore):
        self._master_key = master_key
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    async def encrypt_and_store(self, party_id: str, payload: Any) -> SecureRecord:
        """Seal a payload and persist the resulting record.

        Raises:
            InvalidPayloadError: If party_id is empty or payload is not JSON.
        """
        record = encrypt_record(party_id, payload, self._master_key)
        await self._store.put(record.id, record)
        logger.info("Stored record id=%s party=%s", record.id, record.party_id)
        return record

    async def get_record(self, record_id: str) -> SecureRecord:
        """Return a stored record.

        Raises:
            RecordNotFound: If no record has this id.
        """
        record = await self._store.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    async def decrypt_record(self, record_id: str) -> Any:
        """Fetch and open a stored record.

        Raises:
            RecordNotFound: If no record has this id.
            InvalidFieldError: If a stored field is malformed.
            DecryptionError: If the record fails authentication.
        """
        record = await self.get_record(record_id)
        payload = decrypt_record(record, self._master_key)
        logger.debug("Decrypted record id=%s", record_id)
        return payload

    async def list_records(self) -> list[SecureRecord]:
        """Return every stored record, newest first."""
        records = await self._store.list()
        return sorted(records, key=lambda r: r.created_at, reverse=True)
