import pytest

from secure_tx.service import TxService
from secure_tx.storage import MemoryRecordStore

MASTER_KEY_HEX = "0f1e2d3c4b5a69788796a5b4c3d2e1f00112233445566778899aabbccddeeff0"


@pytest.fixture
def master_key() -> bytes:
    return bytes.fromhex(MASTER_KEY_HEX)


@pytest.fixture
def memory_store():
    return MemoryRecordStore()


@pytest.fixture
def service(master_key, memory_store):
    return TxService(master_key, memory_store)


@pytest.fixture
def master_key_hex() -> str:
    return MASTER_KEY_HEX
