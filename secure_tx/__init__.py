"""Secure-TX — envelope-encrypted transaction records."""

from .version import __version__
from .service import TxService
from .vault import SecureRecord, encrypt_record, decrypt_record

__all__ = [
    "__version__",
    "TxService",
    "SecureRecord",
    "encrypt_record",
    "decrypt_record",
]
