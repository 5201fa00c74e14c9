"""Secure-TX Meta information.
   Secure-TX stores JSON payloads under per-record envelope encryption.
"""
__title__ = 'secure_tx'
__description__ = (
   'Secure-TX stores JSON payloads under AES-256-GCM envelope '
   'encryption with per-record data keys.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
