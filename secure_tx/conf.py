"""Secure-TX environment variable names and defaults."""

MASTER_KEY_ENV = "MASTER_KEY_HEX"
STORE_BACKEND_ENV = "TX_STORE_BACKEND"
STORE_PATH_ENV = "TX_STORE_PATH"
DATABASE_URL_ENV = "DATABASE_URL"
HOST_ENV = "TX_HOST"
PORT_ENV = "TX_PORT"
CORS_ORIGIN_ENV = "TX_CORS_ORIGIN"

DEFAULT_STORE_BACKEND = "memory"
DEFAULT_STORE_PATH = "secure_tx_records.json"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
