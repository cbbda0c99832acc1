import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"

# Application
APP_ENV = os.getenv("APP_ENV", "development")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database driver: "postgres", "mysql" or "sqlite"
DB_DRIVER = os.getenv("DB_DRIVER", "sqlite").strip().lower()

# PostgreSQL connection URI
WHATSAPP_DATASTORE_URI = os.getenv("WHATSAPP_DATASTORE_URI", "").strip()

# SQLite (local development / tests)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'sessionstore.db'}")

# MySQL connection parts
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "3306"))
DB_USER = os.getenv("DB_USER", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_NAME = os.getenv("DB_NAME", "")

# Connection pool
DB_MAX_OPEN_CONNS = int(os.getenv("DB_MAX_OPEN_CONNS", "300"))
DB_MAX_IDLE_CONNS = int(os.getenv("DB_MAX_IDLE_CONNS", "15"))
DB_CONN_MAX_LIFETIME_MS = int(os.getenv("DB_CONN_MAX_LIFETIME_MS", "30000"))
DB_POOL_TIMEOUT_S = int(os.getenv("DB_POOL_TIMEOUT_S", "30"))

# Upper bound for a single transaction (begin -> commit)
DB_TRANSACTION_TIMEOUT_MS = int(os.getenv("DB_TRANSACTION_TIMEOUT_MS", "10000"))

# Instance label served by this process
INSTANCE = os.getenv("INSTANCE", "").strip()

# Heartbeat
HEARTBEAT_INTERVAL_SECONDS = int(os.getenv("HEARTBEAT_INTERVAL_SECONDS", "60"))
