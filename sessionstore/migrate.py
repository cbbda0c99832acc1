"""Idempotent additive migration for tables created by older releases.

Uses the SQLAlchemy inspector to check column existence, then
ALTER TABLE ADD COLUMN for missing columns. Runs before create_all, so
fresh databases skip it entirely.
"""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from sessionstore.events import COUNTER_COLUMNS

logger = logging.getLogger("sessionstore")

MIGRATION_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "companies": [
        ("connections_instance", "INTEGER DEFAULT 200"),
        ("redis_uri", "VARCHAR(255) DEFAULT ''"),
    ],
    "users": [
        ("pairing_code", "VARCHAR(64) DEFAULT ''"),
        ("instance", "VARCHAR(100) DEFAULT ''"),
        ("whatsapp_id", "INTEGER"),
        *[(col, "INTEGER DEFAULT 0") for col in COUNTER_COLUMNS.values()],
    ],
    "user_daily_usages": [
        ("is_online", "BOOLEAN DEFAULT FALSE"),
        ("connected_at", "TIMESTAMP NULL"),
        ("disconnected_at", "TIMESTAMP NULL"),
    ],
}


def _get_columns(conn: Connection, table_name: str) -> set[str]:
    return {col["name"] for col in inspect(conn).get_columns(table_name)}


def _add_column_if_missing(conn: Connection, table_name: str, col_name: str, col_def: str, existing: set[str]):
    if col_name not in existing:
        conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {col_name} {col_def}"))
        logger.info("Added column %s.%s", table_name, col_name)


def run_migration(engine: Engine):
    """Run idempotent migration before create_all."""
    with engine.begin() as conn:
        tables = set(inspect(conn).get_table_names())
        for table_name, columns in MIGRATION_COLUMNS.items():
            if table_name not in tables:
                continue
            existing = _get_columns(conn, table_name)
            for col_name, col_def in columns:
                _add_column_if_missing(conn, table_name, col_name, col_def, existing)
    logger.info("Migration completed successfully")
