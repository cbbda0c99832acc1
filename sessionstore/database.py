import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import URL, create_engine, event, make_url, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from sessionstore import config
from sessionstore.exceptions import (
    ConfigurationError,
    ConflictError,
    ConnectivityError,
    StoreError,
    TransactionTimeoutError,
)
from sessionstore.migrate import run_migration

logger = logging.getLogger("sessionstore")


class Base(DeclarativeBase):
    pass


def build_database_url(driver: str | None = None) -> str:
    """Assemble the connection URL for ``driver`` from the environment."""
    driver = (driver or config.DB_DRIVER).lower()

    if driver in ("postgres", "postgresql"):
        uri = config.WHATSAPP_DATASTORE_URI
        if not uri:
            raise ConfigurationError("WHATSAPP_DATASTORE_URI is not set")
        if uri.startswith("postgres://"):
            uri = "postgresql://" + uri[len("postgres://"):]
        return uri

    if driver == "mysql":
        if not config.DB_NAME:
            raise ConfigurationError("DB_NAME is not set")
        url = URL.create(
            "mysql+pymysql",
            username=config.DB_USER or None,
            password=config.DB_PASSWORD or None,
            host=config.DB_HOST,
            port=config.DB_PORT,
            database=config.DB_NAME,
            query={"charset": "utf8mb4"},
        )
        return url.render_as_string(hide_password=False)

    if driver == "sqlite":
        return config.DATABASE_URL

    raise ConfigurationError(f"driver not supported: {driver}")


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and (
        url.database in (None, "", ":memory:") or url.database.startswith("file::memory:")
    )


def _setup_sqlite(engine: Engine):
    # pysqlite defers BEGIN on its own; take it over so that every
    # transaction grabs the write lock up front and SAVEPOINT works.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(
    url: str,
    *,
    max_open_conns: int,
    max_idle_conns: int,
    conn_max_lifetime_ms: int,
    pool_timeout_s: int,
) -> Engine:
    parsed = make_url(url)
    # each pooled connection would open its own empty in-memory database
    if _is_memory_sqlite(parsed):
        raise ConfigurationError("in-memory sqlite is not supported, use a file path")

    idle = max(1, min(max_idle_conns, max_open_conns))
    kwargs: dict = {
        "pool_pre_ping": True,
        "pool_size": idle,
        "max_overflow": max(0, max_open_conns - idle),
        "pool_recycle": max(1, conn_max_lifetime_ms // 1000),
        "pool_timeout": pool_timeout_s,
    }

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": pool_timeout_s}
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(parsed, **kwargs)
    if parsed.get_backend_name() == "sqlite":
        _setup_sqlite(engine)
    return engine


class Store:
    """Explicit handle on the relational store.

    Owns the engine and session factory. Every operation runs inside
    :meth:`transaction`, which commits on success, rolls back on any error
    and translates driver failures into :mod:`sessionstore.exceptions`.
    """

    def __init__(
        self,
        url: str,
        *,
        max_open_conns: int | None = None,
        max_idle_conns: int | None = None,
        conn_max_lifetime_ms: int | None = None,
        pool_timeout_s: int | None = None,
        transaction_timeout_ms: int | None = None,
    ):
        self.engine = create_store_engine(
            url,
            max_open_conns=max_open_conns or config.DB_MAX_OPEN_CONNS,
            max_idle_conns=max_idle_conns or config.DB_MAX_IDLE_CONNS,
            conn_max_lifetime_ms=conn_max_lifetime_ms or config.DB_CONN_MAX_LIFETIME_MS,
            pool_timeout_s=pool_timeout_s or config.DB_POOL_TIMEOUT_S,
        )
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.transaction_timeout_ms = (
            transaction_timeout_ms if transaction_timeout_ms is not None else config.DB_TRANSACTION_TIMEOUT_MS
        )

    @property
    def backend(self) -> str:
        return self.engine.dialect.name

    def init_schema(self):
        """Add missing columns to existing tables, then create absent tables."""
        from sessionstore import models  # noqa: F401  (registers tables on Base.metadata)

        logger.info("Migrating database (backend=%s)", self.backend)
        run_migration(self.engine)
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def dispose(self):
        self.engine.dispose()

    def _apply_timeout(self, session: Session):
        ms = int(self.transaction_timeout_ms)
        if ms <= 0:
            return
        if self.backend == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {ms}"))
        elif self.backend == "mysql":
            session.execute(text(f"SET SESSION innodb_lock_wait_timeout = {max(1, ms // 1000)}"))

    def _rollback(self, session: Session):
        try:
            session.rollback()
        except SQLAlchemyError as exc:
            logger.error("Could not roll back transaction: %s", exc)
            raise ConnectivityError("could not roll back transaction") from exc

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session inside one transaction.

        Failures to begin or commit, pool exhaustion and dropped connections
        raise ``ConnectivityError``. An ``OperationalError`` from a statement
        on a live connection (missing table, bad SQL) is a plain ``StoreError``.
        """
        session = self.session_factory()
        started = time.monotonic()
        phase = "begin"
        try:
            session.begin()
            # checkout and BEGIN happen here, not on the first statement
            session.connection()
            self._apply_timeout(session)
            phase = "execute"
            yield session
            elapsed_ms = (time.monotonic() - started) * 1000
            if self.transaction_timeout_ms > 0 and elapsed_ms > self.transaction_timeout_ms:
                raise TransactionTimeoutError(
                    f"transaction exceeded {self.transaction_timeout_ms}ms",
                    details={"elapsed_ms": round(elapsed_ms, 1)},
                )
            phase = "commit"
            session.commit()
        except StoreError:
            self._rollback(session)
            raise
        except IntegrityError as exc:
            self._rollback(session)
            logger.error("Constraint violation: %s", exc.orig)
            raise ConflictError(str(exc.orig)) from exc
        except (InterfaceError, PoolTimeoutError) as exc:
            self._rollback(session)
            logger.error("Database unavailable during %s: %s", phase, exc)
            raise ConnectivityError(str(exc), details={"phase": phase}) from exc
        except OperationalError as exc:
            self._rollback(session)
            if phase != "execute" or exc.connection_invalidated:
                logger.error("Database unavailable during %s: %s", phase, exc)
                raise ConnectivityError(str(exc), details={"phase": phase}) from exc
            logger.error("Database error: %s", exc)
            raise StoreError(str(exc.orig)) from exc
        except DBAPIError as exc:
            self._rollback(session)
            logger.error("Database error: %s", exc)
            raise StoreError(str(exc.orig)) from exc
        except BaseException:
            self._rollback(session)
            raise
        finally:
            session.close()
