import logging
from collections.abc import Callable
from datetime import datetime

from sessionstore.database import Store, build_database_url
from sessionstore.services.report_service import ReportService
from sessionstore.services.session_service import SessionService
from sessionstore.services.usage_service import UsageService

logger = logging.getLogger("sessionstore")


class SessionStoreService:
    """Bundles the session, usage and report services over one store handle."""

    def __init__(
        self,
        store: Store,
        *,
        instance: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.sessions = SessionService(store, clock)
        self.usage = UsageService(store, clock)
        self.reports = ReportService(store, instance)

    @property
    def instance(self) -> str:
        return self.reports.instance

    def close(self):
        self.store.dispose()


def new_service(
    driver: str | None = None,
    *,
    url: str | None = None,
    instance: str | None = None,
    migrate: bool = True,
) -> SessionStoreService:
    """Connect to the store, provision the schema and build the service."""
    store = Store(url or build_database_url(driver))
    logger.info("Connected to database (backend=%s)", store.backend)
    if migrate:
        store.init_schema()
    return SessionStoreService(store, instance=instance)
