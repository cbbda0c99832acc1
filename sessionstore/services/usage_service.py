"""Per-user, per-day usage accounting.

Each event runs in its own transaction: find-or-create today's
``user_daily_usages`` row, then apply exactly one change to it. Counter
events use a column expression (``count = count + 1``) so concurrent
increments on the same row are never lost.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sessionstore.database import Store
from sessionstore.events import COUNTER_COLUMNS, EVENT_DISCONNECTED, EVENT_ONLINE
from sessionstore.exceptions import UnsupportedEventError
from sessionstore.models.user import User
from sessionstore.models.user_daily_usage import UserDailyUsage

logger = logging.getLogger("sessionstore")


@dataclass
class HeartbeatFailure:
    user_id: int
    error: Exception


class UsageService:
    def __init__(self, store: Store, clock: Callable[[], datetime] | None = None):
        self.store = store
        self.clock = clock or datetime.now

    @staticmethod
    def _event_values(event_type: str, now: datetime) -> dict:
        if event_type == EVENT_DISCONNECTED:
            return {"disconnected_at": now, "is_online": False}
        if event_type == EVENT_ONLINE:
            return {"connected_at": now, "is_online": True}

        column = COUNTER_COLUMNS.get(event_type)
        if column is None:
            raise UnsupportedEventError(event_type)
        return {column: getattr(UserDailyUsage, column) + 1}

    @staticmethod
    def _lookup(db: Session, user_id: int, day: date, lock: bool = False) -> int | None:
        query = db.query(UserDailyUsage.id).filter(UserDailyUsage.user_id == user_id, UserDailyUsage.date == day)
        if lock:
            query = query.with_for_update()
        return query.scalar()

    @classmethod
    def _find_or_create(cls, db: Session, user_id: int, day: date) -> int:
        """Return the id of the (user_id, day) row, inserting it if absent."""
        usage_id = cls._lookup(db, user_id, day)
        if usage_id is not None:
            return usage_id

        try:
            with db.begin_nested():
                usage = UserDailyUsage(
                    user_id=user_id,
                    date=day,
                    is_online=False,
                    connected_at=None,
                    disconnected_at=None,
                )
                db.add(usage)
                db.flush()
                return usage.id
        except IntegrityError:
            # lost the race to a concurrent creator; a locking read sees its committed row
            usage_id = cls._lookup(db, user_id, day, lock=True)
            if usage_id is None:
                raise
            logger.debug("Daily usage row for user %d on %s created concurrently", user_id, day)
            return usage_id

    def record_event(self, user_id: int, event_type: str):
        """Apply ``event_type`` to today's usage row for ``user_id``."""
        now = self.clock()
        values = self._event_values(event_type, now)

        with self.store.transaction() as db:
            usage_id = self._find_or_create(db, user_id, now.date())
            db.query(UserDailyUsage).filter(UserDailyUsage.id == usage_id).update(
                {**values, "updated_at": now}, synchronize_session=False
            )

    def mark_all_connected_online(self) -> list[HeartbeatFailure]:
        """Record an "online" event for every connected user, one transaction each.

        A failing user never stops the scan; failures are logged and returned.
        """
        with self.store.transaction() as db:
            rows = db.query(User.id).filter(User.connected == 1, User.deleted_at.is_(None)).order_by(User.id).all()
        user_ids = [row.id for row in rows]

        failures: list[HeartbeatFailure] = []
        for user_id in user_ids:
            try:
                self.record_event(user_id, EVENT_ONLINE)
            except Exception as exc:
                logger.warning("Heartbeat failed for user %d: %s", user_id, exc)
                failures.append(HeartbeatFailure(user_id=user_id, error=exc))

        logger.info("Heartbeat recorded for %d/%d connected users", len(user_ids) - len(failures), len(user_ids))
        return failures

    def get_daily_usage(self, user_id: int, day: date | None = None) -> UserDailyUsage | None:
        day = day or self.clock().date()
        with self.store.transaction() as db:
            return (
                db.query(UserDailyUsage)
                .filter(UserDailyUsage.user_id == user_id, UserDailyUsage.date == day)
                .first()
            )

    def list_daily_usage(
        self, user_id: int, start: date | None = None, end: date | None = None
    ) -> list[UserDailyUsage]:
        with self.store.transaction() as db:
            query = db.query(UserDailyUsage).filter(UserDailyUsage.user_id == user_id)
            if start is not None:
                query = query.filter(UserDailyUsage.date >= start)
            if end is not None:
                query = query.filter(UserDailyUsage.date <= end)
            return query.order_by(UserDailyUsage.date).all()
