"""Connection lifecycle of a User row: QR, pairing code, jid, connected flag."""

import logging
from collections.abc import Callable
from datetime import datetime

from sessionstore.database import Store
from sessionstore.exceptions import NotFoundError
from sessionstore.models.company import Company
from sessionstore.models.user import User
from sessionstore.quota import check_session_quota
from sessionstore.schemas.company import CompanyCreate
from sessionstore.schemas.user import UserCreate

logger = logging.getLogger("sessionstore")


class SessionService:
    def __init__(self, store: Store, clock: Callable[[], datetime] | None = None):
        self.store = store
        self.clock = clock or datetime.now

    def _update_user(self, user_id: int, values: dict, instance: str | None = None) -> int:
        """Single-row conditional update. Returns the number of matched rows."""
        with self.store.transaction() as db:
            query = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None))
            if instance is not None:
                query = query.filter(User.instance == instance)
            return query.update({**values, "updated_at": self.clock()}, synchronize_session=False)

    def _update_scoped(self, user_id: int, instance: str, field: str, value: str):
        if self._update_user(user_id, {field: value}, instance=instance) == 0:
            logger.warning("No rows affected when setting %s for user %d with instance %s", field, user_id, instance)
            raise NotFoundError(
                f"user {user_id} not found in instance {instance!r}",
                scoped=True,
                details={"user_id": user_id, "instance": instance},
            )

    def _update_unscoped(self, user_id: int, field: str, value):
        if self._update_user(user_id, {field: value}) == 0:
            logger.debug("No rows affected when setting %s for user %d", field, user_id)

    # --- Instance-scoped ---

    def set_qrcode(self, user_id: int, qrcode: str, instance: str):
        self._update_scoped(user_id, instance, "qrcode", qrcode)

    def set_pairing_code(self, user_id: int, pairing_code: str, instance: str):
        self._update_scoped(user_id, instance, "pairing_code", pairing_code)

    # --- Id only ---

    def set_connected(self, user_id: int):
        self._update_unscoped(user_id, "connected", 1)

    def set_disconnected(self, user_id: int):
        self._update_unscoped(user_id, "connected", 0)

    def set_jid(self, user_id: int, jid: str):
        self._update_unscoped(user_id, "jid", jid)

    def set_webhook(self, user_id: int, webhook: str):
        self._update_unscoped(user_id, "webhook", webhook)

    def set_events(self, user_id: int, events: str):
        self._update_unscoped(user_id, "events", events)

    def delete_user(self, user_id: int):
        """Soft delete: the row stays, every query skips it from now on."""
        self._update_unscoped(user_id, "deleted_at", self.clock())
        logger.info("User %d deleted", user_id)

    # --- Provisioning ---

    def create_user(self, data: UserCreate) -> int:
        with self.store.transaction() as db:
            if data.company_id is not None:
                check_session_quota(db, data.company_id, data.instance, now=self.clock())
            user = User(**data.model_dump())
            db.add(user)
            db.flush()
            user_id = user.id
        logger.info("User %d created (instance=%s, company=%s)", user_id, data.instance, data.company_id)
        return user_id

    def update_user(self, user: User) -> User:
        """Full-row save: inserts when the primary key is unknown, overwrites otherwise."""
        with self.store.transaction() as db:
            merged = db.merge(user)
            db.flush()
        return merged

    def create_company(self, data: CompanyCreate) -> int:
        with self.store.transaction() as db:
            company = Company(**data.model_dump())
            db.add(company)
            db.flush()
            company_id = company.id
        logger.info("Company %d created", company_id)
        return company_id
