"""Read-only lookups and listings. Soft-deleted rows never show up here."""

import logging

from sqlalchemy import func

from sessionstore import config
from sessionstore.database import Store
from sessionstore.exceptions import ConfigurationError, NotFoundError
from sessionstore.models.company import Company
from sessionstore.models.user import User
from sessionstore.quota import count_company_users
from sessionstore.schemas.company import CompanyQuotaUsage

logger = logging.getLogger("sessionstore")


class ReportService:
    def __init__(self, store: Store, instance: str | None = None):
        self.store = store
        self.instance = config.INSTANCE if instance is None else instance

    def _one(self, model, what: str, *criteria):
        with self.store.transaction() as db:
            row = db.query(model).filter(*criteria, model.deleted_at.is_(None)).first()
        if row is None:
            logger.error("Could not get %s", what)
            raise NotFoundError(f"{what} not found")
        return row

    def get_user_by_id(self, user_id: int) -> User:
        return self._one(User, f"user {user_id}", User.id == user_id)

    def get_user_by_token(self, token: str) -> User:
        return self._one(User, "user", User.token == token)

    def get_company_by_token(self, token: str) -> Company:
        return self._one(Company, "company", Company.token == token)

    def list_connected_users(self) -> list[User]:
        """Connected users of the instance this process serves."""
        if not self.instance:
            raise ConfigurationError("INSTANCE is not set")

        with self.store.transaction() as db:
            return (
                db.query(User)
                .filter(User.connected == 1, User.instance == self.instance, User.deleted_at.is_(None))
                .order_by(User.id)
                .all()
            )

    def list_company_users(self, company_id: int, instance: str) -> list[User]:
        """Connected users first, then by id."""
        with self.store.transaction() as db:
            return (
                db.query(User)
                .filter(User.company_id == company_id, User.instance == instance, User.deleted_at.is_(None))
                .order_by(User.connected.desc(), User.id.asc())
                .all()
            )

    def count_connected_users(self, instance: str) -> int:
        with self.store.transaction() as db:
            count = (
                db.query(func.count(User.id))
                .filter(User.instance == instance, User.connected == 1, User.deleted_at.is_(None))
                .scalar()
            )
        return count or 0

    def get_company_quota_usage(self, company_id: int, instance: str) -> CompanyQuotaUsage:
        with self.store.transaction() as db:
            company = db.query(Company).filter(Company.id == company_id, Company.deleted_at.is_(None)).first()
            if company is None:
                raise NotFoundError(f"company {company_id} not found")
            connected = (
                db.query(func.count(User.id))
                .filter(
                    User.company_id == company_id,
                    User.instance == instance,
                    User.connected == 1,
                    User.deleted_at.is_(None),
                )
                .scalar()
            )
            return CompanyQuotaUsage(
                company_id=company_id,
                instance=instance,
                users=count_company_users(db, company_id),
                connections_limit=company.connections_limit,
                instance_users=count_company_users(db, company_id, instance),
                connections_instance=company.connections_instance,
                connected=connected or 0,
                date_limit=company.date_limit,
            )
