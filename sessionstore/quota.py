"""Session quota checks for companies."""

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from sessionstore.exceptions import NotFoundError, QuotaExceededError
from sessionstore.models.company import Company
from sessionstore.models.user import User

logger = logging.getLogger("sessionstore")


def _get_company(db: Session, company_id: int) -> Company:
    # row lock serializes concurrent creators for the same company
    company = (
        db.query(Company)
        .filter(Company.id == company_id, Company.deleted_at.is_(None))
        .with_for_update()
        .first()
    )
    if company is None:
        raise NotFoundError(f"company {company_id} not found")
    return company


def count_company_users(db: Session, company_id: int, instance: str | None = None) -> int:
    query = db.query(func.count(User.id)).filter(User.company_id == company_id, User.deleted_at.is_(None))
    if instance is not None:
        query = query.filter(User.instance == instance)
    return query.scalar() or 0


def check_session_quota(db: Session, company_id: int, instance: str, now: datetime | None = None) -> Company:
    """Raise QuotaExceededError if the company cannot take another session in ``instance``."""
    company = _get_company(db, company_id)
    now = now or datetime.now()

    if company.date_limit is not None and company.date_limit < now:
        logger.warning("Company %d subscription expired at %s", company_id, company.date_limit)
        raise QuotaExceededError(
            "company subscription expired",
            details={"company_id": company_id, "date_limit": company.date_limit.isoformat()},
        )

    total = count_company_users(db, company_id)
    if total >= company.connections_limit:
        logger.warning("Company %d reached connections limit (%d)", company_id, company.connections_limit)
        raise QuotaExceededError(
            "company connections limit reached",
            details={"company_id": company_id, "used": total, "limit": company.connections_limit},
        )

    in_instance = count_company_users(db, company_id, instance)
    if in_instance >= company.connections_instance:
        logger.warning(
            "Company %d reached instance limit (%d) on %s", company_id, company.connections_instance, instance
        )
        raise QuotaExceededError(
            "company instance connections limit reached",
            details={
                "company_id": company_id,
                "instance": instance,
                "used": in_instance,
                "limit": company.connections_instance,
            },
        )
    return company
