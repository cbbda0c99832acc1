import datetime as dt

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sessionstore.database import Base
from sessionstore.models.mixins import MessageCountersMixin, TimestampMixin


class UserDailyUsage(MessageCountersMixin, TimestampMixin, Base):
    """Per-user, per-day usage ledger. Rows are never deleted."""

    __tablename__ = "user_daily_usages"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_daily_usages_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    connected_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    disconnected_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
