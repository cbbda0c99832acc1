from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sessionstore.database import Base
from sessionstore.models.mixins import MessageCountersMixin, SoftDeleteMixin, TimestampMixin


class User(MessageCountersMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A messaging session slot.

    The ``count_*_msg`` columns are lifetime totals kept for older clients;
    per-day figures live in ``user_daily_usages``.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_instance_connected", "instance", "connected"),
        Index("ix_users_company_instance", "company_id", "instance"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    webhook: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    jid: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    qrcode: Mapped[str] = mapped_column(Text, nullable=False, default="")
    connected: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    expiration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events: Mapped[str] = mapped_column(String(1024), nullable=False, default="All")
    pairing_code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    instance: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    company_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("companies.id", onupdate="CASCADE", ondelete="CASCADE"), nullable=True
    )
    whatsapp_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
