from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sessionstore.database import Base
from sessionstore.models.mixins import SoftDeleteMixin, TimestampMixin


class Company(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "companies"
    __table_args__ = (
        CheckConstraint("connections_limit >= 0", name="ck_companies_connections_limit"),
        CheckConstraint("connections_instance >= 0", name="ck_companies_connections_instance"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    connections_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    connections_instance: Mapped[int] = mapped_column(Integer, nullable=False, default=200)
    date_limit: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    redis_uri: Mapped[str] = mapped_column(String(255), nullable=False, default="")
