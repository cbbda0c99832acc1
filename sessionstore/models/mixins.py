from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)


class MessageCountersMixin:
    """One counter per message kind, see ``sessionstore.events.COUNTER_COLUMNS``."""

    count_text_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_image_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_voice_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_video_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_sticker_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_location_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_contact_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_document_msg: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
