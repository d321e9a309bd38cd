# src/feed_relay/models/delivery_record.py
"""SQLAlchemy model for per-article delivery outcomes."""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from feed_relay.db.session import Base
from feed_relay.db.time import UTCDateTime, utcnow


class ArticleDeliveryStatus(str, enum.Enum):
    """Terminal and intermediate states of a single delivery attempt."""

    PENDING_DELIVERY = "pending-delivery"
    SENT = "sent"
    FAILED = "failed"
    REJECTED = "rejected"
    FILTERED_OUT = "filtered-out"


class DeliveryRecord(Base):
    """Append-only fact describing what happened to one delivery attempt.

    ``error_code`` and ``internal_message`` are only populated for failed
    and rejected attempts.
    """

    __tablename__ = "delivery_record"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    feed_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    internal_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        index=True,
    )
