"""Recording and counting article delivery outcomes."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feed_relay.db.time import utcnow
from feed_relay.models.delivery_record import ArticleDeliveryStatus, DeliveryRecord
from feed_relay.schemas.delivery import ArticleDeliveryOutcome, Failed, Rejected

logger = logging.getLogger(__name__)

# Statuses that consumed delivery capacity at Discord.
COUNTED_STATUSES = (ArticleDeliveryStatus.SENT.value, ArticleDeliveryStatus.REJECTED.value)


class DeliveryRecordService:
    """Append-only store of delivery attempts with windowed counts.

    Throttling policy lives upstream; this service only answers how many
    deliveries happened recently.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(self, feed_id: str, outcome: ArticleDeliveryOutcome) -> DeliveryRecord:
        """Persist one delivery attempt for a feed."""
        record = DeliveryRecord(feed_id=feed_id, status=outcome.status.value)
        if isinstance(outcome, Failed | Rejected):
            record.error_code = outcome.error_code
            record.internal_message = outcome.internal_message

        self.session.add(record)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(record)
        logger.debug("Recorded %s delivery for feed %s", record.status, feed_id)
        return record

    async def count_recent(
        self,
        feed_id: str,
        window_seconds: int,
        *,
        now: datetime | None = None,
    ) -> int:
        """Count sent and rejected deliveries created in the last ``window_seconds``."""
        upper = now or utcnow()
        lower = upper - timedelta(seconds=window_seconds)
        stmt = select(func.count(DeliveryRecord.id)).where(
            DeliveryRecord.feed_id == feed_id,
            DeliveryRecord.status.in_(COUNTED_STATUSES),
            DeliveryRecord.created_at >= lower,
            DeliveryRecord.created_at <= upper,
        )
        return int(await self.session.scalar(stmt) or 0)
