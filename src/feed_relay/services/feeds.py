"""Querying and updating feeds with derived health status."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import Select, and_, case, delete, func, null, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feed_relay.core.exceptions import FeedNotFoundError
from feed_relay.core.settings import minutes_to_seconds, settings
from feed_relay.db.time import utcnow
from feed_relay.models.feed import FailRecord, Feed, FeedSchedule
from feed_relay.schemas.feed import DetailedFeed, FeedFilter, FeedStatus, FeedUpdate

__all__ = ["FeedsService"]

logger = logging.getLogger(__name__)

_FEED_FIELDS = (
    "id",
    "title",
    "url",
    "guild",
    "channel",
    "text",
    "webhook",
    "format_tables",
    "img_links_existence",
    "img_previews",
    "added_at",
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FeedsService:
    """Feed reads and partial updates.

    Status is never stored on the feed: every read joins against the fail
    record for the feed URL and treats failures newer than the threshold as
    ``FAILED``.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        failure_threshold: timedelta | None = None,
        default_refresh_rate_seconds: int | None = None,
    ) -> None:
        self.session = session
        self.failure_threshold = failure_threshold or timedelta(
            hours=settings.feed_failure_threshold_hours
        )
        self.default_refresh_rate_seconds = (
            default_refresh_rate_seconds or settings.default_refresh_rate_seconds
        )

    async def find_many(
        self,
        filters: FeedFilter | None = None,
        *,
        skip: int = 0,
        limit: int = 100,
        search: str | None = None,
    ) -> list[DetailedFeed]:
        """Return feeds matching the filter and search, newest first.

        ``search`` is a case-insensitive substring matched against the URL or
        the title.
        """
        stmt = (
            self._detailed_select(utcnow())
            .where(*self._conditions(filters, search))
            .order_by(Feed.added_at.desc(), Feed.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        rows = result.all()
        schedules = await self._schedules()
        return [
            self._to_detailed(feed, status, fail_reason, schedules)
            for feed, status, fail_reason in rows
        ]

    async def count_many(self, filters: FeedFilter | None = None, *, search: str | None = None) -> int:
        """Count feeds with the same filter and search semantics as ``find_many``."""
        stmt = select(func.count(Feed.id)).where(*self._conditions(filters, search))
        return int(await self.session.scalar(stmt) or 0)

    async def get_feed(self, feed_id: str) -> DetailedFeed | None:
        """Return a single feed by id, or None if it does not exist."""
        found = await self.find_many(FeedFilter(id=feed_id), skip=0, limit=1)
        return found[0] if found else None

    async def update_one(self, feed_id: str, updates: FeedUpdate) -> DetailedFeed | None:
        """Merge text and webhook changes into a feed.

        ``text`` is only written when provided. A webhook with an empty id
        removes the stored webhook object; any other webhook id replaces the
        object entirely. Returns None if no feed matched.
        """
        values: dict[str, Any] = {}
        if updates.text is not None:
            values["text"] = updates.text

        webhook = updates.webhook
        if webhook is not None and webhook.id is not None:
            if webhook.id == "":
                values["webhook"] = null()
            else:
                values["webhook"] = webhook.model_dump(exclude_none=True)

        if values:
            table = Feed.__table__
            rowcount = await self._write(update(table).where(table.c.id == feed_id).values(values))
            if rowcount == 0:
                return None
            logger.info("Updated feed %s (%s)", feed_id, sorted(values))

        return await self.get_feed(feed_id)

    async def refresh(self, feed_id: str) -> DetailedFeed:
        """Clear the failure for a feed's URL and return it with status OK.

        Raises:
            FeedNotFoundError: If the feed does not exist.
        """
        url = await self.session.scalar(select(Feed.url).where(Feed.id == feed_id))
        if url is None:
            raise FeedNotFoundError(f"Feed {feed_id} does not exist")

        await self._write(delete(FailRecord).where(FailRecord.url == url))
        logger.info("Refreshed feed %s", feed_id)

        feed = await self.get_feed(feed_id)
        if feed is None:
            raise FeedNotFoundError(f"Feed {feed_id} does not exist")
        return feed.model_copy(update={"status": FeedStatus.OK, "fail_reason": None})

    def _detailed_select(self, now: datetime) -> Select[Any]:
        cutoff = now - self.failure_threshold
        status = case(
            (FailRecord.failed_at > cutoff, FeedStatus.FAILED.value),
            else_=FeedStatus.OK.value,
        ).label("status")
        return select(Feed, status, FailRecord.reason.label("fail_reason")).outerjoin(
            FailRecord, FailRecord.url == Feed.url
        )

    @staticmethod
    def _conditions(filters: FeedFilter | None, search: str | None) -> list[Any]:
        conditions: list[Any] = []
        if filters is not None:
            if filters.id is not None:
                conditions.append(Feed.id == filters.id)
            if filters.guild is not None:
                conditions.append(Feed.guild == filters.guild)
            if filters.url is not None:
                conditions.append(Feed.url == filters.url)
            if filters.channel is not None:
                conditions.append(Feed.channel == filters.channel)
        if search:
            pattern = f"%{_escape_like(search)}%"
            conditions.append(
                or_(
                    Feed.url.ilike(pattern, escape="\\"),
                    Feed.title.ilike(pattern, escape="\\"),
                )
            )
        return [and_(*conditions)] if conditions else []

    async def _write(self, stmt: Any) -> int:
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount

    async def _schedules(self) -> Sequence[FeedSchedule]:
        result = await self.session.scalars(select(FeedSchedule).order_by(FeedSchedule.name))
        return result.all()

    def _refresh_rate_seconds(self, feed: Feed, schedules: Sequence[FeedSchedule]) -> int:
        for schedule in schedules:
            if schedule.matches(feed.id, feed.url):
                return minutes_to_seconds(schedule.refresh_rate_minutes)
        return self.default_refresh_rate_seconds

    def _to_detailed(
        self,
        feed: Feed,
        status: str,
        fail_reason: str | None,
        schedules: Sequence[FeedSchedule],
    ) -> DetailedFeed:
        failed = status == FeedStatus.FAILED.value
        return DetailedFeed(
            **{name: getattr(feed, name) for name in _FEED_FIELDS},
            status=FeedStatus.FAILED if failed else FeedStatus.OK,
            fail_reason=fail_reason if failed else None,
            refresh_rate_seconds=self._refresh_rate_seconds(feed, schedules),
        )
