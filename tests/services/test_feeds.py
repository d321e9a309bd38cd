from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from feed_relay.core.exceptions import FeedNotFoundError
from feed_relay.db.time import utcnow
from feed_relay.models import FailRecord, Feed, FeedSchedule
from feed_relay.schemas.feed import FeedFilter, FeedStatus, FeedUpdate, FeedWebhookUpdate
from feed_relay.services.feeds import FeedsService

DEFAULT_REFRESH_SECONDS = 600

MakeFeed = Callable[..., Awaitable[Feed]]
MakeFailRecord = Callable[..., Awaitable[FailRecord]]


@pytest.fixture()
def service(db_session: AsyncSession) -> FeedsService:
    return FeedsService(
        db_session,
        failure_threshold=timedelta(hours=18),
        default_refresh_rate_seconds=DEFAULT_REFRESH_SECONDS,
    )


async def _stored_feed(db_session: AsyncSession, feed_id: str) -> Feed:
    result = await db_session.scalars(
        select(Feed).where(Feed.id == feed_id).execution_options(populate_existing=True)
    )
    return result.one()


class TestFindMany:
    @pytest.mark.asyncio
    async def test_does_not_return_feeds_that_do_not_match_filters(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        url = "https://example.com/feed"
        await make_feed(url=url)
        await make_feed(url=url + "1")

        result = await service.find_many(FeedFilter(url=url), skip=0, limit=1000)

        assert len(result) == 1
        assert result[0].url == url

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_over_url_and_title(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        guild = "guild-id"
        feeds = [
            await make_feed(url="goog", guild=guild),
            await make_feed(title="google", guild=guild),
            await make_feed(title="GOO", guild=guild),
            await make_feed(url="GOo", guild=guild),
            await make_feed(title="bing", guild=guild),
            await make_feed(title="google", guild="another-guild"),
        ]

        result = await service.find_many(FeedFilter(guild=guild), skip=0, limit=1000, search="go")

        assert sorted(feed.id for feed in result) == sorted(feed.id for feed in feeds[:4])

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        await make_feed(title="100% news")
        await make_feed(title="1000 news")

        result = await service.find_many(search="0%")

        assert [feed.title for feed in result] == ["100% news"]

    @pytest.mark.asyncio
    async def test_respects_skip_and_limit_newest_first(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        await make_feed(url="2020", added_at=datetime(2020, 2, 1))
        await make_feed(url="2019", added_at=datetime(2019, 2, 1))
        await make_feed(url="2021", added_at=datetime(2021, 2, 1))

        result = await service.find_many(FeedFilter(), skip=1, limit=1)

        assert [feed.url for feed in result] == ["2020"]

    @pytest.mark.asyncio
    async def test_added_at_is_returned_in_utc(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        added = datetime(2024, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))
        feed = await make_feed(added_at=added)

        found = await service.get_feed(feed.id)

        assert found.added_at == added
        assert found.added_at.tzinfo == UTC

    @pytest.mark.asyncio
    async def test_returns_failed_status_with_reason(
        self, service: FeedsService, make_feed: MakeFeed, make_fail_record: MakeFailRecord
    ) -> None:
        feed = await make_feed()
        await make_fail_record(feed.url, failed_at=utcnow() - timedelta(hours=2), reason="timeout")

        result = await service.find_many(FeedFilter(id=feed.id))

        assert result[0].status == FeedStatus.FAILED
        assert result[0].fail_reason == "timeout"

    @pytest.mark.asyncio
    async def test_failures_older_than_threshold_do_not_count(
        self, service: FeedsService, make_feed: MakeFeed, make_fail_record: MakeFailRecord
    ) -> None:
        feed = await make_feed()
        await make_fail_record(feed.url, failed_at=utcnow() - timedelta(hours=19))

        result = await service.find_many(FeedFilter(id=feed.id))

        assert result[0].status == FeedStatus.OK
        assert result[0].fail_reason is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("hours_ago", "offset_hours", "expected"),
        [
            (19, 10, FeedStatus.OK),
            (19, -8, FeedStatus.OK),
            (2, 10, FeedStatus.FAILED),
            (2, -8, FeedStatus.FAILED),
        ],
    )
    async def test_status_ignores_time_zone_of_failure(
        self,
        service: FeedsService,
        make_feed: MakeFeed,
        make_fail_record: MakeFailRecord,
        hours_ago: int,
        offset_hours: int,
        expected: FeedStatus,
    ) -> None:
        feed = await make_feed()
        failed_at = (utcnow() - timedelta(hours=hours_ago)).astimezone(
            timezone(timedelta(hours=offset_hours))
        )
        await make_fail_record(feed.url, failed_at=failed_at)

        assert (await service.get_feed(feed.id)).status == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("hours_later", "expected"), [(17, FeedStatus.FAILED), (18, FeedStatus.OK)])
    async def test_threshold_boundary(
        self,
        mocker,
        service: FeedsService,
        make_feed: MakeFeed,
        make_fail_record: MakeFailRecord,
        hours_later: int,
        expected: FeedStatus,
    ) -> None:
        failed_at = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        mocker.patch(
            "feed_relay.services.feeds.utcnow",
            return_value=failed_at + timedelta(hours=hours_later),
        )
        feed = await make_feed()
        await make_fail_record(feed.url, failed_at=failed_at)

        assert (await service.get_feed(feed.id)).status == expected

    @pytest.mark.asyncio
    async def test_returns_ok_without_fail_record(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed()

        result = await service.find_many(FeedFilter(id=feed.id))

        assert result[0].status == FeedStatus.OK

    @pytest.mark.asyncio
    async def test_fail_record_is_matched_by_url(
        self, service: FeedsService, make_feed: MakeFeed, make_fail_record: MakeFailRecord
    ) -> None:
        shared_url = "https://example.com/shared.xml"
        first = await make_feed(url=shared_url, guild="g1")
        second = await make_feed(url=shared_url, guild="g2")
        healthy = await make_feed()
        await make_fail_record(shared_url)

        statuses = {
            feed.id: feed.status for feed in await service.find_many(FeedFilter(), limit=10)
        }

        assert statuses == {
            first.id: FeedStatus.FAILED,
            second.id: FeedStatus.FAILED,
            healthy.id: FeedStatus.OK,
        }

    @pytest.mark.asyncio
    async def test_returns_default_refresh_rate(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed()

        result = await service.find_many(FeedFilter(id=feed.id))

        assert result[0].refresh_rate_seconds == DEFAULT_REFRESH_SECONDS

    @pytest.mark.asyncio
    async def test_returns_schedule_refresh_rate(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        by_keyword = await make_feed(url="https://www.Reddit.com/r/python/.rss")
        by_id = await make_feed()
        unscheduled = await make_feed()
        db_session.add_all(
            [
                FeedSchedule(name="reddit", keywords=["reddit.com"], feed_ids=[], refresh_rate_minutes=2),
                FeedSchedule(name="vip", keywords=[], feed_ids=[by_id.id], refresh_rate_minutes=1),
            ]
        )
        await db_session.commit()

        rates = {feed.id: feed.refresh_rate_seconds for feed in await service.find_many(limit=10)}

        assert rates[by_keyword.id] == 120
        assert rates[by_id.id] == 60
        assert rates[unscheduled.id] == DEFAULT_REFRESH_SECONDS

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("minutes", "seconds"), [(0.005, 1), (0.1, 6), (1.5, 90), (0.0251, 2)])
    async def test_sub_second_schedules_round_up(
        self,
        service: FeedsService,
        db_session: AsyncSession,
        make_feed: MakeFeed,
        minutes: float,
        seconds: int,
    ) -> None:
        feed = await make_feed()
        db_session.add(
            FeedSchedule(name="fast", keywords=[], feed_ids=[feed.id], refresh_rate_minutes=minutes)
        )
        await db_session.commit()

        result = await service.find_many(FeedFilter(id=feed.id))

        assert result[0].refresh_rate_seconds == seconds

    @pytest.mark.asyncio
    async def test_schedule_rate_must_be_positive(self, db_session: AsyncSession) -> None:
        db_session.add(FeedSchedule(name="broken", keywords=[], feed_ids=[], refresh_rate_minutes=0))

        with pytest.raises(IntegrityError):
            await db_session.commit()


class TestCountMany:
    @pytest.mark.asyncio
    async def test_returns_the_correct_count(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        await make_feed(title="2020", guild="server-1")
        await make_feed(title="2019", guild="server-1")
        await make_feed(title="2018", guild="server-2")

        assert await service.count_many(FeedFilter(guild="server-1")) == 2

    @pytest.mark.asyncio
    async def test_works_with_search(self, service: FeedsService, make_feed: MakeFeed) -> None:
        await make_feed(title="google", guild="server-1")
        await make_feed(title="yahoo", guild="server-1")
        await make_feed(url="google.com", guild="server-1")
        await make_feed(title="bing", guild="server-1")

        assert await service.count_many(FeedFilter(guild="server-1"), search="goo") == 2


class TestUpdateOne:
    @pytest.mark.asyncio
    async def test_returns_none_if_no_feed_is_found(self, service: FeedsService) -> None:
        assert await service.update_one("e" * 24, FeedUpdate(text="hello")) is None

    @pytest.mark.asyncio
    async def test_updates_the_text(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed(text="old-text")

        result = await service.update_one(feed.id, FeedUpdate(text="my-new-text"))

        assert result is not None
        assert result.id == feed.id
        assert result.text == "my-new-text"
        assert (await _stored_feed(db_session, feed.id)).text == "my-new-text"

    @pytest.mark.asyncio
    async def test_does_not_update_the_text_if_not_provided(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed(text="old-text")

        await service.update_one(feed.id, FeedUpdate(text=None))

        assert (await _stored_feed(db_session, feed.id)).text == "old-text"

    @pytest.mark.asyncio
    async def test_sets_webhook_when_none_existed(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed()

        result = await service.update_one(
            feed.id, FeedUpdate(webhook=FeedWebhookUpdate(id="new-hook"))
        )

        assert result is not None
        assert result.webhook == {"id": "new-hook"}

    @pytest.mark.asyncio
    async def test_overwriting_webhook_drops_old_data(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed(webhook={"id": "old-hook", "name": "Old Name"})

        await service.update_one(feed.id, FeedUpdate(webhook=FeedWebhookUpdate(id="new-hook")))

        assert (await _stored_feed(db_session, feed.id)).webhook == {"id": "new-hook"}

    @pytest.mark.asyncio
    async def test_empty_webhook_id_removes_webhook(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed(webhook={"id": "old-hook"})

        result = await service.update_one(feed.id, FeedUpdate(webhook=FeedWebhookUpdate(id="")))

        assert result is not None
        assert result.webhook is None
        assert (await _stored_feed(db_session, feed.id)).webhook is None

    @pytest.mark.asyncio
    async def test_absent_webhook_is_left_untouched(
        self, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed(webhook={"id": "old-hook"})

        await service.update_one(feed.id, FeedUpdate(text="t", webhook=FeedWebhookUpdate()))

        assert (await _stored_feed(db_session, feed.id)).webhook == {"id": "old-hook"}


class TestRefresh:
    @pytest.mark.asyncio
    async def test_raises_if_feed_does_not_exist(self, service: FeedsService) -> None:
        with pytest.raises(FeedNotFoundError):
            await service.refresh("e" * 24)

    @pytest.mark.asyncio
    async def test_deletes_the_fail_record(
        self,
        service: FeedsService,
        db_session: AsyncSession,
        make_feed: MakeFeed,
        make_fail_record: MakeFailRecord,
    ) -> None:
        feed = await make_feed()
        await make_fail_record(feed.url, failed_at=datetime(2020, 2, 1))

        await service.refresh(feed.id)

        remaining = await db_session.scalar(select(FailRecord).where(FailRecord.url == feed.url))
        assert remaining is None

    @pytest.mark.asyncio
    async def test_returns_status_ok_for_recent_failure(
        self, service: FeedsService, make_feed: MakeFeed, make_fail_record: MakeFailRecord
    ) -> None:
        feed = await make_feed()
        await make_fail_record(feed.url)
        assert (await service.get_feed(feed.id)).status == FeedStatus.FAILED

        result = await service.refresh(feed.id)

        assert result.status == FeedStatus.OK
        assert (await service.get_feed(feed.id)).status == FeedStatus.OK

    @pytest.mark.asyncio
    async def test_refreshing_healthy_feed_succeeds(
        self, service: FeedsService, make_feed: MakeFeed
    ) -> None:
        feed = await make_feed()

        first = await service.refresh(feed.id)
        second = await service.refresh(feed.id)

        assert first.status == second.status == FeedStatus.OK


@pytest.mark.asyncio
async def test_get_feed_returns_none_when_missing(service: FeedsService) -> None:
    assert await service.get_feed("e" * 24) is None


@pytest.mark.asyncio
async def test_failed_update_is_rolled_back(
    mocker, service: FeedsService, db_session: AsyncSession, make_feed: MakeFeed
) -> None:
    feed_id = (await make_feed(text="old-text")).id
    mocker.patch.object(
        db_session,
        "commit",
        side_effect=OperationalError("UPDATE feed", {}, Exception("database is locked")),
    )

    with pytest.raises(OperationalError):
        await service.update_one(feed_id, FeedUpdate(text="new-text"))

    assert (await _stored_feed(db_session, feed_id)).text == "old-text"
