"""
Tests for click aggregation and the statistics service.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shortlink.core.clock import utcnow
from shortlink.core.exceptions import ShortCodeNotFoundError
from shortlink.db.models import ClickEvent, ShortLink
from shortlink.services import analytics
from shortlink.services.link_store import LinkStore
from shortlink.services.stats_service import StatsService

DAY_ONE = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
DAY_TWO = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)

IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def make_events() -> list[ClickEvent]:
    return [
        ClickEvent(timestamp=DAY_ONE, ip_address="1.1.1.1", referer="direct",
                   browser="Chrome", os="Windows", device_class="Desktop", country="US", region="CA"),
        ClickEvent(timestamp=DAY_ONE, ip_address="1.1.1.1", referer="https://news.example.com",
                   browser="Chrome", os="Windows", device_class="Desktop", country="US", region="NY"),
        ClickEvent(timestamp=DAY_TWO, ip_address="2.2.2.2", referer="direct",
                   browser="Firefox", os="Ubuntu", device_class="Desktop", country="DE"),
        ClickEvent(timestamp=DAY_TWO, ip_address="unknown", referer="direct", user_agent=IPHONE),
    ]


class TestAggregation:
    """Pure functions over a fixed event sequence."""

    def test_unique_visitors_ignore_unknown_ips(self):
        events = make_events() + [ClickEvent(timestamp=DAY_TWO, ip_address=None)]
        assert analytics.calculate_unique_visitors(events) == 2

    def test_clicks_by_day_uses_utc_date(self):
        assert analytics.calculate_clicks_by_day(make_events()) == {"2026-03-01": 2, "2026-03-02": 2}

    def test_naive_timestamps_are_utc(self):
        event = ClickEvent(timestamp=datetime(2026, 3, 1, 23, 30), ip_address="1.1.1.1")
        assert analytics.calculate_clicks_by_day([event]) == {"2026-03-01": 1}

    def test_visits_and_visitors_by_day(self):
        assert analytics.calculate_visits_and_visitors_by_day(make_events()) == {
            "2026-03-01": {"visits": 2, "visitors": 1},
            "2026-03-02": {"visits": 2, "visitors": 1},
        }

    def test_clicks_by_referer(self):
        events = make_events() + [ClickEvent(timestamp=DAY_TWO, referer="")]
        assert analytics.calculate_clicks_by_referer(events) == {"direct": 4, "https://news.example.com": 1}

    def test_derived_fields_fall_back_to_user_agent(self):
        events = make_events()

        assert analytics.calculate_clicks_by_browser(events) == {"Chrome": 2, "Firefox": 1, "Mobile Safari": 1}
        assert analytics.calculate_clicks_by_os(events) == {"Windows": 2, "Ubuntu": 1, "iOS": 1}
        assert analytics.calculate_clicks_by_device(events) == {"Desktop": 3, "Mobile": 1}

    def test_missing_location_is_unknown(self):
        events = make_events()

        assert analytics.calculate_clicks_by_country(events) == {"US": 2, "DE": 1, "Unknown": 1}
        assert analytics.calculate_clicks_by_region(events) == {"CA": 1, "NY": 1, "Unknown": 2}

    def test_deterministic(self):
        assert analytics.summarize_clicks(make_events()) == analytics.summarize_clicks(make_events())

    def test_empty(self):
        summary = analytics.summarize_clicks([])

        assert summary["unique_visitors"] == 0
        assert summary["clicks_by_day"] == {}
        assert summary["visits_and_visitors_by_day"] == {}


class TestStatsService:
    """Per-link and dashboard analytics backed by the store."""

    @pytest.mark.asyncio
    async def test_link_analytics(self, session):
        store = LinkStore(session)
        await store.add(ShortLink(code="abc1234", target_url="https://example.com"))
        for event in make_events():
            await store.record_click("abc1234", event, history_limit=1000)

        stats = await StatsService(session).get_link_analytics("abc1234")

        assert stats["short_code"] == "abc1234"
        assert stats["original_url"] == "https://example.com"
        assert stats["click_count"] == 4
        assert stats["unique_visitors"] == 2
        assert stats["is_active"] is True
        assert len(stats["clicks"]) == 4
        assert stats["clicks"][0]["device"] == "Desktop"
        assert stats["clicks_by_referer"] == {"direct": 3, "https://news.example.com": 1}
        assert stats["last_accessed"] is not None

    @pytest.mark.asyncio
    async def test_link_analytics_for_inactive_link(self, session):
        await LinkStore(session).add(ShortLink(code="abc1234", target_url="https://example.com", active=False))

        stats = await StatsService(session).get_link_analytics("abc1234")

        assert stats["is_active"] is False
        assert stats["clicks"] == []

    @pytest.mark.asyncio
    async def test_link_analytics_unknown_code(self, session):
        with pytest.raises(ShortCodeNotFoundError):
            await StatsService(session).get_link_analytics("missing")

    @pytest.mark.asyncio
    async def test_dashboard(self, session):
        store = LinkStore(session)
        now = utcnow()
        await store.add(ShortLink(code="old0001", target_url="https://a.example.com", owner_id="alice",
                                  created_at=now - timedelta(days=2)))
        await store.add(ShortLink(code="new0001", target_url="https://b.example.com", owner_id="bob",
                                  created_at=now))
        await store.add(ShortLink(code="gone001", target_url="https://c.example.com", owner_id="alice",
                                  active=False))
        await store.record_click("old0001", ClickEvent(timestamp=DAY_ONE, ip_address="1.1.1.1"), history_limit=10)
        await store.record_click("old0001", ClickEvent(timestamp=DAY_TWO, ip_address="1.1.1.1",
                                                       referer="https://news.example.com"), history_limit=10)
        await store.record_click("new0001", ClickEvent(timestamp=DAY_TWO, ip_address="2.2.2.2"), history_limit=10)

        stats = await StatsService(session, recent_limit=100, top_limit=1).get_dashboard_analytics()

        assert stats["total_urls"] == 2
        assert stats["total_clicks"] == 3
        assert [link["short_code"] for link in stats["recent_urls"]] == ["new0001", "old0001"]
        assert [link["short_code"] for link in stats["top_urls"]] == ["old0001"]
        assert stats["clicks_by_day"] == {"2026-03-01": 1, "2026-03-02": 2}
        assert stats["clicks_by_referer"] == {"direct": 2, "https://news.example.com": 1}

    @pytest.mark.asyncio
    async def test_dashboard_owner_filter(self, session):
        store = LinkStore(session)
        await store.add(ShortLink(code="alice01", target_url="https://a.example.com", owner_id="alice"))
        await store.add(ShortLink(code="bob0001", target_url="https://b.example.com", owner_id="bob"))

        stats = await StatsService(session).get_dashboard_analytics(owner_id="alice")

        assert stats["total_urls"] == 1
        assert [link["short_code"] for link in stats["recent_urls"]] == ["alice01"]
        assert stats["total_clicks"] == 0
        assert stats["clicks_by_day"] == {}
