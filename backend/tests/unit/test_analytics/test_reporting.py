# backend/tests/unit/test_analytics/test_reporting.py

from datetime import timedelta

import pytest

from chat_history.analytics.reporting import ReportingService
from chat_history.core.exceptions import InvalidBucketError


@pytest.fixture
def reporting(db_session):
    return ReportingService(db_session)


@pytest.fixture
def traffic(submit, now):
    submit(text="Where is my order?", intent="order_status", confidence=0.8, created_at=now)
    submit(text="Order status", intent="order_status", confidence=0.6, created_at=now + timedelta(minutes=1))
    submit(session_id="xyz", text="track order", intent="order_status", confidence=1.0, created_at=now)
    submit(session_id="xyz", text="refund", intent="refund", created_at=now - timedelta(hours=1))
    submit(session_id="old", text="hi", intent="greeting", created_at=now - timedelta(days=1))


class TestRecentActivity:

    def test_returns_hourly_buckets_newest_first(self, reporting, traffic, now):
        buckets = reporting.get_recent_activity(hours=3, now=now)

        assert [b.hour_recorded for b in buckets] == [12, 11, 10]
        assert [b.total_messages for b in buckets] == [3, 1, 0]

    def test_window_crosses_midnight(self, reporting, traffic, now):
        buckets = reporting.get_recent_activity(hours=14, now=now)
        assert len(buckets) == 14
        assert buckets[-1].date_recorded == now.date() - timedelta(days=1)
        assert buckets[-1].hour_recorded == 23

    @pytest.mark.parametrize("hours", [0, 169])
    def test_rejects_window_out_of_range(self, reporting, hours):
        with pytest.raises(InvalidBucketError):
            reporting.get_recent_activity(hours=hours)

    def test_without_refresh_only_reads_stored_buckets(self, reporting, traffic, now):
        assert reporting.get_recent_activity(hours=3, now=now, refresh=False) == []

        reporting.roller.rollup(now.date(), "hour", 11)
        stored = reporting.get_recent_activity(hours=3, now=now, refresh=False)
        assert [b.hour_recorded for b in stored] == [11]


class TestDashboardSummary:

    def test_daily_buckets_newest_first(self, reporting, traffic, now):
        today = now.date()
        buckets = reporting.get_dashboard_summary(today - timedelta(days=2), today)

        assert [b.date_recorded for b in buckets] == [today, today - timedelta(days=1), today - timedelta(days=2)]
        assert [b.total_messages for b in buckets] == [4, 1, 0]

    def test_single_day(self, reporting, traffic, now):
        assert len(reporting.get_dashboard_summary(now.date(), now.date())) == 1

    def test_rejects_inverted_range(self, reporting, now):
        with pytest.raises(InvalidBucketError):
            reporting.get_dashboard_summary(now.date(), now.date() - timedelta(days=1))


class TestTopIntents:

    def test_orders_by_frequency_then_name(self, reporting, traffic, now):
        intents = reporting.get_top_intents(now.date())

        assert [i.intent for i in intents] == ["order_status", "refund"]
        order_status = intents[0]
        assert order_status.frequency == 3
        assert order_status.unique_sessions == 2
        assert order_status.avg_confidence == pytest.approx(0.8)
        assert intents[1].avg_confidence is None

    def test_empty_day(self, reporting, now):
        assert reporting.get_top_intents(now.date() + timedelta(days=1)) == []
