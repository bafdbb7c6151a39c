# backend/tests/unit/test_analytics/test_buckets.py

from datetime import date, datetime

import pytest

from chat_history.analytics.buckets import DailyBucket, HourlyBucket, bucket_for, hourly_bucket_at
from chat_history.analytics.inflight import InFlightRollups
from chat_history.analytics.models import Granularity
from chat_history.core.exceptions import InvalidBucketError

DAY = date(2026, 10, 17)


class TestBucketKeys:

    def test_hourly_bucket(self):
        key = HourlyBucket(DAY, 13)
        assert key.key == "2026-10-17/h13"
        assert key.granularity is Granularity.HOUR
        assert key.window() == (datetime(2026, 10, 17, 13), datetime(2026, 10, 17, 14))

    def test_daily_bucket(self):
        key = DailyBucket(DAY)
        assert key.key == "2026-10-17/day"
        assert key.hour is None
        assert key.window() == (datetime(2026, 10, 17), datetime(2026, 10, 18))

    def test_last_hour_window_crosses_midnight(self):
        assert HourlyBucket(DAY, 23).window()[1] == datetime(2026, 10, 18)

    def test_bucket_for_accepts_enum_and_string(self):
        assert bucket_for(DAY, Granularity.HOUR, 0) == HourlyBucket(DAY, 0)
        assert bucket_for(DAY, "day") == DailyBucket(DAY)

    @pytest.mark.parametrize("granularity,hour", [
        (Granularity.HOUR, None),
        (Granularity.HOUR, 24),
        (Granularity.DAY, 5),
        ("minute", None),
    ])
    def test_bucket_for_rejects_invalid_combinations(self, granularity, hour):
        with pytest.raises(InvalidBucketError):
            bucket_for(DAY, granularity, hour)

    def test_hourly_bucket_at(self):
        assert hourly_bucket_at(datetime(2026, 10, 17, 9, 59, 59)) == HourlyBucket(DAY, 9)


class TestInFlightRollups:

    def test_tracks_oldest_window(self):
        registry = InFlightRollups()
        assert registry.oldest_window_start() is None

        older = datetime(2026, 10, 16, 10)
        newer = datetime(2026, 10, 17, 10)
        with registry.track(newer):
            with registry.track(older):
                assert registry.oldest_window_start() == older
            assert registry.oldest_window_start() == newer
        assert registry.oldest_window_start() is None

    def test_releases_window_on_error(self):
        registry = InFlightRollups()
        with pytest.raises(RuntimeError):
            with registry.track(datetime(2026, 10, 17, 10)):
                raise RuntimeError("boom")
        assert registry.oldest_window_start() is None

    def test_same_window_counted_twice(self):
        registry = InFlightRollups()
        window = datetime(2026, 10, 17, 10)
        with registry.track(window):
            with registry.track(window):
                pass
            assert registry.oldest_window_start() == window
