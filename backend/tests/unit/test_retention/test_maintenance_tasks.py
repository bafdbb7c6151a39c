# backend/tests/unit/test_retention/test_maintenance_tasks.py

from datetime import date, datetime, timedelta

import pytest

from chat_history.retention.schemas import PurgeReport
from chat_history.retention.tasks import _horizons, daily_maintenance_task, run_retention_task


@pytest.fixture
def db_factory(mocker):
    return mocker.patch("chat_history.retention.tasks.SessionLocal")


def test_run_retention_task_uses_configured_horizons(mocker, db_factory):
    manager_cls = mocker.patch("chat_history.retention.tasks.RetentionManager")
    manager_cls.return_value.purge.return_value = PurgeReport(messages_deleted=3, sessions_deleted=1)

    result = run_retention_task.apply().get()

    manager_cls.return_value.purge.assert_called_once_with(timedelta(days=180), timedelta(days=365))
    assert result["messages_deleted"] == 3
    assert result["sessions_deleted"] == 1
    assert result["errors"] == {}
    db_factory.return_value.close.assert_called_once()


def test_run_retention_task_accepts_overrides(mocker, db_factory):
    manager_cls = mocker.patch("chat_history.retention.tasks.RetentionManager")
    manager_cls.return_value.purge.return_value = PurgeReport(errors={"analytics": "lock timeout"})

    result = run_retention_task.apply(kwargs={"message_days": 30, "analytics_days": 90}).get()

    manager_cls.return_value.purge.assert_called_once_with(timedelta(days=30), timedelta(days=90))
    assert result["errors"] == {"analytics": "lock timeout"}


def test_zero_days_are_passed_through_not_defaulted():
    # zero chega ao RetentionManager, que rejeita o horizonte
    assert _horizons(0, None) == (timedelta(0), timedelta(days=365))
    assert _horizons(None, 0) == (timedelta(days=180), timedelta(0))


def test_daily_maintenance_rolls_up_yesterday_before_purging(mocker, db_factory):
    calls = []
    roller_cls = mocker.patch("chat_history.retention.tasks.AnalyticsRoller")
    roller_cls.return_value.rollup_day.side_effect = lambda day: calls.append(("rollup", day)) or [object()] * 25
    manager_cls = mocker.patch("chat_history.retention.tasks.RetentionManager")
    manager_cls.return_value.purge.side_effect = (
        lambda message_horizon, analytics_horizon, now: calls.append(("purge", now)) or PurgeReport()
    )

    result = daily_maintenance_task.apply(kwargs={"now_iso": "2026-10-17T02:00:00"}).get()

    assert calls == [
        ("rollup", date(2026, 10, 16)),
        ("purge", datetime(2026, 10, 17, 2, 0)),
    ]
    assert result["messages_deleted"] == 0
    db_factory.return_value.close.assert_called_once()
