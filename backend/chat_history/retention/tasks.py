# Em backend/chat_history/retention/tasks.py (delegar para RetentionManager)

import time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from chat_history.analytics.roller import AnalyticsRoller
from chat_history.celery_worker import celery_app
from chat_history.core.constants import CeleryConstants
from chat_history.core.database import SessionLocal
from chat_history.core.logging import LogContext
from chat_history.core.settings import settings
from .manager import RetentionManager


def _horizons(message_days: Optional[int], analytics_days: Optional[int]):
    return (
        timedelta(days=settings.MESSAGE_RETENTION_DAYS if message_days is None else message_days),
        timedelta(days=settings.ANALYTICS_RETENTION_DAYS if analytics_days is None else analytics_days),
    )


@celery_app.task(
    name="run_retention_task",
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={'max_retries': CeleryConstants.MAX_RETRIES},
    retry_backoff=CeleryConstants.RETRY_BACKOFF_SECONDS,
    soft_time_limit=CeleryConstants.SOFT_TIME_LIMIT_SECONDS,
    time_limit=CeleryConstants.HARD_TIME_LIMIT_SECONDS,
    acks_late=True
)
def run_retention_task(self, message_days: Optional[int] = None, analytics_days: Optional[int] = None):
    message_horizon, analytics_horizon = _horizons(message_days, analytics_days)

    with LogContext("retention.tasks", task_name="run_retention", attempt=self.request.retries + 1) as task_logger:
        db: Session = SessionLocal()
        try:
            report = RetentionManager(db).purge(message_horizon, analytics_horizon)
            if not report.ok:
                task_logger.warning("Retention finished with failed categories", errors=report.errors)
            return report.model_dump(mode="json")
        except Exception as exc:
            task_logger.error("Retention task failed", error=str(exc), error_type=type(exc).__name__)
            raise self.retry(exc=exc)
        finally:
            db.close()


@celery_app.task(
    name="daily_maintenance_task",
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={'max_retries': CeleryConstants.MAX_RETRIES},
    retry_backoff=CeleryConstants.RETRY_BACKOFF_SECONDS,
    soft_time_limit=CeleryConstants.SOFT_TIME_LIMIT_SECONDS,
    time_limit=CeleryConstants.HARD_TIME_LIMIT_SECONDS,
    acks_late=True
)
def daily_maintenance_task(self, now_iso: Optional[str] = None):
    """Rollups de ontem primeiro, retenção depois: a purga nunca corre antes da agregação."""
    task_start_time = time.time()
    now = datetime.fromisoformat(now_iso) if now_iso else datetime.utcnow()
    yesterday = (now - timedelta(days=1)).date()
    message_horizon, analytics_horizon = _horizons(None, None)

    with LogContext("retention.tasks", task_name="daily_maintenance", day=yesterday.isoformat(), attempt=self.request.retries + 1) as task_logger:
        db: Session = SessionLocal()
        try:
            buckets = AnalyticsRoller(db).rollup_day(yesterday)
            report = RetentionManager(db).purge(message_horizon, analytics_horizon, now=now)
            task_logger.info(
                "Daily maintenance completed",
                buckets=len(buckets),
                messages_deleted=report.messages_deleted,
                sessions_deleted=report.sessions_deleted,
                analytics_deleted=report.analytics_deleted,
                failed_categories=sorted(report.errors),
                total_duration_ms=round((time.time() - task_start_time) * 1000, 2),
            )
            return report.model_dump(mode="json")
        except Exception as exc:
            task_logger.error("Daily maintenance failed", error=str(exc), error_type=type(exc).__name__)
            raise self.retry(exc=exc)
        finally:
            db.close()
