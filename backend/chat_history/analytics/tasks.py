# Em backend/chat_history/analytics/tasks.py (delegar para AnalyticsRoller)

import time
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from chat_history.celery_worker import celery_app
from chat_history.core.constants import CeleryConstants
from chat_history.core.database import SessionLocal
from chat_history.core.logging import LogContext
from .buckets import hourly_bucket_at
from .roller import AnalyticsRoller


@celery_app.task(
    name="rollup_previous_hour_task",
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={'max_retries': CeleryConstants.MAX_RETRIES},
    retry_backoff=CeleryConstants.RETRY_BACKOFF_SECONDS,
    soft_time_limit=CeleryConstants.SOFT_TIME_LIMIT_SECONDS,
    time_limit=CeleryConstants.HARD_TIME_LIMIT_SECONDS,
    acks_late=True
)
def rollup_previous_hour_task(self, now_iso: Optional[str] = None):
    now = datetime.fromisoformat(now_iso) if now_iso else datetime.utcnow()
    key = hourly_bucket_at(now - timedelta(hours=1))

    with LogContext("analytics.tasks", task_name="rollup_previous_hour", bucket_key=key.key, attempt=self.request.retries + 1) as task_logger:
        db: Session = SessionLocal()
        try:
            bucket = AnalyticsRoller(db).rollup_bucket(key)
            task_logger.info("Hourly rollup task completed", total_messages=bucket.total_messages)
            return key.key
        except Exception as exc:
            task_logger.error("Hourly rollup task failed", error=str(exc), error_type=type(exc).__name__)
            raise self.retry(exc=exc)
        finally:
            db.close()


@celery_app.task(
    name="rollup_day_task",
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={'max_retries': CeleryConstants.MAX_RETRIES},
    retry_backoff=CeleryConstants.RETRY_BACKOFF_SECONDS,
    soft_time_limit=CeleryConstants.SOFT_TIME_LIMIT_SECONDS,
    time_limit=CeleryConstants.HARD_TIME_LIMIT_SECONDS,
    acks_late=True
)
def rollup_day_task(self, day_iso: str):
    task_start_time = time.time()
    day = date.fromisoformat(day_iso)

    with LogContext("analytics.tasks", task_name="rollup_day", day=day_iso, attempt=self.request.retries + 1) as task_logger:
        db: Session = SessionLocal()
        try:
            buckets = AnalyticsRoller(db).rollup_day(day)
            task_logger.info(
                "Daily rollup task completed",
                buckets=len(buckets),
                total_duration_ms=round((time.time() - task_start_time) * 1000, 2),
            )
            return [bucket.bucket_key for bucket in buckets]
        except Exception as exc:
            task_logger.error("Daily rollup task failed", error=str(exc), error_type=type(exc).__name__)
            raise self.retry(exc=exc)
        finally:
            db.close()
