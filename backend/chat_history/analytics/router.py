from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from chat_history.core.constants import ReportingConstants
from chat_history.core.database import get_db
from chat_history.core.settings import settings
from . import schemas
from .reporting import ReportingService
from .roller import AnalyticsRoller

router = APIRouter()


@router.get("/recent-activity", response_model=List[schemas.AnalyticsBucket], summary="Hourly buckets of the last hours")
def get_recent_activity(
    hours: int = Query(default=settings.RECENT_ACTIVITY_HOURS, ge=1, le=ReportingConstants.MAX_RECENT_ACTIVITY_HOURS),
    refresh: bool = True,
    db: Session = Depends(get_db),
):
    return ReportingService(db).get_recent_activity(hours=hours, refresh=refresh)


@router.get("/top-intents", response_model=List[schemas.IntentFrequency], summary="Popular intents of a day")
def get_top_intents(day: Optional[date] = None, db: Session = Depends(get_db)):
    return ReportingService(db).get_top_intents(day or datetime.utcnow().date())


@router.get("/dashboard", response_model=List[schemas.AnalyticsBucket], summary="Daily buckets for the admin dashboard")
def get_dashboard_summary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    refresh: bool = True,
    db: Session = Depends(get_db),
):
    end = end or datetime.utcnow().date()
    start = start or end - timedelta(days=settings.DASHBOARD_DAYS - 1)
    return ReportingService(db).get_dashboard_summary(start, end, refresh=refresh)


@router.post("/rollup", response_model=schemas.AnalyticsBucket, status_code=status.HTTP_201_CREATED, summary="Recompute one analytics bucket")
def rollup_bucket(request: schemas.RollupRequest, db: Session = Depends(get_db)):
    return AnalyticsRoller(db).rollup(request.day, request.granularity, request.hour)
