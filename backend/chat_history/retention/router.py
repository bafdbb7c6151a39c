from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chat_history.core.database import get_db
from chat_history.ingestion.service import IngestionService
from . import schemas

router = APIRouter()


@router.post("/retention", response_model=schemas.PurgeReport, summary="Run the retention purge now")
def run_retention(request: schemas.RetentionRequest, db: Session = Depends(get_db)):
    message_horizon = timedelta(days=request.message_retention_days) if request.message_retention_days is not None else None
    analytics_horizon = timedelta(days=request.analytics_retention_days) if request.analytics_retention_days is not None else None
    return IngestionService(db).run_retention(message_horizon, analytics_horizon)
