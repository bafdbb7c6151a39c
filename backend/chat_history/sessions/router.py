from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chat_history.core.database import get_db
from chat_history.ingestion.service import IngestionService
from . import schemas
from .aggregator import SessionAggregator

router = APIRouter()


@router.get(
    "/{session_id}",
    response_model=schemas.SessionSummary,
    summary="Get a session summary",
    responses={404: {"description": "Session has no messages"}},
)
def get_session_summary(session_id: str, db: Session = Depends(get_db)):
    # finalize reconcilia com as mensagens antes de responder
    summary = SessionAggregator(db).finalize(session_id)
    db.commit()
    return summary


@router.put(
    "/{session_id}/outcome",
    response_model=schemas.SessionSummary,
    summary="Set session satisfaction / resolution status",
    responses={404: {"description": "Session not found"}},
)
def set_session_outcome(session_id: str, outcome: schemas.SessionOutcomeUpdate, db: Session = Depends(get_db)):
    return IngestionService(db).set_session_outcome(
        session_id,
        satisfaction=outcome.satisfaction,
        resolution_status=outcome.resolution_status,
    )
