from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chat_history.core.constants import ReportingConstants
from chat_history.core.database import get_db
from chat_history.core.logging import get_logger
from . import schemas
from .frequency import FrequencyIndex

router = APIRouter()
logger = get_logger("queries.router")


@router.get("/top", response_model=List[schemas.QueryFrequencyEntry], summary="Most frequent normalized queries")
def get_top_queries(
    n: int = Query(default=ReportingConstants.TOP_QUERIES_DEFAULT, ge=1, le=ReportingConstants.TOP_QUERIES_MAX),
    db: Session = Depends(get_db),
):
    return FrequencyIndex(db).top(n)


@router.put(
    "/suggested-response",
    response_model=schemas.QueryFrequencyEntry,
    summary="Curate the suggested response of a query",
    responses={404: {"description": "Query not indexed"}},
)
def set_suggested_response(update: schemas.SuggestedResponseUpdate, db: Session = Depends(get_db)):
    entry = FrequencyIndex(db).set_suggested_response(update.query, update.suggested_response)
    db.commit()
    return entry


@router.delete("/", response_model=schemas.ResetResult, summary="Administrative reset of the frequency index")
def reset_queries(query: Optional[str] = None, db: Session = Depends(get_db)):
    deleted = FrequencyIndex(db).reset(query)
    db.commit()
    logger.warning("Frequency index reset via API", query=query, deleted=deleted)
    return schemas.ResetResult(deleted=deleted)
