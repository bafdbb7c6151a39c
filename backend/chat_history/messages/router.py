from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from chat_history.core.constants import MessageConstants
from chat_history.core.database import get_db
from chat_history.core.middleware import get_client_ip
from chat_history.ingestion.service import IngestionService
from . import schemas
from .models import SenderType
from .store import EventStore

router = APIRouter()


@router.post("/", response_model=schemas.MessageSubmitted, status_code=status.HTTP_201_CREATED, summary="Submit a chat message")
def submit_message(payload: schemas.MessageCreate, request: Request, db: Session = Depends(get_db)):
    # Metadados do cliente vêm da própria requisição quando o widget não envia
    meta = payload.client_meta or schemas.ClientMeta()
    if meta.user_agent is None:
        meta.user_agent = request.headers.get("user-agent")
    if meta.ip_address is None:
        meta.ip_address = get_client_ip(request)
    payload.client_meta = meta

    message_id = IngestionService(db).ingest(payload)
    return schemas.MessageSubmitted(message_id=message_id, session_id=payload.session_id)


@router.get("/", response_model=schemas.MessagePage, summary="List stored messages")
def list_messages(
    session_id: Optional[str] = None,
    user_email: Optional[str] = None,
    sender: Optional[SenderType] = None,
    intent: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(default=MessageConstants.DEFAULT_PAGE_SIZE, ge=1, le=MessageConstants.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    pagination = schemas.Pagination(limit=limit, offset=offset)
    items = EventStore(db).query(
        schemas.MessageFilter(session_id=session_id, user_email=user_email, sender=sender, intent=intent),
        schemas.TimeRange(start=start, end=end),
        pagination,
    )
    return schemas.MessagePage(
        items=[schemas.Message.model_validate(item) for item in items],
        limit=pagination.limit,
        offset=pagination.offset,
    )
