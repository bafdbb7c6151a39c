# Em backend/chat_history/messages/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from chat_history.core.constants import MessageConstants
from .models import SenderType


class ClientMeta(BaseModel):
    user_agent: Optional[str] = None
    ip_address: Optional[str] = Field(default=None, max_length=MessageConstants.MAX_IP_ADDRESS_LENGTH)


class MessageCreate(BaseModel):
    session_id: str = Field(min_length=1, max_length=MessageConstants.MAX_SESSION_ID_LENGTH)
    sender: SenderType
    text: str
    user_email: Optional[str] = Field(default=None, max_length=MessageConstants.MAX_EMAIL_LENGTH)
    intent: Optional[str] = Field(default=None, max_length=MessageConstants.MAX_INTENT_LENGTH)
    confidence: Optional[float] = Field(
        default=None, ge=MessageConstants.MIN_CONFIDENCE, le=MessageConstants.MAX_CONFIDENCE
    )
    current_page: Optional[str] = Field(default=None, max_length=MessageConstants.MAX_PAGE_LENGTH)
    client_meta: Optional[ClientMeta] = None
    response_time_ms: Optional[int] = Field(default=None, ge=0)
    # Só para importação/backfill; o padrão é o instante da gravação
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _naive_utc(self):
        # Timestamps são gravados como UTC sem timezone
        if self.created_at is not None and self.created_at.tzinfo is not None:
            offset = self.created_at.utcoffset()
            self.created_at = (self.created_at - offset).replace(tzinfo=None)
        return self


class Message(BaseModel):
    id: int
    session_id: str
    user_email: Optional[str] = None
    sender: SenderType
    text: str = Field(validation_alias=AliasChoices("message", "text"))
    intent: Optional[str] = None
    confidence: Optional[float] = None
    current_page: Optional[str] = None
    response_time_ms: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageSubmitted(BaseModel):
    message_id: int
    session_id: str


class MessageFilter(BaseModel):
    session_id: Optional[str] = None
    user_email: Optional[str] = None
    sender: Optional[SenderType] = None
    intent: Optional[str] = None


class TimeRange(BaseModel):
    """Intervalo semiaberto [start, end)."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class Pagination(BaseModel):
    limit: int = Field(default=MessageConstants.DEFAULT_PAGE_SIZE, ge=1, le=MessageConstants.MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class MessagePage(BaseModel):
    items: List[Message]
    limit: int
    offset: int
