# Em backend/chat_history/sessions/schemas.py
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from .models import SessionType, Satisfaction, ResolutionStatus


class SessionSummary(BaseModel):
    session_id: str
    user_email: Optional[str] = None
    customer_id: Optional[int] = None
    session_type: SessionType
    first_message_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    total_messages: int
    total_user_messages: int
    total_bot_messages: int
    total_admin_messages: int
    avg_response_time_ms: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("average_response_time_ms", "avg_response_time_ms")
    )
    duration_seconds: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("session_duration_seconds", "duration_seconds")
    )
    primary_intent: Optional[str] = None
    satisfaction: Satisfaction = Field(validation_alias=AliasChoices("customer_satisfaction", "satisfaction"))
    resolution_status: ResolutionStatus

    class Config:
        from_attributes = True


class SessionOutcomeUpdate(BaseModel):
    # Campos ausentes preservam o valor atual
    satisfaction: Optional[Satisfaction] = None
    resolution_status: Optional[ResolutionStatus] = None
