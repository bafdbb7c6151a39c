# Em backend/chat_history/analytics/schemas.py
from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from .models import Granularity


class AnalyticsBucket(BaseModel):
    bucket_key: str
    date_recorded: date
    granularity: Granularity
    hour: Optional[int] = Field(default=None, validation_alias=AliasChoices("hour_recorded", "hour"))
    total_sessions: int
    total_messages: int
    user_messages: int
    bot_messages: int
    unique_users: int
    avg_session_duration: Optional[float] = Field(default=None, validation_alias=AliasChoices("average_session_duration", "avg_session_duration"))
    avg_response_time: Optional[float] = Field(default=None, validation_alias=AliasChoices("average_response_time", "avg_response_time"))
    most_common_intent: Optional[str] = None
    resolved_sessions: int
    escalated_sessions: int
    satisfaction_score: Optional[float] = Field(default=None, validation_alias=AliasChoices("customer_satisfaction_score", "satisfaction_score"))

    class Config:
        from_attributes = True


class IntentFrequency(BaseModel):
    intent: str
    frequency: int
    avg_confidence: Optional[float] = None
    unique_sessions: int


class RollupRequest(BaseModel):
    day: date
    granularity: Granularity
    hour: Optional[int] = None
