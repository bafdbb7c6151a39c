# Em backend/chat_history/queries/schemas.py
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class QueryFrequencyEntry(BaseModel):
    raw_example: str = Field(validation_alias=AliasChoices("query_text", "raw_example"))
    normalized: str = Field(validation_alias=AliasChoices("normalized_query", "normalized"))
    count: int = Field(validation_alias=AliasChoices("frequency_count", "count"))
    intent: Optional[str] = None
    avg_confidence: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("average_confidence", "avg_confidence")
    )
    suggested_response: Optional[str] = None
    last_asked_at: datetime

    class Config:
        from_attributes = True


class SuggestedResponseUpdate(BaseModel):
    query: str = Field(min_length=1)
    suggested_response: Optional[str] = None


class ResetResult(BaseModel):
    deleted: int
