from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class PurgeReport(BaseModel):
    """Contagem removida por categoria; falhas ficam em `errors` sem abortar as demais."""
    messages_deleted: int = 0
    sessions_deleted: int = 0
    sessions_rebuilt: int = 0
    analytics_deleted: int = 0
    message_cutoff: Optional[datetime] = None
    analytics_cutoff: Optional[datetime] = None
    errors: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class RetentionRequest(BaseModel):
    message_retention_days: Optional[int] = Field(default=None, gt=0)
    analytics_retention_days: Optional[int] = Field(default=None, gt=0)
