# backend/chat_history/analytics/reporting.py

"""
ReportingService: leituras do dashboard administrativo.

Atividade recente e resumo diário devolvem buckets do AnalyticsRoller (por
padrão recalculados na hora, mais recentes primeiro); intenções populares
são calculadas direto do EventStore.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from chat_history.core.constants import ReportingConstants
from chat_history.core.exceptions import InvalidBucketError
from chat_history.core.logging import get_logger
from chat_history.messages.models import ChatMessage
from .buckets import DailyBucket, hourly_bucket_at
from .models import ChatAnalytics
from .roller import AnalyticsRoller
from .schemas import IntentFrequency


class ReportingService:
    def __init__(self, db: Session, roller: Optional[AnalyticsRoller] = None):
        self.db = db
        self.roller = roller or AnalyticsRoller(db)
        self.logger = get_logger("analytics.reporting")

    def get_recent_activity(
        self,
        hours: int = ReportingConstants.RECENT_ACTIVITY_HOURS,
        now: Optional[datetime] = None,
        refresh: bool = True,
    ) -> List[ChatAnalytics]:
        """Buckets horários das últimas `hours` horas (inclui a hora corrente), mais recente primeiro."""
        if not (1 <= hours <= ReportingConstants.MAX_RECENT_ACTIVITY_HOURS):
            raise InvalidBucketError(
                f"janela deve ter entre 1 e {ReportingConstants.MAX_RECENT_ACTIVITY_HOURS} horas", "hour"
            )
        now = now or datetime.utcnow()
        current = now.replace(minute=0, second=0, microsecond=0)
        keys = [hourly_bucket_at(current - timedelta(hours=offset)) for offset in range(hours)]
        return self._collect(keys, refresh)

    def get_dashboard_summary(
        self,
        start_day: date,
        end_day: date,
        refresh: bool = True,
    ) -> List[ChatAnalytics]:
        """Buckets diários de start_day a end_day (inclusive), mais recente primeiro."""
        if end_day < start_day:
            raise InvalidBucketError("fim do intervalo anterior ao início", "day")
        span = (end_day - start_day).days
        keys = [DailyBucket(end_day - timedelta(days=offset)) for offset in range(span + 1)]
        return self._collect(keys, refresh)

    def _collect(self, keys, refresh: bool) -> List[ChatAnalytics]:
        if refresh:
            return [self.roller.rollup_bucket(key) for key in keys]
        buckets = []
        for key in keys:
            bucket = self.roller.get_bucket(key)
            if bucket is not None:
                buckets.append(bucket)
        return buckets

    def get_top_intents(self, day: date) -> List[IntentFrequency]:
        """Intenções do dia por frequência (empate: nome), com confiança média e sessões distintas."""
        start, end = DailyBucket(day).window()
        rows = self.db.query(
            ChatMessage.intent,
            func.count(ChatMessage.id),
            func.avg(ChatMessage.confidence),
            func.count(func.distinct(ChatMessage.session_id)),
        ).filter(
            ChatMessage.created_at >= start,
            ChatMessage.created_at < end,
            ChatMessage.intent.isnot(None),
        ).group_by(ChatMessage.intent).order_by(
            func.count(ChatMessage.id).desc(), ChatMessage.intent.asc()
        ).all()

        return [
            IntentFrequency(
                intent=intent,
                frequency=frequency,
                avg_confidence=float(avg_confidence) if avg_confidence is not None else None,
                unique_sessions=unique_sessions,
            )
            for intent, frequency, avg_confidence, unique_sessions in rows
        ]
