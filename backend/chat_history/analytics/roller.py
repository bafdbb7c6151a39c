# backend/chat_history/analytics/roller.py

"""
AnalyticsRoller: rollups de janela fixa (hora/dia) recalculados do zero.

Cada rollup sobrescreve o bucket da chave, então rodar duas vezes sem dados
novos produz o mesmo resultado. A hora/dia ainda aberto é só uma prévia e
muda a cada nova execução.
"""

import time
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chat_history.core.constants import AnalyticsConstants
from chat_history.core.exceptions import PersistenceError, SessionSummaryDivergedError
from chat_history.core.logging import get_logger, LogContext
from chat_history.messages.models import ChatMessage, SenderType
from chat_history.messages.store import EventStore
from chat_history.sessions.aggregator import SessionAggregator
from chat_history.sessions.models import ChatSession, ResolutionStatus
from .buckets import BucketKey, DailyBucket, HourlyBucket, bucket_for
from .inflight import InFlightRollups, inflight_rollups
from .models import ChatAnalytics, Granularity

# Limite de parâmetros por cláusula IN (SQLite antigo aceita 999)
IN_CLAUSE_CHUNK = 500


def _chunks(items: List[str], size: int = IN_CLAUSE_CHUNK) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


class AnalyticsRoller:
    def __init__(
        self,
        db: Session,
        event_store: Optional[EventStore] = None,
        aggregator: Optional[SessionAggregator] = None,
        registry: InFlightRollups = inflight_rollups,
    ):
        self.db = db
        self.event_store = event_store or EventStore(db)
        self.aggregator = aggregator or SessionAggregator(db, self.event_store)
        self.registry = registry
        self.logger = get_logger("analytics.roller")

    def rollup(self, day: date, granularity, hour: Optional[int] = None) -> ChatAnalytics:
        """
        Recalcula e sobrescreve o bucket (day, granularity, hour).

        Raises:
            InvalidBucketError: combinação de granularidade/hora inválida
            PersistenceError: falha ao gravar o bucket
        """
        return self.rollup_bucket(bucket_for(day, granularity, hour))

    def rollup_day(self, day: date) -> List[ChatAnalytics]:
        """Bucket diário seguido dos 24 buckets horários do dia."""
        keys = [DailyBucket(day)] + [HourlyBucket(day, hour) for hour in range(AnalyticsConstants.HOURS_PER_DAY)]
        return [self.rollup_bucket(key) for key in keys]

    def rollup_bucket(self, key: BucketKey) -> ChatAnalytics:
        start, end = key.window()
        rollup_start = time.time()

        with self.registry.track(start), LogContext("analytics.roller", bucket_key=key.key) as log:
            # Dois rollups concorrentes da mesma chave: quem perder o INSERT relê e sobrescreve
            for attempt in (1, 2):
                try:
                    metrics = self._compute(start, end, log)
                    bucket = self._upsert(key, metrics)
                    self.db.commit()
                    break
                except IntegrityError as exc:
                    self.db.rollback()
                    if attempt == 2:
                        raise PersistenceError("analytics rollup", str(exc), attempts=attempt) from exc
                    log.warning("Concurrent rollup for the same bucket, retrying")
                except SQLAlchemyError as exc:
                    self.db.rollback()
                    log.error("Analytics rollup failed", error=str(exc), error_type=type(exc).__name__)
                    raise PersistenceError("analytics rollup", str(exc), attempts=attempt) from exc

            self.db.refresh(bucket)
            log.info(
                "Analytics bucket rolled up",
                total_messages=bucket.total_messages,
                total_sessions=bucket.total_sessions,
                duration_ms=round((time.time() - rollup_start) * 1000, 2),
            )
            return bucket

    def _compute(self, start: datetime, end: datetime, log) -> Dict:
        in_window = (ChatMessage.created_at >= start, ChatMessage.created_at < end)

        total_messages, total_sessions, unique_users, avg_response = self.db.query(
            func.count(ChatMessage.id),
            func.count(func.distinct(ChatMessage.session_id)),
            func.count(func.distinct(ChatMessage.user_email)),
            func.avg(ChatMessage.response_time_ms),
        ).filter(*in_window).one()

        by_sender = dict(
            self.db.query(ChatMessage.sender, func.count(ChatMessage.id))
            .filter(*in_window)
            .group_by(ChatMessage.sender)
            .all()
        )

        # Moda das intenções; empate fica com o nome lexicograficamente menor
        intent_row = self.db.query(ChatMessage.intent, func.count(ChatMessage.id).label("freq")).filter(
            *in_window, ChatMessage.intent.isnot(None)
        ).group_by(ChatMessage.intent).order_by(
            func.count(ChatMessage.id).desc(), ChatMessage.intent.asc()
        ).first()

        session_ids = [
            session_id for (session_id,) in self.db.query(ChatMessage.session_id)
            .filter(*in_window)
            .distinct()
            .order_by(ChatMessage.session_id)
            .all()
        ]
        summaries = self._reconciled_summaries(session_ids, log)

        durations = [s.session_duration_seconds for s in summaries if s.session_duration_seconds is not None]
        scores = [
            AnalyticsConstants.SATISFACTION_SCORES[s.customer_satisfaction.value]
            for s in summaries
            if s.customer_satisfaction.value in AnalyticsConstants.SATISFACTION_SCORES
        ]

        return {
            "total_sessions": total_sessions or 0,
            "total_messages": total_messages or 0,
            "user_messages": by_sender.get(SenderType.USER, 0),
            "bot_messages": by_sender.get(SenderType.BOT, 0),
            "unique_users": unique_users or 0,
            "average_session_duration": _mean(durations),
            "average_response_time": float(avg_response) if avg_response is not None else None,
            "most_common_intent": intent_row[0] if intent_row else None,
            "resolved_sessions": sum(1 for s in summaries if s.resolution_status == ResolutionStatus.RESOLVED),
            "escalated_sessions": sum(1 for s in summaries if s.resolution_status == ResolutionStatus.ESCALATED),
            "customer_satisfaction_score": _mean(scores),
        }

    def _reconciled_summaries(self, session_ids: List[str], log) -> List[ChatSession]:
        """
        Resumos das sessões ativas na janela, conferidos contra o EventStore.
        Resumo divergente não é confiável: é reconstruído antes do uso.
        """
        summaries: Dict[str, ChatSession] = {}
        for chunk in _chunks(session_ids):
            counts = self.event_store.counts_by_session(chunk)
            rows = self.db.query(ChatSession).filter(ChatSession.session_id.in_(chunk)).all()
            found = {row.session_id: row for row in rows}

            for session_id in chunk:
                summary = found.get(session_id)
                expected = counts.get(session_id, 0)
                if summary is None or summary.total_messages != expected:
                    error = SessionSummaryDivergedError(
                        session_id, expected, summary.total_messages if summary else 0
                    )
                    log.warning("Consistency error detected, rebuilding summary", error_code=error.error_code, **error.details)
                    summary = self.aggregator.rebuild(session_id)
                summaries[session_id] = summary

        return [summaries[session_id] for session_id in session_ids]

    def _upsert(self, key: BucketKey, metrics: Dict) -> ChatAnalytics:
        bucket = self.db.query(ChatAnalytics).filter(ChatAnalytics.bucket_key == key.key).first()
        if bucket is None:
            bucket = ChatAnalytics(
                bucket_key=key.key,
                date_recorded=key.day,
                granularity=key.granularity,
                hour_recorded=key.hour,
            )
            self.db.add(bucket)

        for field, value in metrics.items():
            setattr(bucket, field, value)
        self.db.flush()
        return bucket

    def get_bucket(self, key: BucketKey) -> Optional[ChatAnalytics]:
        return self.db.query(ChatAnalytics).filter(ChatAnalytics.bucket_key == key.key).first()

    def buckets_between(self, granularity: Granularity, start_day: date, end_day: date) -> List[ChatAnalytics]:
        return self.db.query(ChatAnalytics).filter(
            ChatAnalytics.granularity == granularity,
            ChatAnalytics.date_recorded >= start_day,
            ChatAnalytics.date_recorded <= end_day,
        ).order_by(ChatAnalytics.date_recorded.desc(), ChatAnalytics.hour_recorded.desc()).all()
