# backend/chat_history/retention/manager.py

"""
RetentionManager: poda periódica de mensagens, buckets e resumos órfãos.

Ordem fixa: mensagens -> resumos (órfãos saem, parciais são recalculados)
-> buckets de analytics.
Cada fase é uma transação própria e apaga por predicado, então uma execução
interrompida pode simplesmente ser repetida. A fase de resumos usa NOT EXISTS
contra as mensagens que restaram, e por isso nunca remove uma sessão viva.
Sessões que perderam só parte das mensagens têm o resumo refeito a partir do
EventStore na mesma transação.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chat_history.analytics.inflight import InFlightRollups, inflight_rollups
from chat_history.analytics.models import ChatAnalytics
from chat_history.core.logging import get_logger, LogContext
from chat_history.core.validators import RetentionValidators
from chat_history.messages.models import ChatMessage
from chat_history.messages.store import EventStore
from chat_history.sessions.aggregator import SessionAggregator
from chat_history.sessions.models import ChatSession
from .schemas import PurgeReport


class RetentionManager:
    def __init__(
        self,
        db: Session,
        event_store: Optional[EventStore] = None,
        registry: InFlightRollups = inflight_rollups,
    ):
        self.db = db
        self.event_store = event_store or EventStore(db)
        self.registry = registry
        self.logger = get_logger("retention.manager")

    def purge(
        self,
        message_horizon: timedelta,
        analytics_horizon: timedelta,
        now: Optional[datetime] = None,
    ) -> PurgeReport:
        """
        Remove dados além dos horizontes de retenção.

        Raises:
            InvalidRetentionPolicyError: horizonte não positivo
        """
        RetentionValidators.validate_horizon("message_horizon", message_horizon)
        RetentionValidators.validate_horizon("analytics_horizon", analytics_horizon)

        now = now or datetime.utcnow()
        purge_start = time.time()
        report = PurgeReport(
            message_cutoff=self._message_cutoff(now - message_horizon),
            analytics_cutoff=datetime.combine((now - analytics_horizon).date(), datetime.min.time()),
        )

        with LogContext("retention.manager", phase="retention") as log:
            log.info(
                "Starting retention purge",
                message_cutoff=report.message_cutoff.isoformat(),
                analytics_cutoff=report.analytics_cutoff.isoformat(),
            )

            report.messages_deleted = self._run_phase(
                "messages", report, log,
                lambda: self.event_store.delete_older_than(report.message_cutoff),
            )
            # Roda mesmo se a fase anterior falhou: o predicado só vê sessões sem mensagens
            report.sessions_deleted = self._run_phase(
                "sessions", report, log,
                lambda: self._purge_sessions(report),
            )
            report.analytics_deleted = self._run_phase(
                "analytics", report, log,
                lambda: self._delete_old_buckets(report.analytics_cutoff),
            )

            log.info(
                "Retention purge completed",
                messages_deleted=report.messages_deleted,
                sessions_deleted=report.sessions_deleted,
                sessions_rebuilt=report.sessions_rebuilt,
                analytics_deleted=report.analytics_deleted,
                failed_categories=sorted(report.errors),
                duration_ms=round((time.time() - purge_start) * 1000, 2),
            )
        return report

    def _message_cutoff(self, requested: datetime) -> datetime:
        # Nunca apaga mensagens de uma janela que um rollup em andamento ainda está lendo
        oldest = self.registry.oldest_window_start()
        if oldest is not None and oldest < requested:
            self.logger.warning(
                "Message cutoff clamped by in-flight rollup",
                requested_cutoff=requested.isoformat(),
                clamped_cutoff=oldest.isoformat(),
            )
            return oldest
        return requested

    def _run_phase(self, category: str, report: PurgeReport, log, operation: Callable[[], int]) -> int:
        try:
            deleted = operation()
            self.db.commit()
            return deleted
        except SQLAlchemyError as exc:
            self.db.rollback()
            report.errors[category] = str(exc)
            if category == "sessions":
                report.sessions_rebuilt = 0
            log.error("Retention phase failed", category=category, error=str(exc), error_type=type(exc).__name__)
            return 0

    def _purge_sessions(self, report: PurgeReport) -> int:
        deleted = self._delete_orphan_sessions()
        rebuilt = self._rebuild_partial_sessions(report.message_cutoff)
        # Só vale depois do commit da fase; em caso de falha _run_phase zera
        report.sessions_rebuilt = len(rebuilt)
        return deleted

    def _delete_orphan_sessions(self) -> int:
        has_messages = exists().where(ChatMessage.session_id == ChatSession.session_id)
        deleted = self.db.query(ChatSession).filter(~has_messages).delete(synchronize_session=False)
        self.logger.info("Deleted orphaned session summaries", deleted=deleted)
        return deleted

    def _delete_old_buckets(self, cutoff: datetime) -> int:
        deleted = self.db.query(ChatAnalytics).filter(
            ChatAnalytics.date_recorded < cutoff.date()
        ).delete(synchronize_session=False)
        self.logger.info("Deleted old analytics buckets", cutoff=cutoff.date().isoformat(), deleted=deleted)
        return deleted

    def _rebuild_partial_sessions(self, cutoff: datetime) -> list:
        """
        Resumos que ainda contam mensagens já podadas: o primeiro timestamp é
        anterior ao corte, mas nenhuma mensagem viva da sessão é.
        """
        has_messages = exists().where(ChatMessage.session_id == ChatSession.session_id)
        has_old_messages = exists().where(
            ChatMessage.session_id == ChatSession.session_id,
            ChatMessage.created_at < cutoff,
        )
        session_ids = [
            session_id for (session_id,) in self.db.query(ChatSession.session_id).filter(
                ChatSession.first_message_at < cutoff, has_messages, ~has_old_messages
            ).all()
        ]

        aggregator = SessionAggregator(self.db, self.event_store)
        for session_id in session_ids:
            aggregator.rebuild(session_id)
        if session_ids:
            self.logger.info("Rebuilt partially purged session summaries", rebuilt=len(session_ids))
        return session_ids
