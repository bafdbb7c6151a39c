# backend/chat_history/ingestion/service.py

"""
IngestionService: unidade de trabalho da ingestão e das operações administrativas.

Gravação da mensagem, atualização do resumo da sessão e do índice de
frequência são um único commit: ou tudo entra, ou nada entra. Escritores
concorrentes colidem no contador de versão do resumo da sessão ou da entrada
do índice (StaleDataError), ou na chave única (IntegrityError); a unidade
inteira é desfeita e repetida até MAX_WRITE_RETRIES.
"""

import time
from datetime import timedelta
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from chat_history.core.exceptions import PersistenceError
from chat_history.core.logging import get_logger, LogContext
from chat_history.core.settings import settings
from chat_history.core.validators import MessageValidators
from chat_history.messages.schemas import MessageCreate
from chat_history.messages.store import EventStore
from chat_history.queries.frequency import FrequencyIndex
from chat_history.retention.manager import RetentionManager
from chat_history.retention.schemas import PurgeReport
from chat_history.sessions.aggregator import CustomerLookup, SessionAggregator
from chat_history.sessions.models import ChatSession

T = TypeVar("T")

# Conflitos de escrita concorrente que justificam repetir a unidade de trabalho
RETRYABLE_ERRORS = (StaleDataError, IntegrityError)


class IngestionService:
    def __init__(
        self,
        db: Session,
        customer_lookup: Optional[CustomerLookup] = None,
        max_retries: Optional[int] = None,
    ):
        self.db = db
        self.event_store = EventStore(db)
        self.aggregator = SessionAggregator(db, self.event_store, customer_lookup=customer_lookup)
        self.frequency = FrequencyIndex(db)
        self.max_retries = max_retries or settings.MAX_WRITE_RETRIES
        self.logger = get_logger("ingestion.service")

    def submit_message(
        self,
        session_id: str,
        sender,
        text: str,
        intent: Optional[str] = None,
        confidence: Optional[float] = None,
        current_page: Optional[str] = None,
        client_meta: Optional[dict] = None,
        response_time_ms: Optional[int] = None,
        user_email: Optional[str] = None,
        created_at=None,
    ) -> int:
        """
        Grava uma mensagem e propaga para o resumo da sessão e o índice de frequência.

        Returns:
            id da mensagem gravada

        Raises:
            InvalidMessageError: enum ou campo numérico fora do domínio (nada é gravado)
            PersistenceError: falha de armazenamento após as tentativas
        """
        payload = MessageValidators.parse(MessageCreate, {
            "session_id": session_id,
            "sender": sender,
            "text": text,
            "intent": intent,
            "confidence": confidence,
            "current_page": current_page,
            "client_meta": client_meta,
            "response_time_ms": response_time_ms,
            "user_email": user_email,
            "created_at": created_at,
        })
        return self.ingest(payload)

    def ingest(self, payload: MessageCreate) -> int:
        def unit_of_work() -> int:
            message = self.event_store.append(payload)
            self.aggregator.on_message(message)
            self.frequency.record(
                message.message,
                intent=message.intent,
                confidence=message.confidence,
                asked_at=message.created_at,
            )
            return message.id

        with LogContext("ingestion.service", session_id=payload.session_id) as log:
            start = time.time()
            message_id = self._run_unit_of_work("message ingestion", unit_of_work, log)
            log.info(
                "Message ingested",
                message_id=message_id,
                sender=payload.sender.value,
                intent=payload.intent,
                duration_ms=round((time.time() - start) * 1000, 2),
            )
            return message_id

    def set_session_outcome(self, session_id: str, satisfaction=None, resolution_status=None) -> ChatSession:
        """
        Raises:
            SessionNotFoundError: sessão desconhecida
            InvalidSessionOutcomeError: valor fora do enum
        """
        with LogContext("ingestion.service", session_id=session_id) as log:
            return self._run_unit_of_work(
                "session outcome update",
                lambda: self.aggregator.set_outcome(session_id, satisfaction, resolution_status),
                log,
            )

    def run_retention(
        self,
        message_horizon: Optional[timedelta] = None,
        analytics_horizon: Optional[timedelta] = None,
    ) -> PurgeReport:
        """Manutenção agendada; horizontes ausentes usam os da configuração."""
        if message_horizon is None:
            message_horizon = timedelta(days=settings.MESSAGE_RETENTION_DAYS)
        if analytics_horizon is None:
            analytics_horizon = timedelta(days=settings.ANALYTICS_RETENTION_DAYS)
        # Horizonte zero ou negativo chega ao validador e vira erro
        manager = RetentionManager(self.db, self.event_store)
        return manager.purge(message_horizon, analytics_horizon)

    def _run_unit_of_work(self, operation: str, work: Callable[[], T], log) -> T:
        for attempt in range(1, self.max_retries + 1):
            try:
                result = work()
                self.db.commit()
                return result
            except RETRYABLE_ERRORS as exc:
                self.db.rollback()
                if attempt == self.max_retries:
                    log.error("Write conflict persisted, giving up", operation=operation, attempts=attempt, error=str(exc))
                    raise PersistenceError(operation, str(exc), attempts=attempt) from exc
                log.warning("Concurrent write conflict, retrying", operation=operation, attempt=attempt, error_type=type(exc).__name__)
            except SQLAlchemyError as exc:
                self.db.rollback()
                log.error("Storage failure", operation=operation, error=str(exc), error_type=type(exc).__name__)
                raise PersistenceError(operation, str(exc), attempts=attempt) from exc
            except Exception:
                # Erros de domínio (NotFound, Validation) sobem sem escrita parcial
                self.db.rollback()
                raise
