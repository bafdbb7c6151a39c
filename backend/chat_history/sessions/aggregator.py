# backend/chat_history/sessions/aggregator.py

"""
SessionAggregator: mantém um resumo por sessão consistente com o EventStore.

O resumo é atualizado incrementalmente a cada mensagem (dentro da mesma
transação da gravação) e pode ser reconstruído do zero a partir das
mensagens sempre que uma divergência for detectada.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from chat_history.core.exceptions import SessionNotFoundError, SessionSummaryDivergedError
from chat_history.core.logging import get_logger
from chat_history.core.validators import SessionOutcomeValidators
from chat_history.messages.models import ChatMessage, SenderType
from chat_history.messages.store import EventStore
from chat_history.queries.frequency import running_mean
from .models import ChatSession, SessionType, Satisfaction, ResolutionStatus

CustomerLookup = Callable[[str], Optional[int]]


def primary_intent_of(intent_counts: dict) -> Optional[str]:
    """Moda das intenções; empate fica com a que apareceu primeiro."""
    if not intent_counts:
        return None
    ranked = sorted(
        intent_counts.items(),
        key=lambda item: (-item[1][0], item[1][1], item[1][2]),
    )
    return ranked[0][0]


class SessionAggregator:
    def __init__(
        self,
        db: Session,
        event_store: Optional[EventStore] = None,
        customer_lookup: Optional[CustomerLookup] = None,
    ):
        self.db = db
        self.event_store = event_store or EventStore(db)
        self.customer_lookup = customer_lookup
        self.logger = get_logger("sessions.aggregator")

    def get(self, session_id: str) -> Optional[ChatSession]:
        return self.db.query(ChatSession).filter(ChatSession.session_id == session_id).first()

    def get_or_raise(self, session_id: str) -> ChatSession:
        summary = self.get(session_id)
        if summary is None:
            raise SessionNotFoundError(session_id)
        return summary

    def on_message(self, message: ChatMessage) -> ChatSession:
        """Atualiza (ou cria) o resumo da sessão da mensagem já gravada."""
        summary = self.get(message.session_id)

        if summary is None:
            # Resumo ausente mas já havia mensagens (ex.: removido pela retenção
            # no meio do caminho): reconstrói em vez de começar do zero
            if self.event_store.count_for_session(message.session_id) > 1:
                self.logger.warning("Summary missing for existing session, rebuilding", session_id=message.session_id)
                return self.rebuild(message.session_id)

            summary = self._new_summary(message)
            self.db.add(summary)

        self._apply(summary, message)
        self.db.flush()
        return summary

    def _new_summary(self, first_message: ChatMessage) -> ChatSession:
        session_type = SessionType.ADMIN if first_message.sender.is_admin else SessionType.CUSTOMER
        return ChatSession(
            session_id=first_message.session_id,
            session_type=session_type,
            first_message_at=first_message.created_at,
            last_message_at=first_message.created_at,
            total_messages=0,
            total_user_messages=0,
            total_bot_messages=0,
            total_admin_messages=0,
            response_time_samples=0,
            session_duration_seconds=0,
            intent_counts={},
            customer_satisfaction=Satisfaction.UNKNOWN,
            resolution_status=ResolutionStatus.UNKNOWN,
        )

    def _apply(self, summary: ChatSession, message: ChatMessage) -> None:
        # Contadores por remetente
        summary.total_messages += 1
        if message.sender == SenderType.USER:
            summary.total_user_messages += 1
        elif message.sender == SenderType.BOT:
            summary.total_bot_messages += 1
        else:
            summary.total_admin_messages += 1

        # Janela da sessão (mensagens podem chegar fora de ordem)
        created_at = message.created_at
        if summary.first_message_at is None or created_at < summary.first_message_at:
            summary.first_message_at = created_at
        if summary.last_message_at is None or created_at > summary.last_message_at:
            summary.last_message_at = created_at
        summary.session_duration_seconds = int(
            (summary.last_message_at - summary.first_message_at).total_seconds()
        )

        # Tempo de resposta: só mensagens do bot que trouxeram a medida
        if message.sender == SenderType.BOT and message.response_time_ms is not None:
            summary.response_time_samples += 1
            summary.average_response_time_ms = running_mean(
                summary.average_response_time_ms, message.response_time_ms, summary.response_time_samples
            )

        if message.intent:
            self._count_intent(summary, message)

        if summary.user_email is None and message.user_email:
            summary.user_email = message.user_email
        if summary.customer_id is None and summary.user_email and self.customer_lookup is not None:
            summary.customer_id = self.customer_lookup(summary.user_email)

    def _count_intent(self, summary: ChatSession, message: ChatMessage) -> None:
        counts = {key: list(value) for key, value in (summary.intent_counts or {}).items()}
        seen_at = message.created_at.isoformat()

        entry = counts.get(message.intent)
        if entry is None:
            counts[message.intent] = [1, seen_at, message.id]
        else:
            entry[0] += 1
            if (seen_at, message.id) < (entry[1], entry[2]):
                entry[1], entry[2] = seen_at, message.id

        summary.intent_counts = counts
        summary.primary_intent = primary_intent_of(counts)

    def rebuild(self, session_id: str) -> ChatSession:
        """
        Recalcula o resumo do zero a partir do EventStore, preservando os
        campos administrativos (satisfação e resolução).

        Raises:
            SessionNotFoundError: se não houver mensagens para a sessão
        """
        messages = self.event_store.messages_for_session(session_id)
        if not messages:
            raise SessionNotFoundError(session_id)

        summary = self.get(session_id)
        fresh = self._new_summary(messages[0])
        if summary is None:
            summary = fresh
            self.db.add(summary)
        else:
            for field in (
                "session_type", "first_message_at", "last_message_at", "total_messages",
                "total_user_messages", "total_bot_messages", "total_admin_messages",
                "response_time_samples", "session_duration_seconds", "intent_counts",
            ):
                setattr(summary, field, getattr(fresh, field))
            summary.average_response_time_ms = None
            summary.primary_intent = None

        for message in messages:
            self._apply(summary, message)

        self.db.flush()
        self.logger.info("Session summary rebuilt", session_id=session_id, total_messages=summary.total_messages)
        return summary

    def verify(self, session_id: str) -> ChatSession:
        """
        Confere os contadores do resumo contra o EventStore.

        Raises:
            SessionNotFoundError: sessão sem resumo e sem mensagens
            SessionSummaryDivergedError: contadores divergentes
        """
        expected = self.event_store.count_for_session(session_id)
        summary = self.get(session_id)

        if summary is None:
            if expected == 0:
                raise SessionNotFoundError(session_id)
            raise SessionSummaryDivergedError(session_id, expected, 0)

        counted = summary.total_user_messages + summary.total_bot_messages + summary.total_admin_messages
        if summary.total_messages != expected or counted != expected:
            raise SessionSummaryDivergedError(session_id, expected, summary.total_messages)
        return summary

    def finalize(self, session_id: str) -> ChatSession:
        """
        Resumo confiável da sessão: verifica e, se divergente, força a
        reconstrução a partir do EventStore.

        Raises:
            SessionNotFoundError: sessão sem nenhuma mensagem
        """
        if self.event_store.count_for_session(session_id) == 0:
            raise SessionNotFoundError(session_id)
        try:
            return self.verify(session_id)
        except SessionSummaryDivergedError as exc:
            self.logger.warning("Session summary diverged, forcing rebuild", **exc.details)
            return self.rebuild(session_id)

    def set_outcome(
        self,
        session_id: str,
        satisfaction=None,
        resolution_status=None,
    ) -> ChatSession:
        satisfaction = SessionOutcomeValidators.coerce("satisfaction", satisfaction, Satisfaction)
        resolution_status = SessionOutcomeValidators.coerce("resolution_status", resolution_status, ResolutionStatus)

        summary = self.get_or_raise(session_id)
        if satisfaction is not None:
            summary.customer_satisfaction = satisfaction
        if resolution_status is not None:
            summary.resolution_status = resolution_status
        self.db.flush()

        self.logger.info(
            "Session outcome updated",
            session_id=session_id,
            satisfaction=summary.customer_satisfaction.value,
            resolution_status=summary.resolution_status.value,
        )
        return summary
