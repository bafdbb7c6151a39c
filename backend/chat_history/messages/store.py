# backend/chat_history/messages/store.py

"""
EventStore: armazenamento append-only das mensagens do chat.

As escritas só fazem flush; o commit fica com quem orquestra a unidade de
trabalho (IngestionService / RetentionManager), para que a mensagem e os
efeitos colaterais de agregação sejam gravados juntos.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from chat_history.core.logging import get_logger
from chat_history.core.validators import MessageValidators
from .models import ChatMessage
from .schemas import MessageCreate, MessageFilter, TimeRange, Pagination


class EventStore:
    """Fonte da verdade das mensagens."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = get_logger("messages.store")

    def append(self, payload: Union[MessageCreate, dict]) -> ChatMessage:
        """
        Grava uma nova mensagem e retorna a linha com o id atribuído.

        Raises:
            InvalidMessageError: sender/enum inválido ou confidence/response_time fora do domínio
        """
        data = MessageValidators.parse(MessageCreate, payload)
        meta = data.client_meta

        message = ChatMessage(
            session_id=data.session_id,
            user_email=data.user_email,
            sender=data.sender,
            message=data.text,
            intent=data.intent,
            confidence=data.confidence,
            current_page=data.current_page,
            user_agent=meta.user_agent if meta else None,
            ip_address=meta.ip_address if meta else None,
            response_time_ms=data.response_time_ms,
            created_at=data.created_at or datetime.utcnow(),
        )
        self.db.add(message)
        self.db.flush()

        self.logger.debug(
            "Message appended",
            message_id=message.id,
            session_id=message.session_id,
            sender=message.sender.value,
        )
        return message

    def query(
        self,
        filter: Optional[MessageFilter] = None,
        time_range: Optional[TimeRange] = None,
        pagination: Optional[Pagination] = None,
    ) -> List[ChatMessage]:
        """Mensagens ordenadas por created_at e depois id (estável com timestamps iguais)."""
        q = self.db.query(ChatMessage)

        if filter is not None:
            if filter.session_id is not None:
                q = q.filter(ChatMessage.session_id == filter.session_id)
            if filter.user_email is not None:
                q = q.filter(ChatMessage.user_email == filter.user_email)
            if filter.sender is not None:
                q = q.filter(ChatMessage.sender == filter.sender)
            if filter.intent is not None:
                q = q.filter(ChatMessage.intent == filter.intent)

        if time_range is not None:
            if time_range.start is not None:
                q = q.filter(ChatMessage.created_at >= time_range.start)
            if time_range.end is not None:
                q = q.filter(ChatMessage.created_at < time_range.end)

        q = q.order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())

        if pagination is not None:
            q = q.offset(pagination.offset).limit(pagination.limit)

        return q.all()

    def messages_for_session(self, session_id: str) -> List[ChatMessage]:
        return self.query(MessageFilter(session_id=session_id))

    def count_for_session(self, session_id: str) -> int:
        return self.db.query(func.count(ChatMessage.id)).filter(
            ChatMessage.session_id == session_id
        ).scalar() or 0

    def counts_by_session(self, session_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(session_ids)
        if not ids:
            return {}
        rows = self.db.query(ChatMessage.session_id, func.count(ChatMessage.id)).filter(
            ChatMessage.session_id.in_(ids)
        ).group_by(ChatMessage.session_id).all()
        return {session_id: count for session_id, count in rows}

    def delete_older_than(self, cutoff: datetime) -> int:
        """Remove por predicado (não por lista fixa), então é seguro repetir."""
        deleted = self.db.query(ChatMessage).filter(
            ChatMessage.created_at < cutoff
        ).delete(synchronize_session=False)

        self.logger.info("Deleted messages older than cutoff", cutoff=cutoff.isoformat(), deleted=deleted)
        return deleted
