# backend/chat_history/queries/frequency.py

"""
FrequencyIndex: contadores agregados por consulta normalizada.

Alimenta a base de conhecimento de "perguntas comuns". A contagem só cresce;
a única forma de zerá-la é o reset administrativo (a retenção não toca aqui).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from chat_history.core.exceptions import QueryNotFoundError
from chat_history.core.logging import get_logger
from .models import CommonQuery
from .normalizer import normalize


def running_mean(current: Optional[float], value: float, samples: int) -> float:
    """Média incremental (Welford): samples já inclui o novo valor."""
    if current is None or samples <= 1:
        return float(value)
    return current + (value - current) / samples


class FrequencyIndex:
    def __init__(self, db: Session):
        self.db = db
        self.logger = get_logger("queries.frequency")

    def get(self, normalized_query: str) -> Optional[CommonQuery]:
        return self.db.query(CommonQuery).filter(
            CommonQuery.normalized_query == normalized_query
        ).first()

    def record(
        self,
        raw_text: str,
        intent: Optional[str] = None,
        confidence: Optional[float] = None,
        asked_at: Optional[datetime] = None,
    ) -> Optional[CommonQuery]:
        """
        Conta mais uma ocorrência da consulta. Texto vazio ou só com espaços
        é ignorado e retorna None.
        """
        if not raw_text or not raw_text.strip():
            return None
        key = normalize(raw_text)
        asked_at = asked_at or datetime.utcnow()

        entry = self.get(key)
        if entry is None:
            entry = CommonQuery(
                query_text=raw_text,
                normalized_query=key,
                frequency_count=1,
                intent=intent,
                intent_counts={intent: 1} if intent else {},
                average_confidence=float(confidence) if confidence is not None else None,
                confidence_samples=1 if confidence is not None else 0,
                last_asked_at=asked_at,
            )
            self.db.add(entry)
            self.db.flush()
            self.logger.debug("New common query indexed", normalized_query=key)
            return entry

        entry.frequency_count += 1
        if confidence is not None:
            entry.confidence_samples += 1
            entry.average_confidence = running_mean(
                entry.average_confidence, confidence, entry.confidence_samples
            )
        if asked_at > entry.last_asked_at:
            entry.last_asked_at = asked_at
        if intent:
            self._count_intent(entry, intent)

        self.db.flush()
        return entry

    def _count_intent(self, entry: CommonQuery, intent: str) -> None:
        # Nova atribuição do dict para o SQLAlchemy detectar a mudança no JSON
        counts = dict(entry.intent_counts or {})
        counts[intent] = counts.get(intent, 0) + 1
        entry.intent_counts = counts

        # A intenção atual é sempre a de maior contagem; empate fica com a mais recente
        current = counts.get(entry.intent, 0) if entry.intent else 0
        if counts[intent] >= current:
            entry.intent = intent

    def top(self, n: int) -> List[CommonQuery]:
        return self.db.query(CommonQuery).order_by(
            CommonQuery.frequency_count.desc(),
            CommonQuery.last_asked_at.desc(),
            CommonQuery.id.asc(),
        ).limit(n).all()

    def total_count(self) -> int:
        return sum(count for (count,) in self.db.query(CommonQuery.frequency_count).all())

    def set_suggested_response(self, normalized_query: str, response: Optional[str]) -> CommonQuery:
        key = normalize(normalized_query)
        entry = self.get(key)
        if entry is None:
            raise QueryNotFoundError(key)
        entry.suggested_response = response
        self.db.flush()
        return entry

    def reset(self, normalized_query: Optional[str] = None) -> int:
        """Reset administrativo: remove uma entrada ou o índice inteiro."""
        q = self.db.query(CommonQuery)
        if normalized_query is not None:
            key = normalize(normalized_query)
            q = q.filter(CommonQuery.normalized_query == key)
            if q.count() == 0:
                raise QueryNotFoundError(key)
        deleted = q.delete(synchronize_session=False)
        self.logger.warning("Frequency index reset", normalized_query=normalized_query, deleted=deleted)
        return deleted
