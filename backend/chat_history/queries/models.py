from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, JSON
from chat_history.core.database import Base
from chat_history.core.constants import MessageConstants, NormalizationConstants

class CommonQuery(Base):
    """Consulta frequente deduplicada pela forma normalizada."""
    __tablename__ = "chat_common_queries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    query_text = Column(Text, nullable=False)  # exemplo bruto representativo
    # Settings.MAX_NORMALIZED_QUERY_LENGTH é limitado a este tamanho
    normalized_query = Column(
        String(NormalizationConstants.MAX_NORMALIZED_LENGTH), unique=True, index=True, nullable=False
    )
    frequency_count = Column(Integer, nullable=False, default=1, index=True)

    intent = Column(String(MessageConstants.MAX_INTENT_LENGTH), nullable=True, index=True)
    # {intent: contagem}, usado para manter 'intent' como a mais frequente
    intent_counts = Column(JSON, nullable=False, default=dict)

    average_confidence = Column(Float, nullable=True)
    confidence_samples = Column(Integer, nullable=False, default=0)

    # Resposta recomendada (curadoria humana / treino)
    suggested_response = Column(Text, nullable=True)

    last_asked_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Versão para compare-and-swap: dois incrementos concorrentes na mesma
    # consulta geram StaleDataError em vez de perder uma contagem
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}
