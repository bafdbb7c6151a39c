import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Enum as SQLAlchemyEnum
from chat_history.core.database import Base
from chat_history.core.constants import MessageConstants

class SessionType(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"

class Satisfaction(str, enum.Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    UNKNOWN = "unknown"

class ResolutionStatus(str, enum.Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    ESCALATED = "escalated"
    UNKNOWN = "unknown"

def _values(enum_cls):
    return [member.value for member in enum_cls]

class ChatSession(Base):
    """Resumo mutável de uma sessão, derivado das mensagens gravadas."""
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(MessageConstants.MAX_SESSION_ID_LENGTH), unique=True, index=True, nullable=False)
    user_email = Column(String(MessageConstants.MAX_EMAIL_LENGTH), nullable=True, index=True)
    # Referência fraca para a tabela de clientes (só consulta, não é dono)
    customer_id = Column(Integer, nullable=True)
    session_type = Column(
        SQLAlchemyEnum(SessionType, values_callable=_values, name="chat_session_type"),
        nullable=False,
        default=SessionType.CUSTOMER,
        index=True,
    )

    first_message_at = Column(DateTime, nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    # CONTADORES: total = user + bot + admin (admin e admin_bot juntos)
    total_messages = Column(Integer, nullable=False, default=0)
    total_user_messages = Column(Integer, nullable=False, default=0)
    total_bot_messages = Column(Integer, nullable=False, default=0)
    total_admin_messages = Column(Integer, nullable=False, default=0)

    # Média incremental do tempo de resposta do bot
    average_response_time_ms = Column(Float, nullable=True)
    response_time_samples = Column(Integer, nullable=False, default=0)
    session_duration_seconds = Column(Integer, nullable=True)

    primary_intent = Column(String(MessageConstants.MAX_INTENT_LENGTH), nullable=True, index=True)
    # {intent: [contagem, primeira ocorrência ISO, id da primeira mensagem]}
    intent_counts = Column(JSON, nullable=False, default=dict)

    # Campos só de escrita, definidos por ação administrativa
    customer_satisfaction = Column(
        SQLAlchemyEnum(Satisfaction, values_callable=_values, name="chat_satisfaction"),
        nullable=False,
        default=Satisfaction.UNKNOWN,
    )
    resolution_status = Column(
        SQLAlchemyEnum(ResolutionStatus, values_callable=_values, name="chat_resolution_status"),
        nullable=False,
        default=ResolutionStatus.UNKNOWN,
    )

    # Contador de versão para compare-and-swap entre escritores concorrentes
    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version_id}
