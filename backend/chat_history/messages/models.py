import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Index, Enum as SQLAlchemyEnum
from chat_history.core.database import Base
from chat_history.core.constants import MessageConstants

class SenderType(str, enum.Enum):
    USER = "user"
    BOT = "bot"
    ADMIN = "admin"
    ADMIN_BOT = "admin_bot"

    @property
    def is_admin(self) -> bool:
        return self in (SenderType.ADMIN, SenderType.ADMIN_BOT)

class ChatMessage(Base):
    """Mensagem bruta do chat. Imutável depois de gravada; só a retenção apaga."""
    __tablename__ = "chat_conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(MessageConstants.MAX_SESSION_ID_LENGTH), nullable=False, index=True)
    user_email = Column(String(MessageConstants.MAX_EMAIL_LENGTH), nullable=True, index=True)
    sender = Column(
        SQLAlchemyEnum(SenderType, values_callable=lambda e: [m.value for m in e], name="chat_sender"),
        nullable=False,
        index=True,
    )
    message = Column(Text, nullable=False)

    # Saída do classificador de intenções (externo)
    intent = Column(String(MessageConstants.MAX_INTENT_LENGTH), nullable=True, index=True)
    confidence = Column(Float, nullable=True)  # 0.0 a 1.0

    # Contexto do cliente
    current_page = Column(String(MessageConstants.MAX_PAGE_LENGTH), nullable=True)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(MessageConstants.MAX_IP_ADDRESS_LENGTH), nullable=True)

    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_session_created", "session_id", "created_at"),
        Index("idx_user_date", "user_email", "created_at"),
        Index("idx_intent_date", "intent", "created_at"),
    )
