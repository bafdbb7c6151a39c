import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum as SQLAlchemyEnum
from chat_history.core.database import Base
from chat_history.core.constants import MessageConstants

class Granularity(str, enum.Enum):
    HOUR = "hour"
    DAY = "day"

class ChatAnalytics(Base):
    """Rollup derivado de uma janela fixa (hora ou dia). Nunca editado à mão."""
    __tablename__ = "chat_analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Chave única derivada de (data, granularidade, hora): NULL em UNIQUE não deduplica
    bucket_key = Column(String(32), unique=True, nullable=False)
    date_recorded = Column(Date, nullable=False, index=True)
    granularity = Column(
        SQLAlchemyEnum(Granularity, values_callable=lambda e: [m.value for m in e], name="chat_granularity"),
        nullable=False,
    )
    hour_recorded = Column(Integer, nullable=True)  # 0-23; NULL para buckets diários

    total_sessions = Column(Integer, nullable=False, default=0)
    total_messages = Column(Integer, nullable=False, default=0)
    user_messages = Column(Integer, nullable=False, default=0)
    bot_messages = Column(Integer, nullable=False, default=0)
    unique_users = Column(Integer, nullable=False, default=0)
    average_session_duration = Column(Float, nullable=True)  # segundos
    average_response_time = Column(Float, nullable=True)  # ms
    most_common_intent = Column(String(MessageConstants.MAX_INTENT_LENGTH), nullable=True)
    resolved_sessions = Column(Integer, nullable=False, default=0)
    escalated_sessions = Column(Integer, nullable=False, default=0)
    customer_satisfaction_score = Column(Float, nullable=True)  # -1 a 1

    created_at = Column(DateTime, default=datetime.utcnow)
