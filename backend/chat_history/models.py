# Ponto de entrada que importa todos os modelos para registrá-los no Base do
# SQLAlchemy antes de create_all / uso pelo Celery.

from chat_history.core.database import Base

from chat_history.messages.models import ChatMessage, SenderType
from chat_history.sessions.models import ChatSession, SessionType, Satisfaction, ResolutionStatus
from chat_history.analytics.models import ChatAnalytics, Granularity
from chat_history.queries.models import CommonQuery
