# backend/chat_history/core/constants.py

"""
Constantes centralizadas do motor de histórico de chat.

Valores fixos do domínio ficam aqui; o que varia por ambiente fica em
settings.py.
"""


class CeleryConstants:
    """Constantes para configuração do Celery"""
    RETRY_BACKOFF_SECONDS = 5
    SOFT_TIME_LIMIT_SECONDS = 300  # 5 minutos
    HARD_TIME_LIMIT_SECONDS = 600  # 10 minutos
    MAX_RETRIES = 3

    HOURLY_ROLLUP_MINUTE = 5  # roda às HH:05 para a hora anterior
    DAILY_MAINTENANCE_HOUR = 2  # 02:00 UTC


class DatabaseConstants:
    """Constantes para configuração do banco"""
    CONNECTION_POOL_SIZE = 10
    CONNECTION_POOL_MAX_OVERFLOW = 20
    CONNECTION_POOL_RECYCLE_SECONDS = 3600  # 1 hora


class MessageConstants:
    """Limites de colunas e domínios das mensagens"""
    MAX_SESSION_ID_LENGTH = 255
    MAX_EMAIL_LENGTH = 255
    MAX_INTENT_LENGTH = 100
    MAX_PAGE_LENGTH = 255
    MAX_IP_ADDRESS_LENGTH = 45  # cabe IPv6
    MIN_CONFIDENCE = 0.0
    MAX_CONFIDENCE = 1.0
    DEFAULT_PAGE_SIZE = 100
    MAX_PAGE_SIZE = 1000


class NormalizationConstants:
    """Constantes da normalização de consultas"""
    MAX_NORMALIZED_LENGTH = 500


class AnalyticsConstants:
    """Constantes dos rollups de analytics"""
    HOURS_PER_DAY = 24
    SATISFACTION_SCORES = {
        "positive": 1,
        "neutral": 0,
        "negative": -1,
    }


class RetentionConstants:
    """Horizontes padrão de retenção (procedimento CleanOldChatData)"""
    MESSAGE_RETENTION_DAYS = 180  # 6 meses
    ANALYTICS_RETENTION_DAYS = 365  # 1 ano


class ReportingConstants:
    """Janelas padrão dos relatórios do dashboard"""
    RECENT_ACTIVITY_HOURS = 24
    DASHBOARD_DAYS = 30
    MAX_RECENT_ACTIVITY_HOURS = 24 * 7
    TOP_QUERIES_DEFAULT = 10
    TOP_QUERIES_MAX = 100


class IngestionConstants:
    """Controle de concorrência otimista na ingestão"""
    MAX_WRITE_RETRIES = 3


class LoggingConstants:
    """Constantes para configuração de logs"""
    MAX_LOG_MESSAGE_LENGTH = 2048
    SLOW_OPERATION_THRESHOLD_MS = 1000  # loga como warning se passar de 1s
