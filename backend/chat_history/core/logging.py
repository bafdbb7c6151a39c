"""
Logging estruturado (structlog) do motor de histórico de chat.

Ingestão, agregação de sessões, rollups e retenção logam eventos com contexto
vinculado (request_id, session_id, bucket_key, fase da retenção). Em
desenvolvimento a saída é colorida; nos demais ambientes, uma linha JSON por
evento.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional, Tuple

import structlog

from .constants import LoggingConstants

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_chat_session_id: ContextVar[Optional[str]] = ContextVar("chat_session_id", default=None)

# Metadados do cliente e credenciais nunca vão para os logs
REDACTED_KEYS = ("ip_address", "user_agent", "password", "token", "secret", "api_key")

# Bibliotecas ruidosas e o nível mínimo de cada uma
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "celery": logging.INFO,
}


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:8]}"


def bind_request(request_id: str, chat_session_id: Optional[str] = None) -> Tuple:
    """Vincula a requisição corrente aos logs; devolve tokens para `unbind_request`."""
    return _request_id.set(request_id), _chat_session_id.set(chat_session_id)


def unbind_request(tokens: Tuple) -> None:
    request_token, session_token = tokens
    _request_id.reset(request_token)
    _chat_session_id.reset(session_token)


def inject_request_context(logger, method_name, event_dict):
    request_id = _request_id.get()
    if request_id:
        event_dict["request_id"] = request_id
    # session_id explícito no evento tem precedência sobre o cabeçalho do widget
    chat_session_id = _chat_session_id.get()
    if chat_session_id:
        event_dict.setdefault("session_id", chat_session_id)
    return event_dict


def severity_from_level(logger, method_name, event_dict):
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = level.upper()
    return event_dict


def _redact(value):
    if isinstance(value, dict):
        return {
            key: "[REDACTED]" if any(part in str(key).lower() for part in REDACTED_KEYS) else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item) for item in value]
    return value


def redact_client_metadata(logger, method_name, event_dict):
    return _redact(event_dict)


def truncate_long_values(logger, method_name, event_dict):
    """Textos de mensagem podem ser longos; corta strings acima do limite."""
    limit = LoggingConstants.MAX_LOG_MESSAGE_LENGTH
    for key, value in event_dict.items():
        if isinstance(value, str) and len(value) > limit:
            event_dict[key] = value[:limit] + "...[truncated]"
    return event_dict


def _renderers(is_development: bool) -> list:
    if is_development:
        return [structlog.processors.StackInfoRenderer(), structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def setup_logging(log_level: str = "INFO", is_development: bool = True) -> None:
    """Configura structlog sobre o logging da stdlib.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR ou CRITICAL
        is_development: saída colorida legível; senão JSON
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            inject_request_context,
            structlog.stdlib.add_log_level,
            severity_from_level,
            redact_client_metadata,
            truncate_long_values,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            *_renderers(is_development),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Logger com contexto vinculado durante um bloco. Blocos que passam do
    limite de operação lenta geram um aviso ao sair.
    """

    def __init__(self, logger_name: str = None, **context):
        self.logger = get_logger(logger_name).bind(**context)
        self._started = None

    def __enter__(self):
        self._started = time.time()
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = round((time.time() - self._started) * 1000, 2)
        if elapsed_ms > LoggingConstants.SLOW_OPERATION_THRESHOLD_MS:
            self.logger.warning("Slow operation", elapsed_ms=elapsed_ms, failed=exc_type is not None)
        return False
