# backend/chat_history/core/middleware.py

import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .constants import LoggingConstants
from .logging import bind_request, get_logger, new_request_id, unbind_request

# Cabeçalhos opcionais enviados pelo widget de chat
CHAT_SESSION_HEADER = "x-chat-session-id"
REQUEST_ID_HEADER = "x-request-id"

UNLOGGED_PATHS = frozenset({"/health", "/favicon.ico"})


def get_client_ip(request: Request) -> Optional[str]:
    """IP de origem da mensagem, respeitando proxies reversos."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Vincula request_id/session_id aos logs e registra o desfecho de cada chamada."""

    logger = get_logger("middleware.request")

    def _completion_level(self, status_code: int, duration_ms: float) -> str:
        if status_code >= 500:
            return "error"
        if status_code >= 400 or duration_ms > LoggingConstants.SLOW_OPERATION_THRESHOLD_MS:
            return "warning"
        return "info"

    async def dispatch(self, request: Request, call_next):
        # Reaproveita o id do chamador quando vier no cabeçalho
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        tokens = bind_request(request_id, request.headers.get(CHAT_SESSION_HEADER))
        logged = request.url.path not in UNLOGGED_PATHS
        started = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            self.logger.error(
                "Request failed with exception",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.time() - started) * 1000, 2),
                error_type=type(exc).__name__,
            )
            raise
        else:
            response.headers["X-Request-ID"] = request_id
            if logged:
                duration_ms = round((time.time() - started) * 1000, 2)
                level = self._completion_level(response.status_code, duration_ms)
                getattr(self.logger, level)(
                    "Request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            return response
        finally:
            unbind_request(tokens)
