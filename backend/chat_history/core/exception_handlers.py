# backend/chat_history/core/exception_handlers.py

from datetime import datetime
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from .exceptions import (
    ChatHistoryException,
    ValidationError as DomainValidationError,
    NotFoundError,
    ConsistencyError,
    StorageError,
)
from .logging import get_logger

logger = get_logger("core.exception_handlers")


def get_status_code_for_exception(exc: ChatHistoryException) -> int:
    """Mapeia tipos de exceção para códigos HTTP apropriados"""
    if isinstance(exc, DomainValidationError):
        return 400
    elif isinstance(exc, NotFoundError):
        return 404
    elif isinstance(exc, ConsistencyError):
        return 409  # Conflict
    elif isinstance(exc, StorageError):
        return 503  # Service Unavailable
    else:
        return 500


def _error_body(code: str, message: str, details: dict, request: Request) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url.path),
        }
    }


async def chat_history_exception_handler(request: Request, exc: ChatHistoryException):
    """Handler para todas as exceções customizadas do projeto"""
    status_code = get_status_code_for_exception(exc)

    log_method = logger.error if status_code >= 500 else logger.warning
    log_method(
        "Chat history exception",
        error_code=exc.error_code,
        error_message=exc.message,
        details=exc.details,
        path=request.url.path,
        method=request.method,
        status_code=status_code,
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.error_code, exc.message, exc.details, request),
    )


def get_user_friendly_validation_message(error: dict) -> str:
    """Converte erros técnicos do Pydantic em mensagens legíveis"""
    error_type = error.get("type", "")

    if error_type in {"missing", "value_error.missing"}:
        return "Campo obrigatório ausente"
    elif error_type in {"greater_than_equal", "less_than_equal"}:
        return "Valor numérico fora do intervalo permitido"
    elif error_type in {"int_parsing", "int_type"}:
        return "Número inteiro inválido"
    elif error_type in {"float_parsing", "float_type"}:
        return "Número decimal inválido"
    elif error_type == "enum":
        return "Valor fora do conjunto permitido"
    elif error_type in {"string_too_long"}:
        return "Texto excede o tamanho máximo"
    elif error_type.startswith("date") or error_type.startswith("datetime"):
        return "Data inválida"
    else:
        return error.get("msg", "Valor inválido")


def format_field_errors(errors: list[dict]) -> list[dict]:
    """Transforma a lista de erros do Pydantic no formato de resposta da API"""
    return [
        {
            "field": " > ".join(str(loc) for loc in error.get("loc", ())),
            "message": get_user_friendly_validation_message(error),
            "invalid_value": error.get("input"),
        }
        for error in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler para erros de validação de requisição do FastAPI"""
    logger.warning(
        "Request validation error",
        errors_count=len(exc.errors()),
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=422,
        content=_error_body(
            "VALIDATION_ERROR",
            "Dados enviados contêm erros",
            {"field_errors": format_field_errors(exc.errors())},
            request,
        ),
    )
