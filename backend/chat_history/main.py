from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from chat_history.core.database import engine
from chat_history import models
from chat_history.messages.router import router as messages_router
from chat_history.sessions.router import router as sessions_router
from chat_history.queries.router import router as queries_router
from chat_history.analytics.router import router as analytics_router
from chat_history.retention.router import router as retention_router
from chat_history.core.exceptions import ChatHistoryException
from chat_history.core.exception_handlers import (
    chat_history_exception_handler,
    validation_exception_handler,
)
from chat_history.core.middleware import RequestLoggingMiddleware
from chat_history.core.settings import settings
from chat_history.core.logging import setup_logging, get_logger

# Configura o sistema de logging estruturado
setup_logging(
    log_level=settings.LOG_LEVEL,
    is_development=settings.is_development,
)

logger = get_logger("main")

# Cria as tabelas no banco de dados
logger.info("Creating database tables")
models.Base.metadata.create_all(bind=engine)
logger.info("Database tables created successfully")

app = FastAPI(
    title="Chat History API",
    description="Histórico persistente do chatbot: mensagens, resumos de sessão, analytics e retenção.",
    version="0.1.0"
)

logger.info("Adding request logging middleware")
app.add_middleware(RequestLoggingMiddleware)

logger.info("Configuring exception handlers")
app.add_exception_handler(ChatHistoryException, chat_history_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

logger.info("Registering API routers")
app.include_router(messages_router, prefix="/api/v1/messages", tags=["Messages"])
app.include_router(sessions_router, prefix="/api/v1/sessions", tags=["Sessions"])
app.include_router(queries_router, prefix="/api/v1/queries", tags=["Common Queries"])
app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])
app.include_router(retention_router, prefix="/api/v1/maintenance", tags=["Maintenance"])


@app.get("/health")
def health_check():
    logger.debug("Health check requested")
    return {"status": "ok"}


logger.info(
    "FastAPI application initialized successfully",
    environment=settings.ENVIRONMENT,
    log_level=settings.LOG_LEVEL,
)
