# backend/chat_history/core/exceptions.py

class ChatHistoryException(Exception):
    """Base exception para todas as exceções customizadas do projeto"""
    def __init__(self, message: str, error_code: str = None, details: dict = None):
        self.message = message
        self.error_code = error_code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(self.message)

# === EXCEÇÕES DE VALIDAÇÃO ===
# Entrada malformada: rejeitada de forma síncrona, nada é gravado.
class ValidationError(ChatHistoryException):
    """Erros de validação de dados de entrada"""
    pass

class InvalidMessageError(ValidationError):
    def __init__(self, field_errors: list[dict]):
        super().__init__(
            message="Mensagem inválida: campos fora do domínio permitido",
            error_code="INVALID_MESSAGE",
            details={"field_errors": field_errors}
        )

class InvalidBucketError(ValidationError):
    def __init__(self, reason: str, granularity: str = None, hour: int = None):
        super().__init__(
            message=f"Bucket de analytics inválido: {reason}",
            error_code="INVALID_BUCKET",
            details={"granularity": granularity, "hour": hour}
        )

class InvalidRetentionPolicyError(ValidationError):
    def __init__(self, field: str, value):
        super().__init__(
            message=f"Horizonte de retenção inválido para '{field}': deve ser positivo",
            error_code="INVALID_RETENTION_POLICY",
            details={"field": field, "value": str(value)}
        )

class InvalidSessionOutcomeError(ValidationError):
    def __init__(self, field: str, value, allowed: list[str]):
        super().__init__(
            message=f"Valor inválido para '{field}': {value}",
            error_code="INVALID_SESSION_OUTCOME",
            details={"field": field, "value": value, "allowed": allowed}
        )

# === EXCEÇÕES DE RECURSO NÃO ENCONTRADO ===
class NotFoundError(ChatHistoryException):
    """Operação referencia sessão ou entrada sem dados de origem"""
    pass

class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__(
            message=f"Sessão '{session_id}' não encontrada",
            error_code="SESSION_NOT_FOUND",
            details={"session_id": session_id}
        )

class QueryNotFoundError(NotFoundError):
    def __init__(self, normalized_query: str):
        super().__init__(
            message=f"Consulta '{normalized_query}' não encontrada no índice de frequência",
            error_code="QUERY_NOT_FOUND",
            details={"normalized_query": normalized_query}
        )

# === EXCEÇÕES DE CONSISTÊNCIA ===
# Estado derivado divergiu da fonte da verdade (EventStore).
class ConsistencyError(ChatHistoryException):
    """Estado derivado divergente da fonte da verdade"""
    pass

class SessionSummaryDivergedError(ConsistencyError):
    def __init__(self, session_id: str, expected_messages: int, summary_messages: int):
        super().__init__(
            message=f"Resumo da sessão '{session_id}' divergente do histórico de mensagens",
            error_code="SESSION_SUMMARY_DIVERGED",
            details={
                "session_id": session_id,
                "expected_messages": expected_messages,
                "summary_messages": summary_messages,
            }
        )

# === EXCEÇÕES DE ARMAZENAMENTO ===
class StorageError(ChatHistoryException):
    """Falhas da camada de persistência"""
    pass

class PersistenceError(StorageError):
    def __init__(self, operation: str, error: str, attempts: int = 1):
        super().__init__(
            message=f"Falha de persistência durante {operation}",
            error_code="PERSISTENCE_ERROR",
            details={"operation": operation, "error": error, "attempts": attempts}
        )
