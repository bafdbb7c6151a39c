# backend/chat_history/core/error_codes.py

"""
Catálogo de códigos de erro expostos pela API.
Este arquivo documenta todos os error_code disponíveis no sistema.
"""

ERROR_CODES = {
    # Genéricos
    "GENERIC_ERROR": "Erro genérico",

    # Validação
    "INVALID_MESSAGE": "Mensagem com campos fora do domínio",
    "INVALID_BUCKET": "Bucket de analytics inválido",
    "INVALID_RETENTION_POLICY": "Horizonte de retenção inválido",
    "INVALID_SESSION_OUTCOME": "Resultado de sessão inválido",
    "VALIDATION_ERROR": "Erros de validação de dados",

    # Não encontrado
    "SESSION_NOT_FOUND": "Sessão inexistente",
    "QUERY_NOT_FOUND": "Consulta inexistente no índice",

    # Consistência
    "SESSION_SUMMARY_DIVERGED": "Resumo de sessão divergente das mensagens",

    # Armazenamento
    "PERSISTENCE_ERROR": "Falha na camada de persistência",
}
