# backend/tests/unit/test_core/test_exceptions.py

from chat_history.core.exceptions import (
    ChatHistoryException,
    ValidationError as DomainValidationError,
    InvalidMessageError,
    InvalidBucketError,
    InvalidRetentionPolicyError,
    InvalidSessionOutcomeError,
    NotFoundError,
    SessionNotFoundError,
    QueryNotFoundError,
    ConsistencyError,
    SessionSummaryDivergedError,
    StorageError,
    PersistenceError,
)
from chat_history.core.exception_handlers import (
    get_status_code_for_exception,
    get_user_friendly_validation_message,
    format_field_errors,
)
from chat_history.core.error_codes import ERROR_CODES


class TestExceptionHierarchy:
    """Testa a hierarquia de exceções customizadas"""

    def test_base_exception_properties(self):
        exc = ChatHistoryException("Test message", "TEST_CODE", {"key": "value"})
        assert exc.message == "Test message"
        assert exc.error_code == "TEST_CODE"
        assert exc.details == {"key": "value"}
        assert str(exc) == "Test message"

    def test_base_exception_defaults(self):
        exc = ChatHistoryException("Test message")
        assert exc.error_code == "GENERIC_ERROR"
        assert exc.details == {}

    def test_validation_error_hierarchy(self):
        msg_exc = InvalidMessageError([{"field": "confidence", "message": "x"}])
        assert isinstance(msg_exc, DomainValidationError)
        assert isinstance(msg_exc, ChatHistoryException)
        assert msg_exc.error_code == "INVALID_MESSAGE"
        assert msg_exc.details["field_errors"][0]["field"] == "confidence"

        bucket_exc = InvalidBucketError("hora deve estar entre 0 e 23", "hour", 24)
        assert isinstance(bucket_exc, DomainValidationError)
        assert bucket_exc.details == {"granularity": "hour", "hour": 24}

        assert InvalidRetentionPolicyError("message_horizon", 0).error_code == "INVALID_RETENTION_POLICY"
        outcome_exc = InvalidSessionOutcomeError("satisfaction", "happy", ["positive"])
        assert outcome_exc.details["allowed"] == ["positive"]

    def test_not_found_hierarchy(self):
        exc = SessionNotFoundError("abc")
        assert isinstance(exc, NotFoundError)
        assert exc.error_code == "SESSION_NOT_FOUND"
        assert exc.details["session_id"] == "abc"
        assert "abc" in exc.message

        assert isinstance(QueryNotFoundError("where is my order"), NotFoundError)

    def test_consistency_and_storage_hierarchy(self):
        diverged = SessionSummaryDivergedError("abc", expected_messages=5, summary_messages=4)
        assert isinstance(diverged, ConsistencyError)
        assert diverged.details["expected_messages"] == 5
        assert diverged.details["summary_messages"] == 4

        storage = PersistenceError("message ingestion", "disk full", attempts=3)
        assert isinstance(storage, StorageError)
        assert storage.details == {"operation": "message ingestion", "error": "disk full", "attempts": 3}

    def test_every_error_code_is_catalogued(self):
        samples = [
            InvalidMessageError([]),
            InvalidBucketError("x"),
            InvalidRetentionPolicyError("f", 0),
            InvalidSessionOutcomeError("f", "v", []),
            SessionNotFoundError("s"),
            QueryNotFoundError("q"),
            SessionSummaryDivergedError("s", 1, 0),
            PersistenceError("op", "err"),
        ]
        for exc in samples:
            assert exc.error_code in ERROR_CODES


class TestStatusCodeMapping:
    """Testa o mapeamento de exceções para códigos HTTP"""

    def test_validation_error_status(self):
        assert get_status_code_for_exception(InvalidMessageError([])) == 400
        assert get_status_code_for_exception(InvalidBucketError("x")) == 400

    def test_not_found_status(self):
        assert get_status_code_for_exception(SessionNotFoundError("s")) == 404

    def test_consistency_status(self):
        assert get_status_code_for_exception(SessionSummaryDivergedError("s", 1, 0)) == 409

    def test_storage_status(self):
        assert get_status_code_for_exception(PersistenceError("op", "err")) == 503

    def test_generic_status(self):
        assert get_status_code_for_exception(ChatHistoryException("x")) == 500


class TestValidationMessages:
    def test_friendly_messages(self):
        assert get_user_friendly_validation_message({"type": "missing"}) == "Campo obrigatório ausente"
        assert "intervalo" in get_user_friendly_validation_message({"type": "less_than_equal"})
        assert get_user_friendly_validation_message({"type": "enum"}) == "Valor fora do conjunto permitido"
        assert get_user_friendly_validation_message({"type": "other", "msg": "boom"}) == "boom"

    def test_format_field_errors(self):
        errors = format_field_errors([
            {"type": "less_than_equal", "loc": ("body", "confidence"), "input": 1.5},
        ])
        assert errors == [{
            "field": "body > confidence",
            "message": "Valor numérico fora do intervalo permitido",
            "invalid_value": 1.5,
        }]
