# backend/chat_history/core/validators.py

"""
Validadores centralizados.

Toda entrada externa passa por aqui antes de tocar o banco: erros do Pydantic
viram exceções de domínio (ValidationError) com a lista de campos inválidos.
"""

from datetime import timedelta
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .constants import AnalyticsConstants
from .exception_handlers import format_field_errors
from .exceptions import (
    InvalidMessageError,
    InvalidBucketError,
    InvalidRetentionPolicyError,
    InvalidSessionOutcomeError,
)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class MessageValidators:
    """Validadores de mensagens de entrada"""

    @staticmethod
    def parse(schema: Type[SchemaT], payload) -> SchemaT:
        """
        Constrói o schema a partir de um dict (ou devolve a instância pronta).

        Raises:
            InvalidMessageError: se algum campo estiver fora do domínio
        """
        if isinstance(payload, schema):
            return payload
        try:
            return schema.model_validate(payload)
        except PydanticValidationError as exc:
            raise InvalidMessageError(format_field_errors(exc.errors())) from exc


class BucketValidators:
    """Validadores das chaves de bucket de analytics"""

    @staticmethod
    def validate_hour(granularity: str, hour: Optional[int]) -> None:
        if granularity == "hour":
            if hour is None:
                raise InvalidBucketError("bucket horário exige a hora", granularity, hour)
            if not (0 <= hour < AnalyticsConstants.HOURS_PER_DAY):
                raise InvalidBucketError("hora deve estar entre 0 e 23", granularity, hour)
        elif granularity == "day":
            if hour is not None:
                raise InvalidBucketError("bucket diário não aceita hora", granularity, hour)
        else:
            raise InvalidBucketError(f"granularidade desconhecida '{granularity}'", granularity, hour)


class RetentionValidators:
    """Validadores da política de retenção"""

    @staticmethod
    def validate_horizon(field: str, horizon: timedelta) -> None:
        if not isinstance(horizon, timedelta) or horizon <= timedelta(0):
            raise InvalidRetentionPolicyError(field, horizon)


class SessionOutcomeValidators:
    """Validadores dos campos administrativos da sessão"""

    @staticmethod
    def coerce(field: str, value, enum_cls):
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            raise InvalidSessionOutcomeError(field, value, [m.value for m in enum_cls])
