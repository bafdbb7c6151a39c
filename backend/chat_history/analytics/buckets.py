"""Chaves de bucket: variante {HourlyBucket(date, hour), DailyBucket(date)}."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from chat_history.core.validators import BucketValidators
from .models import Granularity


@dataclass(frozen=True)
class HourlyBucket:
    day: date
    hour: int

    granularity = Granularity.HOUR

    @property
    def key(self) -> str:
        return f"{self.day.isoformat()}/h{self.hour:02d}"

    def window(self) -> Tuple[datetime, datetime]:
        start = datetime.combine(self.day, time(hour=self.hour))
        return start, start + timedelta(hours=1)


@dataclass(frozen=True)
class DailyBucket:
    day: date

    granularity = Granularity.DAY
    hour = None

    @property
    def key(self) -> str:
        return f"{self.day.isoformat()}/day"

    def window(self) -> Tuple[datetime, datetime]:
        start = datetime.combine(self.day, time())
        return start, start + timedelta(days=1)


BucketKey = Union[HourlyBucket, DailyBucket]


def bucket_for(day: date, granularity, hour: Optional[int] = None) -> BucketKey:
    """
    Monta a chave validada.

    Raises:
        InvalidBucketError: hora ausente/fora de 0-23 no horário ou presente no diário
    """
    value = granularity.value if isinstance(granularity, Granularity) else granularity
    BucketValidators.validate_hour(value, hour)
    if value == Granularity.HOUR.value:
        return HourlyBucket(day, hour)
    return DailyBucket(day)


def hourly_bucket_at(moment: datetime) -> HourlyBucket:
    return HourlyBucket(moment.date(), moment.hour)
