"""Time and identifier sources injected into the store."""

from __future__ import annotations

import calendar
import itertools
from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from uuid import uuid4

from .models import Frequency


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def today(self) -> date:
        return self._moment.date()

    def advance(self, delta: timedelta = timedelta(seconds=1)) -> datetime:
        self._moment = self._moment + delta
        return self._moment


class IdFactory(Protocol):
    def __call__(self, prefix: str) -> str: ...


class UUIDIdFactory:
    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{uuid4().hex[:12]}"


class SequentialIdFactory:
    """Monotonic ids such as ``donor-0001``."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter):04d}"


def _add_months(start: date, months: int) -> date:
    # Days past the end of the target month spill into the next one.
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    if start.day <= last_day:
        return date(year, month, start.day)
    return date(year, month, last_day) + timedelta(days=start.day - last_day)


def add_frequency(start: date, frequency: Frequency | str) -> date:
    frequency = Frequency(frequency)
    if frequency == Frequency.WEEKLY:
        return start + timedelta(days=7)
    if frequency == Frequency.MONTHLY:
        return _add_months(start, 1)
    return _add_months(start, 12)
