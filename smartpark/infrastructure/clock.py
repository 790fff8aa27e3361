# File: smartpark/infrastructure/clock.py
"""
Clock collaborators

The engine never reads the wall clock itself. The service asks an injected
clock for the current time, which keeps every operation testable with
deterministic timestamps.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional


class Clock(ABC):
    """Source of the current time"""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Local wall-clock time, truncated to whole seconds"""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FixedClock(Clock):
    """Manually driven clock for tests and simulations"""

    def __init__(self, start: Optional[datetime] = None):
        self._current = start or datetime(2024, 1, 1, 8, 0, 0)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move the clock forward, accepts timedelta keyword arguments"""
        self._current = self._current + timedelta(seconds=seconds, **kwargs)
        return self._current

    def set(self, moment: datetime) -> None:
        self._current = moment
