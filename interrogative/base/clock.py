"""Module clock: injectable time source and scheduler."""
#
# PURPOSE:
# Every timestamp and every simulated wait goes through a Clock so tests can
# drive scans, trending windows and day/week/month counters deterministically.
#
# - SystemClock: wall-clock local time, real asyncio sleeps
# - ManualClock: virtual time that only moves when told to (or when slept on)
#

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Time source used by stores and the phase driver."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware datetime."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for `seconds` of this clock's time."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now().astimezone()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock(Clock):
    """
    Virtual clock for tests and deterministic replays.

    sleep() advances the virtual time by the requested amount and yields to
    the event loop once, so phase-driven scans finish without real waiting.
    """

    def __init__(self, start: Optional[datetime] = None):
        start = start or datetime(2024, 6, 12, 9, 30, tzinfo=timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start
        self.slept: float = 0.0

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0.0, **kwargs) -> datetime:
        """Move time forward; keyword arguments are passed to timedelta."""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self._now.tzinfo)
        self._now = moment

    async def sleep(self, seconds: float) -> None:
        seconds = max(0.0, seconds)
        self.slept += seconds
        self.advance(seconds)
        await asyncio.sleep(0)
