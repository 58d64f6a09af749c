"""
Time context for bonus calculations.

A Clock is an explicit (now, tz_offset_secs) pair so day, weekday and
streak logic stays deterministic under test. Only Clock.from_now() touches
the system clock.
"""

import time
from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field

SECONDS_PER_DAY = 86400


class Weekday(IntEnum):
    """Weekday index of a local day number.

    Day 0 of the unix epoch (1970-01-01) was a Thursday.
    """
    THURSDAY = 0
    FRIDAY = 1
    SATURDAY = 2
    SUNDAY = 3
    MONDAY = 4
    TUESDAY = 5
    WEDNESDAY = 6


class Clock(BaseModel):
    """A UTC instant plus the local UTC offset."""

    model_config = ConfigDict(frozen=True)

    now: int = Field(default=0, ge=0, description="Current UTC unix timestamp")
    tz_offset_secs: int = Field(default=0, description="Local offset from UTC in seconds")

    @classmethod
    def at(cls, now: int, tz_offset_secs: int = 0) -> "Clock":
        return cls(now=now, tz_offset_secs=tz_offset_secs)

    @classmethod
    def from_now(cls) -> "Clock":
        """Build a clock for the current moment in the local timezone."""
        now = int(time.time())
        offset = datetime.now().astimezone().utcoffset()
        tz_offset_secs = int(offset.total_seconds()) if offset is not None else 0
        return cls(now=now, tz_offset_secs=tz_offset_secs)

    def day_of(self, timestamp: int) -> int:
        """Local day number of a UTC timestamp."""
        return (timestamp + self.tz_offset_secs) // SECONDS_PER_DAY

    def today(self) -> int:
        return self.day_of(self.now)

    def day_of_week(self) -> Weekday:
        return Weekday(self.today() % 7)

    def local_seconds_since_midnight(self) -> int:
        return (self.now + self.tz_offset_secs) % SECONDS_PER_DAY
