"""Availability calendar: when the user can work and how much per day.

The calendar is read-only input to every scheduling call. It combines:
- Default daily work windows (e.g., 09:00-13:00)
- Per-weekday overrides (an empty list makes that weekday a day off)
- Blackout periods (vacations, do-not-schedule dates)
- A per-day effort ceiling; the capacity period is one calendar day
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class Weekday(str, Enum):
    """Day of week keys used in calendar overrides."""

    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"

    @classmethod
    def of(cls, day: date) -> Weekday:
        return list(cls)[day.weekday()]


class TimeWindow(BaseModel):
    """A time-of-day interval during which work can happen."""

    start: time
    end: time

    @model_validator(mode="after")
    def validate_end_after_start(self) -> TimeWindow:
        """Windows must be non-empty and may not cross midnight."""
        if self.end <= self.start:
            raise ValueError(f"window end {self.end} must be after start {self.start}")
        return self

    def on(self, day: date) -> tuple[datetime, datetime]:
        """Anchor this window to a concrete day."""
        return (datetime.combine(day, self.start), datetime.combine(day, self.end))


class BlackoutPeriod(BaseModel):
    """An inclusive date range with no availability at all."""

    start: date
    end: date
    reason: str | None = None

    @model_validator(mode="after")
    def validate_end_after_start(self) -> BlackoutPeriod:
        if self.end < self.start:
            raise ValueError("blackout end date must not be before its start date")
        return self

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


def _default_windows() -> list[TimeWindow]:
    return [TimeWindow(start=time(9, 0), end=time(17, 0))]


def _check_disjoint(windows: list[TimeWindow]) -> list[TimeWindow]:
    ordered = sorted(windows, key=lambda w: w.start)
    for prev, cur in zip(ordered, ordered[1:]):
        if cur.start < prev.end:
            raise ValueError(
                f"windows {prev.start}-{prev.end} and {cur.start}-{cur.end} overlap"
            )
    return ordered


class AvailabilityCalendar(BaseModel):
    """When the user can work, and the per-day effort ceiling."""

    windows: list[TimeWindow] = Field(default_factory=_default_windows)
    weekday_windows: dict[Weekday, list[TimeWindow]] = Field(default_factory=dict)
    blackouts: list[BlackoutPeriod] = Field(default_factory=list)
    daily_capacity_hours: float | None = Field(default=None, gt=0, le=24)

    @field_validator("windows")
    @classmethod
    def validate_windows(cls, v: list[TimeWindow]) -> list[TimeWindow]:
        return _check_disjoint(v)

    @field_validator("weekday_windows")
    @classmethod
    def validate_weekday_windows(
        cls, v: dict[Weekday, list[TimeWindow]]
    ) -> dict[Weekday, list[TimeWindow]]:
        return {day: _check_disjoint(windows) for day, windows in v.items()}

    def is_blacked_out(self, day: date) -> bool:
        return any(period.covers(day) for period in self.blackouts)

    def windows_on(self, day: date) -> list[tuple[datetime, datetime]]:
        """Concrete, sorted, disjoint work windows for a day (empty if none)."""
        if self.is_blacked_out(day):
            return []
        windows = self.weekday_windows.get(Weekday.of(day), self.windows)
        return [window.on(day) for window in windows]

    def capacity_on(self, day: date) -> timedelta:
        """Effort that can be assigned on a day: the ceiling, capped by the windows."""
        total = sum((end - start for start, end in self.windows_on(day)), timedelta())
        if self.daily_capacity_hours is None:
            return total
        return min(total, timedelta(hours=self.daily_capacity_hours))

    def has_availability(self) -> bool:
        """True if at least one weekday has any work window."""
        if self.windows:
            return len(self.weekday_windows) < len(Weekday) or any(
                self.weekday_windows.values()
            )
        return any(self.weekday_windows.values())
