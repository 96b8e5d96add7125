"""Availability ledger: what remains free on the calendar."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import get_logger

from .core import Segment

logger = get_logger()


class AvailabilityLedger:
    """Tracks booked work against an availability calendar.

    Maintains the invariant that ``busy`` is sorted by start and contains no
    overlapping segments, which enables binary search lookups. Per-day usage is
    tracked separately so no day is booked past the calendar's capacity ceiling.
    Every walk is bounded by the horizon.
    """

    def __init__(
        self,
        calendar: AvailabilityCalendar,
        horizon_start: datetime,
        horizon_days: int,
    ) -> None:
        self.calendar = calendar
        self.horizon_start = horizon_start
        self.horizon_end = datetime.combine(
            horizon_start.date() + timedelta(days=horizon_days), time.min
        )
        self.busy: list[Segment] = []
        self._used: dict[date, timedelta] = {}

    def copy(self) -> AvailabilityLedger:
        """Independent copy (used for trial placements)."""
        new_ledger = AvailabilityLedger.__new__(AvailabilityLedger)
        new_ledger.calendar = self.calendar
        new_ledger.horizon_start = self.horizon_start
        new_ledger.horizon_end = self.horizon_end
        new_ledger.busy = list(self.busy)
        new_ledger._used = dict(self._used)
        return new_ledger

    def used_on(self, day: date) -> timedelta:
        return self._used.get(day, timedelta())

    def remaining_on(self, day: date) -> timedelta:
        return max(self.calendar.capacity_on(day) - self.used_on(day), timedelta())

    def book(self, segments: Iterable[Segment]) -> None:
        """Mark segments as busy and charge them to their day's capacity."""
        for start, end in segments:
            self._used[start.date()] = self.used_on(start.date()) + (end - start)
            self._add_busy(start, end)

    def _add_busy(self, start: datetime, end: datetime) -> None:
        idx = bisect.bisect_left(self.busy, start, key=lambda seg: seg[0])

        # Merge with previous segment if touching or overlapping
        if idx > 0:
            prev_start, prev_end = self.busy[idx - 1]
            if prev_end >= start:
                start = prev_start
                end = max(prev_end, end)
                idx -= 1
                del self.busy[idx]

        # Merge with subsequent segments
        while idx < len(self.busy):
            next_start, next_end = self.busy[idx]
            if next_start <= end:
                end = max(end, next_end)
                del self.busy[idx]
            else:
                break

        self.busy.insert(idx, (start, end))

    def _free_within(self, start: datetime, end: datetime) -> list[Segment]:
        """Parts of [start, end) not covered by a busy segment."""
        # Leftmost busy segment ending after start
        lo, hi = 0, len(self.busy)
        while lo < hi:
            mid = (lo + hi) // 2
            if self.busy[mid][1] <= start:
                lo = mid + 1
            else:
                hi = mid

        free: list[Segment] = []
        cursor = start
        for busy_start, busy_end in self.busy[lo:]:
            if busy_start >= end:
                break
            if busy_start > cursor:
                free.append((cursor, busy_start))
            cursor = max(cursor, busy_end)
        if cursor < end:
            free.append((cursor, end))
        return free

    def free_segments(self, start: datetime) -> Iterator[Segment]:
        """Free, capacity-limited work time at or after start, in order.

        Days whose capacity is already exhausted are skipped.
        """
        day = start.date()
        while datetime.combine(day, time.min) < self.horizon_end:
            remaining = self.remaining_on(day)
            if remaining <= timedelta():
                logger.debug(f"      {day}: capacity exhausted")
            for window_start, window_end in self.calendar.windows_on(day):
                if remaining <= timedelta():
                    break
                if window_end <= start:
                    continue
                for free_start, free_end in self._free_within(max(window_start, start), window_end):
                    take = min(free_end - free_start, remaining)
                    remaining -= take
                    yield (free_start, free_start + take)
                    if remaining <= timedelta():
                        break
            day += timedelta(days=1)

    def first_free(self, start: datetime) -> datetime | None:
        """Earliest instant at or after start when work could happen."""
        return next((seg[0] for seg in self.free_segments(start)), None)

    def allocate(
        self,
        earliest: datetime,
        effort: timedelta,
        latest: datetime | None = None,
    ) -> list[Segment] | None:
        """Find the earliest segments that complete effort, starting at/after earliest.

        Walks forward through free time, consuming availability windows in
        order until the full effort is accounted for. Does not book them.

        Args:
            earliest: Work may not start before this instant
            effort: Work to place
            latest: Optional instant the work must be finished by

        Returns:
            The segments to book, or None if the effort cannot be completed
            by latest (or within the horizon)
        """
        if effort <= timedelta():
            return []
        remaining = effort
        segments: list[Segment] = []
        for free_start, free_end in self.free_segments(earliest):
            take = min(free_end - free_start, remaining)
            seg_end = free_start + take
            if latest is not None and seg_end > latest:
                return None
            segments.append((free_start, seg_end))
            remaining -= take
            if remaining <= timedelta():
                return segments
        return None

    def latest_start(self, finish: datetime, effort: timedelta) -> datetime | None:
        """Latest instant work can start and still complete effort by finish.

        Mirror image of allocate(): walks backward from finish, consuming the
        latest free time of each day first, never crossing the horizon start.

        Returns:
            Start of the earliest consumed segment, or None if the effort does
            not fit between the horizon start and finish
        """
        if effort <= timedelta():
            return finish
        remaining = effort
        day = min(finish, self.horizon_end).date()
        while day >= self.horizon_start.date() and remaining > timedelta():
            capacity = self.remaining_on(day)
            for window_start, window_end in reversed(self.calendar.windows_on(day)):
                if capacity <= timedelta() or remaining <= timedelta():
                    break
                window_start = max(window_start, self.horizon_start)
                window_end = min(window_end, finish)
                if window_end <= window_start:
                    continue
                for free_start, free_end in reversed(self._free_within(window_start, window_end)):
                    take = min(free_end - free_start, remaining, capacity)
                    remaining -= take
                    capacity -= take
                    if remaining <= timedelta():
                        return free_end - take
                    if capacity <= timedelta():
                        break
            day -= timedelta(days=1)
        return None
