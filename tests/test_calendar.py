"""Tests for the availability calendar."""

from datetime import date, time, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from goalplan.calendar import AvailabilityCalendar, BlackoutPeriod, TimeWindow, Weekday
from tests.conftest import at

WEDNESDAY = date(2025, 1, 1)
SATURDAY = date(2025, 1, 4)


class TestTimeWindow:
    """Test work window validation."""

    def test_parses_strings(self) -> None:
        window = TimeWindow.model_validate({"start": "09:00", "end": "12:30"})
        assert window.start == time(9)
        assert window.end == time(12, 30)

    def test_end_must_follow_start(self) -> None:
        with pytest.raises(PydanticValidationError, match="must be after start"):
            TimeWindow(start=time(13), end=time(9))

    def test_on_anchors_to_day(self) -> None:
        window = TimeWindow(start=time(9), end=time(13))
        assert window.on(WEDNESDAY) == (at(1, 9), at(1, 13))


class TestAvailabilityCalendar:
    """Test availability lookups."""

    def test_default_workday(self) -> None:
        calendar = AvailabilityCalendar()
        assert calendar.windows_on(WEDNESDAY) == [(at(1, 9), at(1, 17))]
        assert calendar.capacity_on(WEDNESDAY) == timedelta(hours=8)

    def test_windows_are_sorted(self) -> None:
        calendar = AvailabilityCalendar(
            windows=[
                TimeWindow(start=time(14), end=time(16)),
                TimeWindow(start=time(9), end=time(11)),
            ]
        )
        assert calendar.windows_on(WEDNESDAY) == [(at(1, 9), at(1, 11)), (at(1, 14), at(1, 16))]

    def test_overlapping_windows_rejected(self) -> None:
        with pytest.raises(PydanticValidationError, match="overlap"):
            AvailabilityCalendar(
                windows=[
                    TimeWindow(start=time(9), end=time(12)),
                    TimeWindow(start=time(11), end=time(14)),
                ]
            )

    def test_capacity_ceiling(self, morning_calendar: AvailabilityCalendar) -> None:
        calendar = AvailabilityCalendar(daily_capacity_hours=3)
        assert calendar.capacity_on(WEDNESDAY) == timedelta(hours=3)
        # The ceiling never exceeds what the windows offer
        roomy = morning_calendar.model_copy(update={"daily_capacity_hours": 10})
        assert roomy.capacity_on(WEDNESDAY) == timedelta(hours=4)

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            AvailabilityCalendar(daily_capacity_hours=0)

    def test_weekday_override(self) -> None:
        calendar = AvailabilityCalendar.model_validate(
            {"weekday_windows": {"sat": [], "wed": [{"start": "10:00", "end": "12:00"}]}}
        )
        assert calendar.windows_on(SATURDAY) == []
        assert calendar.capacity_on(SATURDAY) == timedelta()
        assert calendar.windows_on(WEDNESDAY) == [(at(1, 10), at(1, 12))]
        assert calendar.windows_on(date(2025, 1, 2)) == [(at(2, 9), at(2, 17))]

    def test_blackouts(self) -> None:
        calendar = AvailabilityCalendar(
            blackouts=[BlackoutPeriod(start=date(2025, 1, 2), end=date(2025, 1, 3))]
        )
        assert calendar.is_blacked_out(date(2025, 1, 3))
        assert calendar.windows_on(date(2025, 1, 2)) == []
        assert calendar.windows_on(SATURDAY) != []

    def test_blackout_order_validated(self) -> None:
        with pytest.raises(PydanticValidationError):
            BlackoutPeriod(start=date(2025, 1, 3), end=date(2025, 1, 2))

    def test_has_availability(self) -> None:
        assert AvailabilityCalendar().has_availability()
        assert not AvailabilityCalendar(windows=[]).has_availability()

        every_day_off = AvailabilityCalendar(weekday_windows={day: [] for day in Weekday})
        assert not every_day_off.has_availability()

        mondays_only = AvailabilityCalendar(
            windows=[], weekday_windows={Weekday.MON: [TimeWindow(start=time(9), end=time(10))]}
        )
        assert mondays_only.has_availability()

    def test_weekday_of(self) -> None:
        assert Weekday.of(WEDNESDAY) == Weekday.WED
        assert Weekday.of(SATURDAY) == Weekday.SAT
