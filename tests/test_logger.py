"""Tests for planner output at different verbosity levels."""

from io import StringIO

import pytest

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import (
    CHANGES_LEVEL,
    checks_enabled,
    debug_enabled,
    format_hours,
    get_logger,
    reset_logger,
    setup_logger,
)
from goalplan.planner import EffortReestimated, PlanningService, TaskGraph, adapt
from tests.conftest import at


def test_levels_are_gated() -> None:
    """Each verbosity level enables itself and everything below it."""
    setup_logger(1, stream=StringIO())
    assert get_logger().isEnabledFor(CHANGES_LEVEL)
    assert not checks_enabled()

    setup_logger(2, stream=StringIO())
    assert checks_enabled()
    assert not debug_enabled()

    setup_logger(3, stream=StringIO())
    assert debug_enabled()

    reset_logger()
    assert not get_logger().isEnabledFor(CHANGES_LEVEL)


def test_get_logger_is_a_singleton() -> None:
    assert get_logger() is get_logger()


def test_debug_output_is_tagged() -> None:
    """Interleaved levels carry a level tag at debug verbosity."""
    output_stream = StringIO()
    setup_logger(3, stream=output_stream)
    get_logger().changes("placed")
    get_logger().debug("walked")

    output = output_stream.getvalue()
    assert "CHANGES placed" in output
    assert "DEBUG   walked" in output


def test_adaptation_logs_changes_and_dirty_set(
    scenario_graph: TaskGraph, morning_calendar: AvailabilityCalendar
) -> None:
    """Verbosity 2 shows each applied change and the resulting dirty set."""
    plan = PlanningService(morning_calendar).generate_schedule(scenario_graph, at(1, 9))

    output_stream = StringIO()
    setup_logger(2, stream=output_stream)
    adapt(plan.graph, plan.schedule, [EffortReestimated("T2", 4)], morning_calendar)

    output = output_stream.getvalue()
    assert "Applying change: re-estimated T2 at 4h" in output
    assert "Dirty: ['T2']; pinned: 1" in output


@pytest.mark.parametrize(
    ("hours", "expected"),
    [(0.75, "45m"), (1.0, "1h"), (1.5, "1.5h"), (0.0, "0h"), (17.0, "17h")],
)
def test_format_hours(hours: float, expected: str) -> None:
    assert format_hours(hours) == expected
