"""Tests for schedule snapshot files."""

from pathlib import Path

import pytest
import yaml

from goalplan.calendar import AvailabilityCalendar
from goalplan.exceptions import ParseError
from goalplan.models import Goal
from goalplan.planner import PlanningService, TaskGraph, read_snapshot, write_snapshot
from goalplan.planner.snapshot import SNAPSHOT_VERSION
from tests.conftest import at, make_task


class TestSnapshot:
    """Test writing and reading snapshots."""

    def test_preserves_schedule(
        self,
        tmp_path: Path,
        scenario_graph: TaskGraph,
        morning_calendar: AvailabilityCalendar,
    ) -> None:
        plan = PlanningService(morning_calendar).generate_schedule(scenario_graph, at(1, 9))
        path = tmp_path / "plan.yaml"

        write_snapshot(path, plan.schedule)
        loaded = read_snapshot(path)

        assert loaded.plan_start == at(1, 9)
        assert loaded.assignments == plan.schedule.assignments
        assert loaded.windows == plan.schedule.windows
        assert loaded.score == plan.schedule.score

    def test_preserves_partial_results(
        self, tmp_path: Path, morning_calendar: AvailabilityCalendar
    ) -> None:
        goal = Goal(id="g", title="Rush", deadline=at(1, 12))
        graph = TaskGraph.from_tasks(goal, [make_task("T1", 2), make_task("T2", 3, "T1")])
        plan = PlanningService(morning_calendar).generate_schedule(graph, at(1, 9))
        path = tmp_path / "plan.yaml"

        write_snapshot(path, plan.schedule)
        loaded = read_snapshot(path)

        assert loaded.must_slip == plan.schedule.must_slip
        assert loaded.warnings == plan.schedule.warnings
        assert loaded.windows["T2"].feasible is False

    def test_file_is_readable_yaml(
        self,
        tmp_path: Path,
        scenario_graph: TaskGraph,
        morning_calendar: AvailabilityCalendar,
    ) -> None:
        plan = PlanningService(morning_calendar).generate_schedule(scenario_graph, at(1, 9))
        path = tmp_path / "plan.yaml"
        write_snapshot(path, plan.schedule)

        data = yaml.safe_load(path.read_text())
        assert data["version"] == SNAPSHOT_VERSION
        assert data["assignments"]["T1"]["start"] == "2025-01-01T09:00:00"
        assert data["assignments"]["T2"]["segments"][1] == [
            "2025-01-02T09:00:00",
            "2025-01-02T10:00:00",
        ]


class TestSnapshotErrors:
    """Test malformed snapshots."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError, match="not found"):
            read_snapshot(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("version: [1\n")
        with pytest.raises(ParseError, match="Invalid YAML"):
            read_snapshot(path)

    def test_missing_version(self, tmp_path: Path) -> None:
        path = tmp_path / "old.yaml"
        path.write_text("plan_start: 2025-01-01T09:00:00\n")
        with pytest.raises(ParseError, match="missing 'version'"):
            read_snapshot(path)

    def test_unsupported_version(self, tmp_path: Path) -> None:
        path = tmp_path / "new.yaml"
        path.write_text("version: 99\nplan_start: 2025-01-01T09:00:00\n")
        with pytest.raises(ParseError, match="Unsupported snapshot version 99"):
            read_snapshot(path)

    def test_bad_timestamp(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("version: 1\nplan_start: soon\nscore: {total: 0}\n")
        with pytest.raises(ParseError, match="Invalid timestamp"):
            read_snapshot(path)

    def test_missing_assignment_field(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            "version: 1\n"
            "plan_start: '2025-01-01T09:00:00'\n"
            "score: {total: 0}\n"
            "assignments:\n"
            "  T1: {start: '2025-01-01T09:00:00'}\n"
        )
        with pytest.raises(ParseError, match="missing 'end'"):
            read_snapshot(path)

    @pytest.mark.parametrize(
        "segments",
        [
            "[['2025-01-01T09:00:00']]",
            "[['2025-01-01T09:00:00', '2025-01-01T10:00:00', '2025-01-01T11:00:00']]",
            "[7]",
        ],
    )
    def test_malformed_segments(self, tmp_path: Path, segments: str) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            "version: 1\n"
            "plan_start: '2025-01-01T09:00:00'\n"
            "score: {total: 0}\n"
            "assignments:\n"
            "  T1:\n"
            "    start: '2025-01-01T09:00:00'\n"
            "    end: '2025-01-01T10:00:00'\n"
            "    effort_hours: 1\n"
            f"    segments: {segments}\n"
        )
        with pytest.raises(ParseError, match="Invalid assignment for 'T1'"):
            read_snapshot(path)

    def test_bad_effort_hours(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            "version: 1\n"
            "plan_start: '2025-01-01T09:00:00'\n"
            "score: {total: 0}\n"
            "assignments:\n"
            "  T1: {start: '2025-01-01T09:00:00', end: '2025-01-01T10:00:00', effort_hours: lots}\n"
        )
        with pytest.raises(ParseError, match="Invalid assignment for 'T1'"):
            read_snapshot(path)

    def test_offset_timestamp(self, tmp_path: Path) -> None:
        path = tmp_path / "utc.yaml"
        path.write_text("version: 1\nplan_start: '2025-01-01T09:00:00+00:00'\nscore: {total: 0}\n")
        with pytest.raises(ParseError, match="UTC offset"):
            read_snapshot(path)
