"""Command-line interface for goalplan."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer

from .exceptions import GoalPlanError
from .logger import setup_logger
from .parser import GoalDocument, GoalFileParser, parse_changes_file
from .planner import (
    FeasibilityReport,
    Plan,
    PlanningService,
    TaskGraph,
    build_graph,
    read_snapshot,
    write_snapshot,
)
from .report import format_adaptation, format_recovery, format_report, format_schedule
from .unified_config import UnifiedConfig, resolve_config

app = typer.Typer(
    name="goalplan",
    help="Turn a goal and its tasks into a feasible schedule, and keep it feasible",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to unified config file (default: goalplan_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for goalplan commands."""
    setup_logger(verbose)
    ctx.obj = {"config": config}


def _parse_when(value: str | None, option: str) -> datetime | None:
    if value is None:
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(
            f"expected an ISO date or datetime, got {value!r}", param_hint=option
        ) from None
    if moment.tzinfo is not None:
        raise typer.BadParameter(
            f"timezone offsets are not supported, use local time: {value!r}", param_hint=option
        )
    return moment


def _parse_progress(values: list[str] | None) -> dict[str, float]:
    progress: dict[str, float] = {}
    for item in values or []:
        task_id, sep, amount = item.partition("=")
        try:
            if not sep:
                raise ValueError
            progress[task_id.strip()] = float(amount)
        except ValueError:
            raise typer.BadParameter(
                f"expected ID=HOURS, got {item!r}", param_hint="--progress"
            ) from None
    return progress


def _load(ctx: typer.Context, goal_file: Path) -> tuple[GoalDocument, UnifiedConfig]:
    obj: dict[str, Any] = ctx.obj or {}
    config = resolve_config(global_path=obj.get("config"), goal_file=goal_file)
    document = GoalFileParser().parse_file(goal_file)
    return document, config


def _build(document: GoalDocument, config: UnifiedConfig, now: datetime | None) -> TaskGraph:
    return build_graph(document.drafts, document.goal, now=now, config=config.scheduler)


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(1)


def _show_warnings(warnings: list[str]) -> None:
    if warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in warnings:
            typer.echo(f"  - {warning}", err=True)


@app.command()
def analyze(
    ctx: typer.Context,
    goal_file: Annotated[Path, typer.Argument(help="Path to the goal YAML file")],
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Plan start (ISO datetime). Defaults to now"),
    ] = None,
) -> None:
    """Show feasibility windows and infeasible tasks."""
    when = _parse_when(start, "--start")
    try:
        document, config = _load(ctx, goal_file)
        plan_start = when or document.goal.created_at or datetime.now()  # noqa: DTZ005
        graph = _build(document, config, plan_start)
        report = PlanningService(config.calendar, config.scheduler).analyze(graph, plan_start)
    except GoalPlanError as e:
        raise _fail(e) from e

    typer.echo(format_report(graph, report))


@app.command()
def schedule(
    ctx: typer.Context,
    goal_file: Annotated[Path, typer.Argument(help="Path to the goal YAML file")],
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Plan start (ISO datetime). Defaults to now"),
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write a schedule snapshot here")
    ] = None,
) -> None:
    """Build a schedule from scratch."""
    when = _parse_when(start, "--start")
    try:
        document, config = _load(ctx, goal_file)
        plan_start = when or document.goal.created_at or datetime.now()  # noqa: DTZ005
        graph = _build(document, config, plan_start)
        plan = PlanningService(config.calendar, config.scheduler).generate_schedule(
            graph, plan_start
        )
        if output:
            write_snapshot(output, plan.schedule)
    except GoalPlanError as e:
        raise _fail(e) from e

    typer.echo(format_schedule(plan.graph, plan.schedule))
    if output:
        typer.echo(f"\nSnapshot written to {output}")
    _show_warnings(plan.schedule.warnings)


def _prior_plan(document: GoalDocument, config: UnifiedConfig, snapshot: Path) -> Plan:
    prior = read_snapshot(snapshot)
    graph = _build(document, config, prior.plan_start)
    report = FeasibilityReport(start=prior.plan_start, windows=dict(prior.windows))
    return Plan(graph=graph, schedule=prior, report=report)


@app.command()
def adjust(  # noqa: PLR0913 - CLI command needs multiple options
    ctx: typer.Context,
    goal_file: Annotated[Path, typer.Argument(help="Path to the goal YAML file")],
    snapshot: Annotated[Path, typer.Argument(help="Snapshot of the prior schedule")],
    changes_file: Annotated[Path, typer.Argument(help="Path to the changes YAML file")],
    now: Annotated[
        str | None,
        typer.Option("--now", help="Re-timed work starts no earlier than this (ISO datetime)"),
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the new snapshot here")
    ] = None,
) -> None:
    """Adapt a prior schedule to a set of changes."""
    when = _parse_when(now, "--now")
    try:
        document, config = _load(ctx, goal_file)
        plan = _prior_plan(document, config, snapshot)
        changes = parse_changes_file(
            changes_file,
            document.goal,
            now=when or plan.schedule.plan_start,
            config=config.scheduler,
        )
        result = PlanningService(config.calendar, config.scheduler).adjust_schedule(
            plan, changes, when
        )
        if output:
            write_snapshot(output, result.schedule)
    except GoalPlanError as e:
        raise _fail(e) from e

    typer.echo(format_adaptation(result))
    _show_warnings(result.schedule.warnings)


@app.command()
def recover(  # noqa: PLR0913 - CLI command needs multiple options
    ctx: typer.Context,
    goal_file: Annotated[Path, typer.Argument(help="Path to the goal YAML file")],
    snapshot: Annotated[Path, typer.Argument(help="Snapshot of the prior schedule")],
    overdue: Annotated[
        list[str], typer.Option("--overdue", help="Overdue task id (repeatable)")
    ],
    now: Annotated[str, typer.Option("--now", help="Current time (ISO datetime)")],
    progress: Annotated[
        list[str] | None,
        typer.Option("--progress", help="Logged hours for a task as ID=HOURS (repeatable)"),
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the new snapshot here")
    ] = None,
) -> None:
    """Re-anchor overdue tasks at now and reschedule what depends on them."""
    when = _parse_when(now, "--now")
    assert when is not None
    logged = _parse_progress(progress)
    try:
        document, config = _load(ctx, goal_file)
        plan = _prior_plan(document, config, snapshot)
        result = PlanningService(config.calendar, config.scheduler).recover_overdue(
            plan, overdue, when, logged
        )
        if output:
            write_snapshot(output, result.schedule)
    except GoalPlanError as e:
        raise _fail(e) from e

    typer.echo(format_recovery(result))
    _show_warnings(result.schedule.warnings)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
