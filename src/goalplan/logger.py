"""Verbosity-gated logging for the planner.

One "goalplan" logger serves the whole package. Two extra levels sit between
the standard ones so the CLI's -v count maps onto what a planner user wants
to see: placements first, then the candidates behind them, then calendar walks.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # Placements, pins and re-timings (-v)
CHECKS_LEVEL = 15  # Candidates considered and why they were rejected (-vv)

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0
VERBOSITY_CHANGES = 1
VERBOSITY_CHECKS = 2
VERBOSITY_DEBUG = 3

_LEVELS = {
    VERBOSITY_SILENT: logging.ERROR,
    VERBOSITY_CHANGES: CHANGES_LEVEL,
    VERBOSITY_CHECKS: CHECKS_LEVEL,
    VERBOSITY_DEBUG: logging.DEBUG,
}


class PlanLogger(logging.Logger):
    """Logger with one method per planner verbosity level.

    - changes(): level 1, what moved on the calendar
    - checks(): level 2, what the analyzer and scheduler looked at
    - debug(): level 3, window arithmetic and ledger walks
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> PlanLogger:
    """Return the shared planner logger, creating it as a PlanLogger on first use."""
    logging.setLoggerClass(PlanLogger)
    planner_logger = logging.getLogger("goalplan")
    assert isinstance(planner_logger, PlanLogger)
    return planner_logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Point the planner logger at a stream with the given verbosity.

    Safe to call repeatedly; earlier handlers are dropped.

    Args:
        verbosity: 0 (errors only) through 3 (debug); anything else is silent
        stream: Destination, sys.stderr when omitted (tests pass a StringIO)
    """
    planner_logger = get_logger()
    planner_logger.handlers.clear()
    planner_logger.setLevel(_LEVELS.get(verbosity, logging.ERROR))

    # Plain messages normally; at debug verbosity the interleaved levels need a tag
    fmt = "%(levelname)-7s %(message)s" if verbosity >= VERBOSITY_DEBUG else "%(message)s"
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    planner_logger.addHandler(handler)
    planner_logger.propagate = False


def reset_logger() -> None:
    """Drop handlers and go back to errors only."""
    planner_logger = get_logger()
    planner_logger.handlers.clear()
    planner_logger.setLevel(logging.ERROR)


def format_hours(hours: float) -> str:
    """Render an hour count compactly for log lines ("1.5h", "45m")."""
    if 0 < hours < 1:
        return f"{round(hours * 60)}m"
    return f"{hours:g}h"


def checks_enabled() -> bool:
    """True at -vv and above; guards candidate descriptions that are costly to build."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    return get_logger().isEnabledFor(logging.DEBUG)
