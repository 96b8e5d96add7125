"""Planner package - constraint scheduling of a goal's tasks.

This package provides:
- Graph building from draft tasks (normalization, actionability, cycle checks)
- Feasibility analysis (critical-path windows over an availability calendar)
- Ready-list scheduling with per-day capacity ceilings
- Incremental adaptation and overdue recovery with pinned assignments

Main entry points:
- PlanningService: High-level service for the boundary operations
- build_graph: Validate drafts into a TaskGraph
- FeasibilityAnalyzer / ListScheduler: Initial planning
- ScheduleAdapter / OverdueRecovery: Updating an existing schedule

Configuration:
- SchedulingConfig: Horizon, limits, tolerance, weights, actionability
- OptimalityWeights: Named weights of the optimality score
"""

# Adaptation
from .adapter import ScheduleAdapter, adapt

# Graph building
from .builder import DraftNormalizer, build_graph

# Changes
from .changes import (
    DeadlineChanged,
    DependenciesChanged,
    EffortReestimated,
    ScheduleChange,
    TaskAdded,
    TaskCompleted,
    TaskMarkedOverdue,
    TaskRemoved,
)

# Configuration
from .config import ActionabilityPolicy, OptimalityWeights, SchedulingConfig

# Core dataclasses
from .core import (
    AdaptationResult,
    ConflictKind,
    FeasibilityReport,
    FeasibilityWindow,
    InfeasibleTask,
    MustSlip,
    Plan,
    RecoveryResult,
    Schedule,
    ScheduledTask,
    ScoreBreakdown,
    UnschedulableTask,
)
from .decomposition import StaticDecomposer, decompose_goal

# Analysis
from .feasibility import FeasibilityAnalyzer, analyze
from .graph import TaskGraph, topological_sort
from .ledger import AvailabilityLedger

# Protocols
from .protocols import GoalDecomposer
from .recovery import OverdueRecovery, recover_overdue

# Scheduling
from .scheduler import ListScheduler, schedule
from .scoring import score_schedule

# High-level service
from .service import PlanningService

# Snapshots
from .snapshot import read_snapshot, write_snapshot

__all__ = [
    # Core dataclasses
    "AdaptationResult",
    "ConflictKind",
    "FeasibilityReport",
    "FeasibilityWindow",
    "InfeasibleTask",
    "MustSlip",
    "Plan",
    "RecoveryResult",
    "Schedule",
    "ScheduledTask",
    "ScoreBreakdown",
    "UnschedulableTask",
    # Configuration
    "ActionabilityPolicy",
    "OptimalityWeights",
    "SchedulingConfig",
    # Graph
    "TaskGraph",
    "topological_sort",
    "DraftNormalizer",
    "build_graph",
    # Protocols
    "GoalDecomposer",
    "StaticDecomposer",
    "decompose_goal",
    # Analysis and scheduling
    "AvailabilityLedger",
    "FeasibilityAnalyzer",
    "analyze",
    "ListScheduler",
    "schedule",
    "score_schedule",
    # Changes
    "ScheduleChange",
    "TaskAdded",
    "TaskRemoved",
    "DeadlineChanged",
    "EffortReestimated",
    "DependenciesChanged",
    "TaskMarkedOverdue",
    "TaskCompleted",
    # Adaptation
    "ScheduleAdapter",
    "adapt",
    "OverdueRecovery",
    "recover_overdue",
    # High-level service
    "PlanningService",
    # Snapshots
    "read_snapshot",
    "write_snapshot",
]
