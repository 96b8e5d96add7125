"""Unified configuration loader for the calendar and scheduler settings.

This module provides a single configuration file format (goalplan_config.yaml)
that combines the availability calendar with scheduling settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .calendar import AvailabilityCalendar
from .exceptions import ConfigError
from .planner import SchedulingConfig

DEFAULT_CONFIG_NAME = "goalplan_config.yaml"


class UnifiedConfig(BaseModel):
    """Unified configuration: availability calendar plus scheduler settings."""

    calendar: AvailabilityCalendar = Field(default_factory=AvailabilityCalendar)
    scheduler: SchedulingConfig = Field(default_factory=SchedulingConfig)


def load_unified_config(config_path: Path | str) -> UnifiedConfig:
    """Load unified configuration from YAML file.

    Args:
        config_path: Path to goalplan_config.yaml file

    Returns:
        UnifiedConfig with defaults for any omitted section

    Raises:
        ConfigError: If the file is missing, not YAML, or fails validation
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open() as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from e

    if not data:
        raise ConfigError("Empty configuration file")
    if not isinstance(data, dict):
        raise ConfigError("Config must contain a dictionary at the root level")

    unknown = set(data) - {"calendar", "scheduler"}
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

    try:
        calendar = AvailabilityCalendar.model_validate(data.get("calendar") or {})
        scheduler = SchedulingConfig.model_validate(data.get("scheduler") or {})
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    return UnifiedConfig(calendar=calendar, scheduler=scheduler)


def find_config(
    explicit: Path | None = None,
    global_path: Path | None = None,
    goal_file: Path | None = None,
) -> Path | None:
    """Resolve the config path.

    Priority: explicit path > global --config > goal file directory > current directory.
    """
    if explicit:
        return explicit
    if global_path:
        return global_path
    if goal_file is not None:
        candidate = goal_file.parent / DEFAULT_CONFIG_NAME
        if candidate.exists():
            return candidate
    default_path = Path(DEFAULT_CONFIG_NAME)
    if default_path.exists():
        return default_path
    return None


def resolve_config(
    explicit: Path | None = None,
    global_path: Path | None = None,
    goal_file: Path | None = None,
) -> UnifiedConfig:
    """Load the discovered config, or defaults when none exists."""
    path = find_config(explicit, global_path, goal_file)
    if path is None:
        return UnifiedConfig()
    return load_unified_config(path)
