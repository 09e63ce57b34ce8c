"""Configuration loading and management for git-timesheet.

Configuration sources are merged in priority order:
    1. Defaults (defined in TimesheetConfig)
    2. Global config (~/.git-timesheet.toml)
    3. Project config (./git-timesheet.toml)
    4. Explicit config file
    5. Environment variables (GIT_TIMESHEET_* prefix)
    6. Keyword overrides

Example:
    >>> config = load_config(gap_threshold=45)
    >>> config.gap_threshold
    45
    >>> config.work_hours.start
    '09:00'
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field, fields
from datetime import date
from pathlib import Path
from typing import Any, Optional, get_type_hints
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigurationError, InvalidConfigError

ENV_PREFIX = "GIT_TIMESHEET_"
CONFIG_FILENAME = "git-timesheet.toml"

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes after midnight (24:00 allowed)."""
    match = _HHMM_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidConfigError("work_hours", value, "expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise InvalidConfigError("work_hours", value, "time of day out of range")
    return hours * 60 + minutes


@dataclass(frozen=True)
class WorkHours:
    """Daily work window as ``HH:MM`` strings, both ends inclusive."""

    start: str = "09:00"
    end: str = "17:00"

    def __post_init__(self) -> None:
        if self.start_minutes > self.end_minutes:
            raise InvalidConfigError(
                "work_hours", f"{self.start}-{self.end}", "start must not be after end"
            )

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_hhmm(self.end)


@dataclass(frozen=True)
class ComplexityMultipliers:
    """Multipliers used by the time estimator.

    test/doc/config replace the size-based complexity for single-file
    sessions; feature/refactor/bugfix are commit message hints.
    """

    test: float = 0.5
    doc: float = 0.3
    config: float = 0.2
    feature: float = 1.5
    refactor: float = 2.0
    bugfix: float = 1.0

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise InvalidConfigError(
                    f"complexity_multipliers.{f.name}", getattr(self, f.name), "must be positive"
                )

    def get(self, name: str) -> float:
        return getattr(self, name)


@dataclass(frozen=True)
class ProjectMapping:
    """User-defined rules that map commits to a project name.

    Attributes:
        branches: Glob patterns matched against branch names
        files: Glob patterns matched against changed file paths
        keywords: Case-insensitive substrings of the commit message
    """

    branches: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectMapping":
        unknown = set(data) - {"branches", "files", "keywords"}
        if unknown:
            raise ConfigurationError(f"Unknown project mapping keys: {', '.join(sorted(unknown))}")
        return cls(
            branches=tuple(data.get("branches", ())),
            files=tuple(data.get("files", ())),
            keywords=tuple(data.get("keywords", ())),
        )


@dataclass(frozen=True)
class TimesheetConfig:
    """Configuration for timesheet generation.

    All fields have defaults; callers usually override a handful.

    Attributes:
        Session grouping:
            gap_threshold: Minutes between commits that start a new session
            merge_gap: Minutes between same-day sessions that still merge
            learn_patterns: Learn work hours/gap from history for each run

        Time estimation:
            min_session_duration: Lower bound for a session estimate (minutes)
            max_session_duration: Upper bound for a session estimate (minutes)
            base_time_per_commit: Minutes credited per commit
            complexity_multipliers: Size and message multipliers

        Calendar filters:
            exclude_weekends: Drop sessions that start on Saturday/Sunday
            exclude_holidays: Drop sessions that start on a holiday
            holiday_country: ISO country code for the holiday calendar
            holiday_region: Optional subdivision (state/province) code
            custom_holidays: Extra holiday dates
            work_hours: Daily work window (compared in UTC)
            exclude_non_work_hours: Require sessions to touch the work window
            timezone: IANA zone used for calendar days, weekends, holidays

        Projects:
            projects: Named ProjectMapping rules, checked before built-ins
    """

    # Session grouping
    gap_threshold: int = 30
    merge_gap: int = 60
    learn_patterns: bool = False

    # Time estimation
    min_session_duration: int = 15
    max_session_duration: int = 480
    base_time_per_commit: int = 10
    complexity_multipliers: ComplexityMultipliers = field(default_factory=ComplexityMultipliers)

    # Calendar filters
    exclude_weekends: bool = True
    exclude_holidays: bool = False
    holiday_country: str = "US"
    holiday_region: Optional[str] = None
    custom_holidays: tuple[date, ...] = ()
    work_hours: WorkHours = field(default_factory=WorkHours)
    exclude_non_work_hours: bool = False
    timezone: str = "UTC"

    # Projects
    projects: dict[str, ProjectMapping] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.gap_threshold < 0:
            raise InvalidConfigError("gap_threshold", self.gap_threshold, "must be non-negative")
        if self.merge_gap < 0:
            raise InvalidConfigError("merge_gap", self.merge_gap, "must be non-negative")
        if self.min_session_duration < 0:
            raise InvalidConfigError(
                "min_session_duration", self.min_session_duration, "must be non-negative"
            )
        if self.max_session_duration < self.min_session_duration:
            raise InvalidConfigError(
                "max_session_duration",
                self.max_session_duration,
                "must be at least min_session_duration",
            )
        if self.base_time_per_commit < 0:
            raise InvalidConfigError(
                "base_time_per_commit", self.base_time_per_commit, "must be non-negative"
            )

        # Normalize custom holidays given as ISO strings
        holidays = tuple(_coerce_date(d) for d in self.custom_holidays)
        object.__setattr__(self, "custom_holidays", holidays)

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidConfigError("timezone", self.timezone, str(e)) from e

    @property
    def tzinfo(self) -> ZoneInfo:
        """Reference zone for calendar-day decisions."""
        return ZoneInfo(self.timezone)


# Default configuration (shared, immutable)
DEFAULT_CONFIG = TimesheetConfig()


def _coerce_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise InvalidConfigError("custom_holidays", value, "expected YYYY-MM-DD") from e


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> TimesheetConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (highest priority)

    Returns:
        Validated TimesheetConfig instance

    Raises:
        ConfigurationError: If a config file is missing or invalid
        InvalidConfigError: If a value fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / f".{CONFIG_FILENAME}"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / CONFIG_FILENAME
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())
    merged.update(overrides)

    return _build_config(merged)


def _build_config(merged: dict[str, Any]) -> TimesheetConfig:
    """Turn a merged dict (TOML tables included) into a TimesheetConfig."""
    work_hours = merged.pop("work_hours", None)
    if isinstance(work_hours, dict):
        merged["work_hours"] = WorkHours(**work_hours)
    elif work_hours is not None:
        merged["work_hours"] = work_hours

    multipliers = merged.pop("complexity_multipliers", None)
    if isinstance(multipliers, dict):
        try:
            merged["complexity_multipliers"] = ComplexityMultipliers(**multipliers)
        except TypeError as e:
            raise ConfigurationError(f"Invalid [complexity_multipliers] config: {e}") from e
    elif multipliers is not None:
        merged["complexity_multipliers"] = multipliers

    projects = merged.pop("projects", None)
    if projects is not None:
        merged["projects"] = {
            name: spec if isinstance(spec, ProjectMapping) else ProjectMapping.from_dict(spec)
            for name, spec in projects.items()
        }

    if "custom_holidays" in merged:
        merged["custom_holidays"] = tuple(merged["custom_holidays"])

    try:
        return TimesheetConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _load_env_vars() -> dict[str, Any]:
    """Load scalar settings from GIT_TIMESHEET_* environment variables.

    Example: GIT_TIMESHEET_GAP_THRESHOLD=45, GIT_TIMESHEET_EXCLUDE_WEEKENDS=false
    """
    type_hints = get_type_hints(TimesheetConfig)
    result: dict[str, Any] = {}

    for f in fields(TimesheetConfig):
        env_key = f"{ENV_PREFIX}{f.name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        parsed = _parse_env_value(env_value, type_hints[f.name], env_key)
        if parsed is not None:
            result[f.name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any, env_key: str) -> Any:
    """Parse an environment string to a scalar field type; None if unsupported."""
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none = [t for t in args if t is not type(None)]
        type_hint = non_none[0] if non_none else type_hint

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise InvalidConfigError(env_key, value, "expected true/false")

    if type_hint is int:
        try:
            return int(value)
        except ValueError as e:
            raise InvalidConfigError(env_key, value, "expected an integer") from e

    if type_hint is str:
        return value

    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}") from e
