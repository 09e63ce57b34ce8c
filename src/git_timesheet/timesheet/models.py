"""Timesheet aggregate returned by TimesheetGenerator.

A Timesheet is built once per generate() call and is read-only afterwards:
sequences are tuples and rollups are read-only mappings. ``to_dict()``
produces plain dicts/lists for renderers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

from ..estimation.estimator import TimeEstimate

PeriodLike = Union["Period", Sequence[Any]]


def _freeze(mapping: Optional[Mapping[Any, Any]]) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Period:
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def coerce(cls, value: Optional[PeriodLike]) -> Optional["Period"]:
        """Accept a Period or a ``(start, end)`` pair of dates / ISO strings."""
        if value is None or isinstance(value, Period):
            return value
        start, end = value
        return cls(start=_as_date(start), end=_as_date(end))

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def _as_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class TimesheetEntry:
    """One estimated session as it appears on the timesheet."""

    id: int
    date: date
    estimate: TimeEstimate
    projects: tuple[str, ...] = ()
    tickets: tuple[str, ...] = ()
    summary: str = ""
    commit_hashes: tuple[str, ...] = ()
    repositories: tuple[str, ...] = ()

    @property
    def duration_minutes(self) -> float:
        return self.estimate.duration_minutes

    @property
    def duration_hours(self) -> float:
        return self.estimate.duration_hours

    @property
    def commit_count(self) -> int:
        return self.estimate.commit_count

    @property
    def confidence(self) -> float:
        return self.estimate.confidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "start_time": self.estimate.start_time.isoformat(),
            "end_time": self.estimate.end_time.isoformat(),
            "duration_hours": round(self.duration_hours, 2),
            "duration_minutes": self.duration_minutes,
            "commits": self.commit_count,
            "confidence": round(self.confidence, 2),
            "projects": list(self.projects),
            "tickets": list(self.tickets),
            "summary": self.summary,
            "commit_hashes": list(self.commit_hashes),
            "repositories": list(self.repositories),
        }


@dataclass(frozen=True)
class RepositoryStats:
    name: str
    repo_type: str = ""
    commits: int = 0
    hours: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.repo_type or None,
            "commits": self.commits,
            "hours": round(self.hours, 2),
        }


@dataclass(frozen=True)
class Timesheet:
    """Entries plus totals and rollups for one generation run.

    Attributes:
        period: First and last calendar day covered
        entries: One entry per estimated session, in time order
        total_commits: Valid, deduplicated commits that entered grouping
        skipped_commits: Records dropped during normalization
        malformed_records: Raw log records the parser could not read
        by_date: Entries per calendar day
        by_project: Commit count per project
        hours_by_project: Session hours split evenly across a session's commits
        by_ticket: Commit count per ticket reference
        by_repository: Commits and hours per repository
    """

    period: Period
    entries: tuple[TimesheetEntry, ...] = ()
    total_commits: int = 0
    skipped_commits: int = 0
    malformed_records: int = 0
    by_date: Mapping[date, tuple[TimesheetEntry, ...]] = field(default_factory=dict)
    by_project: Mapping[str, int] = field(default_factory=dict)
    hours_by_project: Mapping[str, float] = field(default_factory=dict)
    by_ticket: Mapping[str, int] = field(default_factory=dict)
    by_repository: Mapping[str, RepositoryStats] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        for name in ("by_date", "by_project", "hours_by_project", "by_ticket", "by_repository"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))

    @property
    def total_hours(self) -> float:
        return round(sum(entry.duration_hours for entry in self.entries), 2)

    @property
    def total_sessions(self) -> int:
        return len(self.entries)

    @property
    def repositories(self) -> list[str]:
        return list(self.by_repository)

    @property
    def repository(self) -> Optional[str]:
        """The repository name when exactly one contributed commits."""
        if len(self.by_repository) == 1:
            return next(iter(self.by_repository))
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "total_hours": self.total_hours,
            "total_sessions": self.total_sessions,
            "total_commits": self.total_commits,
            "skipped_commits": self.skipped_commits,
            "malformed_records": self.malformed_records,
            "repository": self.repository,
            "repositories": [stats.to_dict() for stats in self.by_repository.values()],
            "sessions": [entry.to_dict() for entry in self.entries],
            "by_date": {
                day.isoformat(): [entry.id for entry in entries]
                for day, entries in self.by_date.items()
            },
            "by_project": dict(self.by_project),
            "hours_by_project": {
                name: round(hours, 2) for name, hours in self.hours_by_project.items()
            },
            "by_ticket": dict(self.by_ticket),
        }
