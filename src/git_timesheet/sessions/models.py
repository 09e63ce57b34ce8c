"""Data models for work sessions and learned work patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..config import WorkHours
from ..history.models import Commit


@dataclass
class Session:
    """Commits that form one inferred block of work.

    ``start``/``end`` are the earliest and latest commit timestamps.
    """

    commits: list[Commit]
    start: datetime
    end: datetime

    @classmethod
    def from_commits(cls, commits: list[Commit]) -> "Session":
        if not commits:
            raise ValueError("A session needs at least one commit")
        return cls(
            commits=list(commits),
            start=min(c.timestamp for c in commits),
            end=max(c.timestamp for c in commits),
        )

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def span_minutes(self) -> float:
        return abs((self.end - self.start).total_seconds()) / 60


@dataclass(frozen=True)
class LearnedPattern:
    """Work rhythm inferred from one run's commit history. Never persisted."""

    work_hours: WorkHours
    work_days: frozenset[int]  # Monday=0 ... Sunday=6
    typical_gap_minutes: int
    confidence: float
    sample_size: int = 0
    hour_histogram: tuple[int, ...] = field(default=(), repr=False)

    @property
    def tier(self) -> str:
        if self.confidence >= 0.8:
            return "high"
        if self.confidence >= 0.6:
            return "medium"
        return "low"

    @property
    def works_weekends(self) -> bool:
        return bool(self.work_days & {5, 6})
