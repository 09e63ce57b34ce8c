"""Infer work hours, work days and the typical commit gap from history."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional, Sequence

import numpy as np

from ..config import WorkHours
from ..history.models import Commit
from ..history.normalize import parse_instant
from .calendar import SATURDAY, SUNDAY
from .models import LearnedPattern

# Share of distinct observed hours that make up the core window
TOP_HOURS_SHARE = 0.3
MIN_WINDOW_HOURS = 8
DEFAULT_GAP_MINUTES = 30
WEEKDAYS = frozenset(range(5))  # Monday-Friday


def pattern_confidence(sample_size: int) -> float:
    """Three tiers by number of commits: low (<10), medium (<50), high."""
    if sample_size < 10:
        return 0.3
    if sample_size < 50:
        return 0.6
    return 0.8


class WorkPatternLearner:
    """Learn a LearnedPattern from commit timestamps.

    Hours are read in UTC, matching the work-hour check used when filtering
    sessions. Holds no state between calls.
    """

    def learn(self, commits: Sequence[Commit]) -> Optional[LearnedPattern]:
        if not commits:
            return None

        stamps = sorted(parse_instant(c.timestamp, field="timestamp") for c in commits)
        hours = np.array([s.hour for s in stamps], dtype=int)
        histogram = np.bincount(hours, minlength=24)

        return LearnedPattern(
            work_hours=self._work_window(histogram),
            work_days=self._work_days(stamps),
            typical_gap_minutes=self._typical_gap(stamps),
            confidence=pattern_confidence(len(stamps)),
            sample_size=len(stamps),
            hour_histogram=tuple(int(n) for n in histogram),
        )

    def _work_window(self, histogram: np.ndarray) -> WorkHours:
        observed = np.flatnonzero(histogram)
        # Most frequent first; ties go to the earlier hour
        ranked = sorted(observed, key=lambda h: (-histogram[h], h))
        top = ranked[: math.ceil(round(len(ranked) * TOP_HOURS_SHARE, 6))]

        start = int(min(top))
        end = min(max(int(max(top)) + 1, start + MIN_WINDOW_HOURS), 24)
        return WorkHours(start=f"{start:02d}:00", end=f"{end:02d}:00")

    def _work_days(self, stamps: list[datetime]) -> frozenset[int]:
        observed = frozenset(s.weekday() for s in stamps)
        if not observed & WEEKDAYS:
            return WEEKDAYS
        return observed

    def _typical_gap(self, stamps: list[datetime]) -> int:
        if len(stamps) < 2:
            return DEFAULT_GAP_MINUTES
        gaps = np.diff(np.array([s.timestamp() for s in stamps])) / 60
        return int(round(float(np.median(gaps))))

    def recommended_overrides(self, pattern: LearnedPattern) -> dict[str, Any]:
        """Grouper settings implied by a pattern.

        A zero typical gap (all commits at the same instant) keeps the
        configured gap threshold.
        """
        overrides: dict[str, Any] = {
            "work_hours": pattern.work_hours,
            "exclude_weekends": not pattern.works_weekends,
        }
        if pattern.typical_gap_minutes > 0:
            overrides["gap_threshold"] = pattern.typical_gap_minutes
        return overrides

    def matches_pattern(self, moment: datetime, pattern: Optional[LearnedPattern]) -> bool:
        """True when the instant falls inside the learned hours and days."""
        if pattern is None:
            return True

        utc = parse_instant(moment)
        minute_of_day = utc.hour * 60 + utc.minute
        if not pattern.work_hours.start_minutes <= minute_of_day < pattern.work_hours.end_minutes:
            return False
        if not pattern.works_weekends and utc.weekday() in (SATURDAY, SUNDAY):
            return False
        return True
