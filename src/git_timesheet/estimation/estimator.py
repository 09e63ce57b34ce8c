"""Estimate time spent per session from commit cadence, size and messages.

    estimated = clamp(base * complexity * message_hint + gap_time, min, max)

base
    max(commits * base_time_per_commit, session span in minutes)
complexity
    from total changed lines; replaced by the test/doc/config multiplier when
    the session touches exactly one file of that kind
message_hint
    first matching rule of rules.MESSAGE_RULES, else 1.0
gap_time
    30% of every gap of at most 120 minutes between consecutive commits
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from ..analysis.analyzer import classify_path
from ..config import DEFAULT_CONFIG, TimesheetConfig
from ..history.models import Commit
from ..history.normalize import parse_instant
from ..sessions.grouper import commit_instant, minutes_between
from ..sessions.models import Session
from .rules import MESSAGE_RULES, NEUTRAL_MULTIPLIER, MessageRule, match_rule

# (exclusive lower bound on changed lines, multiplier), largest first
SIZE_COMPLEXITY: tuple[tuple[int, float], ...] = ((1000, 2.0), (500, 1.5), (100, 1.2))
TINY_CHANGE_LINES = 10
TINY_CHANGE_MULTIPLIER = 0.5

# Bucket from classify_path() -> ComplexityMultipliers field
SINGLE_FILE_MULTIPLIER_KEYS = {"tests": "test", "docs": "doc", "config": "config"}

GAP_CREDIT_MAX_MINUTES = 120
GAP_CREDIT_SHARE = 0.3

CONFIDENCE_BASE = 0.5
CONFIDENCE_SPAN_RANGE = (30, 480)


@dataclass(frozen=True)
class TimeEstimate:
    start_time: datetime
    end_time: datetime
    duration_minutes: float
    commit_count: int
    confidence: float

    @property
    def duration_hours(self) -> float:
        return self.duration_minutes / 60


class TimeEstimator:
    """Bounded duration and confidence for each session."""

    def __init__(
        self,
        config: Optional[TimesheetConfig] = None,
        rules: Sequence[MessageRule] = MESSAGE_RULES,
    ):
        self.config = config or DEFAULT_CONFIG
        self.rules = tuple(rules)

    def estimate_session(self, session: Session) -> TimeEstimate:
        """Estimate one session.

        Raises:
            InvalidTimestampError: If the session start/end is not a valid instant
        """
        start = self._resolve(session, "start")
        end = self._resolve(session, "end")
        commits = session.commits
        span = minutes_between(start, end)

        base = self.base_time(len(commits), span)
        complexity = self.assess_complexity(commits)
        hint = self.message_hint(commits)
        gap_time = self.gap_time(commits)

        estimated = base * complexity * hint + gap_time
        estimated = max(
            self.config.min_session_duration,
            min(self.config.max_session_duration, estimated),
        )

        return TimeEstimate(
            start_time=start,
            end_time=end,
            duration_minutes=float(estimated),
            commit_count=len(commits),
            confidence=self.confidence(commits, span),
        )

    def estimate_sessions(self, sessions: Sequence[Session]) -> list[TimeEstimate]:
        return [self.estimate_session(session) for session in sessions]

    def base_time(self, commit_count: int, span_minutes: float) -> float:
        return max(commit_count * self.config.base_time_per_commit, span_minutes)

    def assess_complexity(self, commits: Sequence[Commit]) -> float:
        stats = [stat for commit in commits for stat in commit.file_stats]
        total_lines = sum(stat.changed_lines for stat in stats)

        complexity = 1.0
        for lower_bound, multiplier in SIZE_COMPLEXITY:
            if total_lines > lower_bound:
                complexity = multiplier
                break
        else:
            if total_lines < TINY_CHANGE_LINES:
                complexity = TINY_CHANGE_MULTIPLIER

        paths = {stat.path for stat in stats}
        if len(paths) == 1:
            key = SINGLE_FILE_MULTIPLIER_KEYS.get(classify_path(next(iter(paths))))
            if key is not None:
                complexity = self.config.complexity_multipliers.get(key)

        return complexity

    def message_hint(self, commits: Sequence[Commit]) -> float:
        text = " ".join(commit.message.lower() for commit in commits)
        rule = match_rule(text, self.rules)
        if rule is None:
            return NEUTRAL_MULTIPLIER
        return rule.multiplier(self.config.complexity_multipliers)

    def gap_time(self, commits: Sequence[Commit]) -> float:
        total = 0.0
        for prev, commit in zip(commits, commits[1:]):
            gap = minutes_between(commit_instant(prev), commit_instant(commit))
            if gap <= GAP_CREDIT_MAX_MINUTES:
                total += gap * GAP_CREDIT_SHARE
        return total

    def confidence(self, commits: Sequence[Commit], span_minutes: float) -> float:
        score = CONFIDENCE_BASE
        if len(commits) > 5:
            score += 0.2
        elif len(commits) > 2:
            score += 0.1

        if any(commit.file_stats for commit in commits):
            score += 0.2

        low, high = CONFIDENCE_SPAN_RANGE
        if low < span_minutes < high:
            score += 0.1

        return min(1.0, score)

    @staticmethod
    def _resolve(session: Any, name: str) -> datetime:
        # Naive datetimes are read as UTC; None is rejected
        return parse_instant(getattr(session, name, None), field=f"session.{name}")
