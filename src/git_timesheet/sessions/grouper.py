"""Group ordered commits into work sessions.

A new session starts whenever one of these holds between two consecutive
commits (ascending time):

- the gap exceeds ``gap_threshold`` minutes
- the commits fall on different calendar days
- the later commit is on an excluded weekend day
- the later commit is on an excluded holiday

Sessions starting on an excluded weekend/holiday are then dropped, and with
``exclude_non_work_hours`` a session must also start or end inside the work
window. merge_adjacent_sessions() is a separate greedy left-to-right fold.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..config import DEFAULT_CONFIG, TimesheetConfig
from ..history.models import Commit
from ..history.normalize import parse_instant
from ..logging_config import get_logger
from .calendar import HolidayCalendar, is_same_day, is_weekend, is_work_hour, local_date
from .models import Session
from .patterns import WorkPatternLearner

logger = get_logger(__name__)

# Learned patterns must be more confident than this to override settings
LEARNED_PATTERN_MIN_CONFIDENCE = 0.5


def commit_instant(commit: Commit) -> datetime:
    """UTC instant of a commit; a missing or invalid timestamp is fatal here.

    Raises:
        InvalidTimestampError: If the timestamp cannot be resolved
    """
    hash_prefix = str(getattr(commit, "hash", "") or "")[:7] or None
    return parse_instant(getattr(commit, "timestamp", None), field="timestamp", hash_prefix=hash_prefix)


def minutes_between(a: datetime, b: datetime) -> float:
    return abs((b - a).total_seconds()) / 60


def _is_holiday(calendar: HolidayCalendar, moment: datetime, config: TimesheetConfig) -> bool:
    return calendar.is_holiday(local_date(moment, config.tzinfo))


class SessionGrouper:
    """Cluster commits into Sessions using gap and calendar rules."""

    def __init__(
        self,
        config: Optional[TimesheetConfig] = None,
        holiday_calendar: Optional[HolidayCalendar] = None,
        pattern_learner: Optional[WorkPatternLearner] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self._holiday_calendar = holiday_calendar
        self.pattern_learner = pattern_learner
        if self.pattern_learner is None and self.config.learn_patterns:
            self.pattern_learner = WorkPatternLearner()

    def holiday_calendar(self, config: Optional[TimesheetConfig] = None) -> HolidayCalendar:
        """The injected calendar, or a new one built from ``config``.

        group_into_sessions() asks for a calendar once per run, so unless one
        was injected no calendar state outlives a run.

        Raises:
            InvalidConfigError: If the holiday country or region is unknown
        """
        if self._holiday_calendar is not None:
            return self._holiday_calendar
        config = config or self.config
        return HolidayCalendar(
            country=config.holiday_country,
            region=config.holiday_region,
            custom_holidays=config.custom_holidays,
        )

    def effective_config(self, commits: Sequence[Commit]) -> TimesheetConfig:
        """Settings for one grouping run, with learned overrides applied.

        The grouper's own configuration is never modified.
        """
        if self.pattern_learner is None or not commits:
            return self.config

        pattern = self.pattern_learner.learn(commits)
        if pattern is None or pattern.confidence <= LEARNED_PATTERN_MIN_CONFIDENCE:
            return self.config

        overrides = self.pattern_learner.recommended_overrides(pattern)
        logger.info(
            "Using learned work pattern (%s confidence, %d commits): %s",
            pattern.tier,
            pattern.sample_size,
            overrides,
        )
        return replace(self.config, **overrides)

    def group_into_sessions(
        self, commits: Sequence[Commit], gap_threshold: Optional[float] = None
    ) -> list[Session]:
        """Split commits into sessions, then apply the calendar filters.

        Raises:
            InvalidTimestampError: If a commit has no valid timestamp
        """
        if not commits:
            return []

        stamped = sorted(((commit_instant(c), c) for c in commits), key=lambda pair: pair[0])

        config = self.effective_config(commits)
        threshold = gap_threshold if gap_threshold is not None else config.gap_threshold
        calendar = self.holiday_calendar(config) if config.exclude_holidays else None

        first_at, first = stamped[0]
        sessions: list[Session] = []
        current = Session(commits=[first], start=first_at, end=first_at)

        for (prev_at, _), (commit_at, commit) in zip(stamped, stamped[1:]):
            if self._starts_new_session(prev_at, commit_at, threshold, config, calendar):
                sessions.append(current)
                current = Session(commits=[commit], start=commit_at, end=commit_at)
            else:
                current.commits.append(commit)
                current.end = commit_at
        sessions.append(current)

        kept = [s for s in sessions if self._keep_session(s, config, calendar)]
        if len(kept) != len(sessions):
            logger.debug("Filtered %d of %d sessions", len(sessions) - len(kept), len(sessions))
        return kept

    def merge_adjacent_sessions(
        self, sessions: Sequence[Session], max_gap: Optional[float] = None
    ) -> list[Session]:
        """Fold neighbouring same-day sessions whose gap is within ``max_gap``.

        Single left-to-right pass; input sessions are not modified.
        """
        if len(sessions) <= 1:
            return list(sessions)

        limit = max_gap if max_gap is not None else self.config.merge_gap
        tz = self.config.tzinfo

        merged: list[Session] = []
        current = sessions[0]
        for following in sessions[1:]:
            gap = minutes_between(current.end, following.start)
            if is_same_day(current.start, following.start, tz) and gap <= limit:
                current = Session(
                    commits=current.commits + following.commits,
                    start=min(current.start, following.start),
                    end=max(current.end, following.end),
                )
            else:
                merged.append(current)
                current = following
        merged.append(current)
        return merged

    def _starts_new_session(
        self,
        prev: datetime,
        current: datetime,
        threshold: float,
        config: TimesheetConfig,
        calendar: Optional[HolidayCalendar],
    ) -> bool:
        tz = config.tzinfo
        if minutes_between(prev, current) > threshold:
            return True
        if not is_same_day(prev, current, tz):
            return True
        if config.exclude_weekends and is_weekend(current, tz):
            return True
        return calendar is not None and _is_holiday(calendar, current, config)

    def _keep_session(
        self, session: Session, config: TimesheetConfig, calendar: Optional[HolidayCalendar]
    ) -> bool:
        if config.exclude_weekends and is_weekend(session.start, config.tzinfo):
            return False
        if calendar is not None and _is_holiday(calendar, session.start, config):
            return False
        if config.exclude_non_work_hours:
            return is_work_hour(session.start, config.work_hours) or is_work_hour(
                session.end, config.work_hours
            )
        return True
