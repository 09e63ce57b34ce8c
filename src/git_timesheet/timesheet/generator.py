"""Orchestrate commits -> sessions -> estimates -> Timesheet."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..analysis.analyzer import CommitAnalyzer
from ..config import DEFAULT_CONFIG, TimesheetConfig
from ..estimation.estimator import TimeEstimate, TimeEstimator
from ..exceptions import EmptyInputError
from ..history.git_extractor import GitLogSource, LogQuery
from ..history.log_parser import LogParser
from ..history.models import Commit
from ..history.normalize import deduplicate, normalize_commits
from ..logging_config import get_logger
from ..sessions.calendar import local_date
from ..sessions.grouper import SessionGrouper, commit_instant
from ..sessions.models import Session
from .models import Period, PeriodLike, RepositoryStats, Timesheet, TimesheetEntry

logger = get_logger(__name__)

SUMMARY_MAX_SUBJECTS = 5


def summarize(commits: Sequence[Commit]) -> str:
    """Join the first few commit subjects, noting how many were left out."""
    subjects = [commit.subject for commit in commits]
    if not subjects:
        return "No commits"
    if len(subjects) == 1:
        return subjects[0]

    summary = "; ".join(subjects[:SUMMARY_MAX_SUBJECTS])
    remaining = len(subjects) - SUMMARY_MAX_SUBJECTS
    if remaining > 0:
        summary += f" (+{remaining} more)"
    return summary


class TimesheetGenerator:
    """Run the full pipeline for one batch of commit records.

    Each generate() call works on its own Commit, Session and TimeEstimate
    objects; the generator keeps no state between calls.

    Example:
        >>> generator = TimesheetGenerator(load_config(gap_threshold=45))
        >>> timesheet = generator.generate(records)
        >>> timesheet.total_hours
        6.5
    """

    def __init__(
        self,
        config: Optional[TimesheetConfig] = None,
        analyzer: Optional[CommitAnalyzer] = None,
        grouper: Optional[SessionGrouper] = None,
        estimator: Optional[TimeEstimator] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.analyzer = analyzer or CommitAnalyzer(self.config)
        self.grouper = grouper or SessionGrouper(self.config)
        self.estimator = estimator or TimeEstimator(self.config)

    def generate(self, commits: Iterable[Any], period: Optional[PeriodLike] = None) -> Timesheet:
        """Build a Timesheet from commit records.

        Args:
            commits: Commits, RawCommits or mappings with hash/date fields
            period: Optional reporting period; derived from commits if omitted

        Raises:
            EmptyInputError: If no record has a valid hash and date
            InvalidTimestampError: If grouping or estimation meets a bad instant
        """
        records = list(commits)
        normalized, skipped = normalize_commits(records)
        if not normalized:
            raise EmptyInputError(total=len(records), skipped=skipped)

        ordered = sorted(deduplicate(normalized), key=lambda c: c.timestamp)
        analyzed = self.analyzer.analyze_batch(ordered)

        sessions = self.grouper.group_into_sessions(analyzed)
        merged = self.grouper.merge_adjacent_sessions(sessions, self.config.merge_gap)
        estimates = self.estimator.estimate_sessions(merged)

        logger.info(
            "Generated %d sessions from %d commits (%d skipped)",
            len(estimates),
            len(analyzed),
            skipped,
        )
        return self._build_timesheet(analyzed, merged, estimates, skipped, period)

    def generate_from_log(
        self,
        text: str,
        include_file_stats: bool = False,
        include_diff: bool = False,
        period: Optional[PeriodLike] = None,
    ) -> Timesheet:
        """Parse raw sentinel-delimited log text, then generate."""
        parser = LogParser(include_file_stats=include_file_stats, include_diff=include_diff)
        result = parser.parse(text)
        if result.dropped:
            logger.debug("Dropped %d malformed records", result.dropped)
        timesheet = self.generate(result.commits, period=period)
        return replace(timesheet, malformed_records=result.dropped)

    def generate_from_repository(
        self,
        repo_path: Union[str, Path] = ".",
        query: Optional[LogQuery] = None,
        period: Optional[PeriodLike] = None,
    ) -> Timesheet:
        """Read history from a local git repository, then generate.

        Raises:
            SourceAccessError: If the path is not a git repository
            GitCommandError: If git log fails
        """
        source = GitLogSource(repo_path)
        result = source.fetch(query)
        info = source.repo_info()
        timesheet = self.generate(tag_records(result.commits, info.name, info.type), period=period)
        return replace(timesheet, malformed_records=result.dropped)

    def _build_timesheet(
        self,
        commits: list[Commit],
        sessions: list[Session],
        estimates: list[TimeEstimate],
        skipped: int,
        period: Optional[PeriodLike],
    ) -> Timesheet:
        tz = self.config.tzinfo

        entries: list[TimesheetEntry] = []
        by_date: dict = defaultdict(list)
        hours_by_project: dict[str, float] = defaultdict(float)
        repo_hours: dict[str, float] = defaultdict(float)

        for index, (session, estimate) in enumerate(zip(sessions, estimates), start=1):
            session_commits = sorted(session.commits, key=commit_instant)
            entry = TimesheetEntry(
                id=index,
                date=local_date(estimate.start_time, tz),
                estimate=estimate,
                projects=_unique(c.project for c in session_commits),
                tickets=_unique(t for c in session_commits for t in c.tickets),
                summary=summarize(session_commits),
                commit_hashes=tuple(c.hash for c in session_commits),
                repositories=_unique(c.repo for c in session_commits),
            )
            entries.append(entry)
            by_date[entry.date].append(entry)

            # Session hours are split evenly across its commits
            hours_per_commit = estimate.duration_hours / len(session_commits)
            for commit in session_commits:
                if commit.project:
                    hours_by_project[commit.project] += hours_per_commit
                if commit.repo:
                    repo_hours[commit.repo] += hours_per_commit

        by_project = Counter(c.project for c in commits if c.project)
        by_ticket = Counter(t for c in commits for t in c.tickets)

        repo_commits = Counter(c.repo for c in commits if c.repo)
        repo_types = {c.repo: c.repo_type for c in commits if c.repo and c.repo_type}
        by_repository = {
            name: RepositoryStats(
                name=name,
                repo_type=repo_types.get(name, ""),
                commits=count,
                hours=repo_hours.get(name, 0.0),
            )
            for name, count in repo_commits.items()
        }

        return Timesheet(
            period=Period.coerce(period) or self._derive_period(commits),
            entries=tuple(entries),
            total_commits=len(commits),
            skipped_commits=skipped,
            by_date={day: tuple(items) for day, items in by_date.items()},
            by_project=dict(by_project),
            hours_by_project=dict(hours_by_project),
            by_ticket=dict(by_ticket),
            by_repository=by_repository,
        )

    def _derive_period(self, commits: list[Commit]) -> Period:
        if not commits:
            return Period()
        instants = [commit_instant(c) for c in commits]
        tz = self.config.tzinfo
        return Period(start=local_date(min(instants), tz), end=local_date(max(instants), tz))


def _unique(values: Iterable[Optional[str]]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def tag_records(records: Iterable[Any], repo: str, repo_type: str) -> list[dict[str, Any]]:
    """Copy records into mappings carrying repository name and type.

    Existing non-empty repo fields are kept.
    """
    tagged = []
    for record in records:
        data = dict(record) if isinstance(record, Mapping) else dict(vars(record))
        data["repo"] = data.get("repo") or repo
        data["repo_type"] = data.get("repo_type") or repo_type
        tagged.append(data)
    return tagged
