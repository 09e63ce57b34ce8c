"""Coerce commit records into canonical Commit objects.

Every date that enters the pipeline goes through parse_instant(), which
either returns a timezone-aware UTC datetime or raises InvalidTimestampError.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from ..exceptions import InvalidTimestampError
from ..logging_config import get_logger
from .models import Commit, FileStat, FileTypeBuckets, RawCommit

logger = get_logger(__name__)

# Epoch values above this are taken as milliseconds (year ~5138 in seconds)
_EPOCH_MS_THRESHOLD = 1e11

# git's %ai format: "2024-01-01 09:00:00 +0100"
_GIT_OFFSET_RE = re.compile(r"^(?P<stamp>.*\d)\s*(?P<sign>[+-])(?P<hh>\d{2}):?(?P<mm>\d{2})$")


def parse_instant(value: Any, field: str = "date", hash_prefix: Optional[str] = None) -> datetime:
    """Resolve a date-like value to a timezone-aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), dates, epoch numbers,
    ISO-8601 / git / RFC 2822 strings, and other objects via ``str()``.

    Raises:
        InvalidTimestampError: If the value does not denote a valid instant
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, bool) or value is None:
        raise InvalidTimestampError(value, field=field, hash_prefix=hash_prefix)
    elif isinstance(value, (int, float)):
        moment = _from_epoch(value, field, hash_prefix)
    else:
        moment = _from_string(str(value), field, hash_prefix)

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _from_epoch(value: float, field: str, hash_prefix: Optional[str]) -> datetime:
    if not math.isfinite(value):
        raise InvalidTimestampError(value, field=field, hash_prefix=hash_prefix)
    seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimestampError(value, field=field, hash_prefix=hash_prefix) from e


def _from_string(text: str, field: str, hash_prefix: Optional[str]) -> datetime:
    text = text.strip()
    if not text:
        raise InvalidTimestampError(text, field=field, hash_prefix=hash_prefix)

    candidate = text
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    match = _GIT_OFFSET_RE.match(candidate)
    if match and ("T" in candidate or " " in match.group("stamp")):
        candidate = (
            f"{match.group('stamp')}{match.group('sign')}"
            f"{match.group('hh')}:{match.group('mm')}"
        )

    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError) as e:
        raise InvalidTimestampError(text, field=field, hash_prefix=hash_prefix) from e


def _get(raw: Any, *names: str, default: Any = None) -> Any:
    """Read the first present field from a mapping or an object."""
    for name in names:
        if isinstance(raw, Mapping):
            if name in raw and raw[name] is not None:
                return raw[name]
        else:
            value = getattr(raw, name, None)
            if value is not None:
                return value
    return default


def _count(value: Any) -> Optional[int]:
    """Line count from a stat entry; git's binary marker "-" counts as 0."""
    if value is None or value == "" or value == "-":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_file_stat(entry: Any) -> Optional[FileStat]:
    if isinstance(entry, FileStat):
        return entry
    path = _get(entry, "path", "file_path", "filePath")
    if not path:
        return None
    additions = _count(_get(entry, "additions"))
    deletions = _count(_get(entry, "deletions"))
    if additions is None or deletions is None:
        logger.debug("Ignoring file stat with non-numeric counts for %s", path)
        return None
    return FileStat(path=str(path), additions=additions, deletions=deletions)


def _unique(values: Any) -> list[str]:
    if isinstance(values, str):
        values = [values]
    return list(dict.fromkeys(str(v) for v in values if v))


def normalize_commit(raw: Any) -> Optional[Commit]:
    """Coerce a Commit, RawCommit, or mapping into a canonical Commit.

    Returns None when the record has no hash or its date is not a valid
    instant. Optional fields default to empty strings/containers.
    """
    if raw is None:
        return None

    commit_hash = _get(raw, "hash")
    if not commit_hash:
        logger.debug("Skipping commit record without hash")
        return None
    commit_hash = str(commit_hash)

    date_value = raw.timestamp if isinstance(raw, Commit) else _get(raw, "date", "timestamp")
    try:
        timestamp = parse_instant(date_value, hash_prefix=commit_hash[:7])
    except InvalidTimestampError as e:
        logger.debug("Skipping commit: %s", e)
        return None

    file_stats = [
        stat for stat in (_coerce_file_stat(s) for s in _get(raw, "file_stats", "fileStats", default=()))
        if stat is not None
    ]

    file_types = _get(raw, "file_types", "fileTypes")
    if isinstance(file_types, Mapping):
        file_types = FileTypeBuckets(**{k: list(v) for k, v in file_types.items()})

    project = _get(raw, "project")

    return Commit(
        hash=commit_hash,
        timestamp=timestamp,
        author_name=str(_get(raw, "author_name", "authorName", default="")),
        author_email=str(_get(raw, "author_email", "authorEmail", default="")),
        message=str(_get(raw, "message", default="")),
        branches=_unique(_get(raw, "branches", default=())),
        file_stats=file_stats,
        diff=str(_get(raw, "diff", default="")),
        repo=str(_get(raw, "repo", default="")),
        repo_type=str(_get(raw, "repo_type", "repoType", default="")),
        tickets=_unique(_get(raw, "tickets", default=())),
        project=str(project) if project else None,
        file_types=file_types,
    )


def normalize_commits(records: Iterable[Any]) -> tuple[list[Commit], int]:
    """Normalize a batch; returns (valid commits, number skipped)."""
    commits: list[Commit] = []
    skipped = 0
    for record in records:
        commit = normalize_commit(record)
        if commit is None:
            skipped += 1
        else:
            commits.append(commit)
    if skipped:
        logger.debug("Normalization: %d valid, %d filtered out", len(commits), skipped)
    return commits, skipped


def deduplicate(commits: Iterable[Commit]) -> list[Commit]:
    """Keep the first commit per hash, preserving order."""
    seen: set[str] = set()
    unique: list[Commit] = []
    for commit in commits:
        if commit.hash in seen:
            continue
        seen.add(commit.hash)
        unique.append(commit)
    return unique


def sort_by_date(commits: Iterable[Commit]) -> list[Commit]:
    """Return a new list ordered newest first."""
    return sorted(commits, key=lambda c: c.timestamp, reverse=True)
