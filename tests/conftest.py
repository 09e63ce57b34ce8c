"""Shared builders for git-timesheet tests."""

import itertools

import pytest

from git_timesheet.config import TimesheetConfig
from git_timesheet.history.log_parser import RECORD_SENTINEL
from git_timesheet.history.models import Commit, FileStat


@pytest.fixture
def make_commit():
    """Factory for Commits with unique hashes."""
    counter = itertools.count(1)

    def _make(when, message="Update code", file_stats=(), branches=(), **kwargs):
        n = next(counter)
        stats = [s if isinstance(s, FileStat) else FileStat(*s) for s in file_stats]
        return Commit(
            hash=kwargs.pop("hash", f"{n:040x}"),
            timestamp=when,
            author_name=kwargs.pop("author_name", "Dev"),
            author_email=kwargs.pop("author_email", "dev@example.com"),
            message=message,
            branches=list(branches),
            file_stats=stats,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_record():
    """Factory for one sentinel-terminated raw log record."""

    def _make(
        commit_hash="a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0",
        author="Jane Doe",
        email="jane@example.com",
        date="2024-01-08 09:00:00 +0000",
        body="Add login form",
        refs=None,
    ):
        head = f"{commit_hash} ({refs})" if refs else commit_hash
        return "\n".join([head, author, email, date, body, RECORD_SENTINEL]) + "\n"

    return _make


@pytest.fixture
def weekday_config():
    """Defaults, but weekends kept so tests can use any day."""
    return TimesheetConfig(exclude_weekends=False)
