"""Data models for commit history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class FileStat:
    path: str
    additions: int = 0
    deletions: int = 0

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


@dataclass
class FileTypeBuckets:
    """Changed paths of one commit, bucketed by file kind."""

    frontend: list[str] = field(default_factory=list)
    backend: list[str] = field(default_factory=list)
    tests: list[str] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)
    config: list[str] = field(default_factory=list)
    other: list[str] = field(default_factory=list)


@dataclass
class RawCommit:
    """A record decoded from git log text; the date is not yet validated."""

    hash: str
    author_name: str
    author_email: str
    date: str
    message: str = ""
    branches: list[str] = field(default_factory=list)
    file_stats: list[FileStat] = field(default_factory=list)
    diff: str = ""


@dataclass
class Commit:
    hash: str
    timestamp: datetime  # timezone-aware, UTC
    author_name: str = ""
    author_email: str = ""
    message: str = ""
    branches: list[str] = field(default_factory=list)
    file_stats: list[FileStat] = field(default_factory=list)
    diff: str = ""
    repo: str = ""
    repo_type: str = ""

    # Filled in by CommitAnalyzer
    tickets: list[str] = field(default_factory=list)
    project: Optional[str] = None
    file_types: Optional[FileTypeBuckets] = None

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def subject(self) -> str:
        """First line of the message."""
        return self.message.split("\n", 1)[0].strip()


@dataclass
class ParseResult:
    commits: list[RawCommit]
    dropped: int = 0  # malformed records skipped by the parser

    @property
    def total_records(self) -> int:
        return len(self.commits) + self.dropped
