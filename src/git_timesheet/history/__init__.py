"""Commit history: git log parsing, normalization, deduplication."""

from .git_extractor import GitLogSource, LogQuery, RepoInfo
from .log_parser import RECORD_SENTINEL, LogParser, parse_log
from .models import Commit, FileStat, FileTypeBuckets, ParseResult, RawCommit
from .normalize import deduplicate, normalize_commit, normalize_commits, parse_instant, sort_by_date

__all__ = [
    "Commit",
    "FileStat",
    "FileTypeBuckets",
    "GitLogSource",
    "LogParser",
    "LogQuery",
    "ParseResult",
    "RECORD_SENTINEL",
    "RawCommit",
    "RepoInfo",
    "deduplicate",
    "normalize_commit",
    "normalize_commits",
    "parse_instant",
    "parse_log",
    "sort_by_date",
]
