"""Per-commit metadata: ticket references, project, and file-type buckets."""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Iterable, Optional

from ..config import DEFAULT_CONFIG, TimesheetConfig
from ..history.models import Commit, FileStat, FileTypeBuckets
from .projects import (
    extract_project_from_branch,
    learn_from_branch,
    learn_from_file_path,
    matches_pattern,
    merge_mappings,
)

# Jira / Linear keys (PROJ-123) and GitHub references (#123, GH-123)
_TICKET_PATTERNS = (
    re.compile(r"\b([A-Z][A-Z0-9]*-[0-9]+)\b"),
    re.compile(r"(?:^|\s)(?:#|GH-)(\d+)", re.IGNORECASE),
)

TEST_MARKERS = (".test.", ".spec.", "_test.", "/tests/", "/test/", "__tests__/")
FRONTEND_EXTENSIONS = frozenset(
    {".tsx", ".jsx", ".ts", ".js", ".mjs", ".css", ".scss", ".less", ".html", ".vue", ".svelte"}
)
BACKEND_EXTENSIONS = frozenset(
    {".py", ".java", ".go", ".rs", ".rb", ".php", ".cpp", ".cc", ".c", ".h", ".cs", ".kt", ".scala"}
)
DOC_EXTENSIONS = frozenset({".md", ".rst", ".txt", ".adoc"})
CONFIG_EXTENSIONS = frozenset({".json", ".yaml", ".yml", ".toml", ".ini", ".conf", ".cfg"})


def classify_path(path: str) -> str:
    """Bucket name for a changed file; test markers win over extensions."""
    lowered = "/" + path.lower()
    name = PurePosixPath(lowered).name
    if any(marker in lowered for marker in TEST_MARKERS) or name.startswith("test_"):
        return "tests"

    suffix = PurePosixPath(name).suffix
    if suffix in FRONTEND_EXTENSIONS:
        return "frontend"
    if suffix in BACKEND_EXTENSIONS:
        return "backend"
    if suffix in DOC_EXTENSIONS:
        return "docs"
    if suffix in CONFIG_EXTENSIONS:
        return "config"
    return "other"


class CommitAnalyzer:
    """Enrich commits with tickets, project and file types."""

    def __init__(self, config: Optional[TimesheetConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.projects = merge_mappings(self.config.projects)

    def extract_tickets(self, message: str) -> list[str]:
        tickets: list[str] = []
        for pattern in _TICKET_PATTERNS:
            for match in pattern.finditer(message):
                ticket = match.group(1)
                if ticket not in tickets:
                    tickets.append(ticket)
        return tickets

    def categorize_project(self, commit: Commit) -> Optional[str]:
        """Branch rules, then file rules, then message keywords."""
        for branch in commit.branches:
            for name, mapping in self.projects.items():
                if any(matches_pattern(branch, p) for p in mapping.branches):
                    return name
            learned = learn_from_branch(branch) or extract_project_from_branch(branch)
            if learned:
                return learned

        if commit.file_stats:
            paths = [stat.path for stat in commit.file_stats]
            for name, mapping in self.projects.items():
                for pattern in mapping.files:
                    if any(matches_pattern(path, pattern) for path in paths):
                        return name
            for path in paths:
                learned = learn_from_file_path(path)
                if learned:
                    return learned

        if commit.message:
            message = commit.message.lower()
            for name, mapping in self.projects.items():
                if any(keyword.lower() in message for keyword in mapping.keywords):
                    return name

        return None

    def analyze_file_types(self, file_stats: Iterable[FileStat]) -> FileTypeBuckets:
        buckets = FileTypeBuckets()
        for stat in file_stats:
            getattr(buckets, classify_path(stat.path)).append(stat.path)
        return buckets

    def analyze(self, commit: Commit) -> Commit:
        """Return an enriched copy; the input commit is left untouched."""
        return replace(
            commit,
            tickets=self.extract_tickets(commit.message),
            project=self.categorize_project(commit),
            file_types=self.analyze_file_types(commit.file_stats) if commit.file_stats else None,
        )

    def analyze_batch(self, commits: Iterable[Commit]) -> list[Commit]:
        return [self.analyze(commit) for commit in commits]
