"""Project mappings: built-in defaults and name inference from branches/paths."""

from __future__ import annotations

import re
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Mapping, Optional

from ..config import ProjectMapping

DEFAULT_PROJECT_MAPPINGS: dict[str, ProjectMapping] = {
    "frontend": ProjectMapping(
        branches=("feature/frontend/*", "fix/frontend/*", "frontend/*"),
        files=("src/components/*", "src/pages/*", "src/styles/*", "*.tsx", "*.jsx"),
        keywords=("frontend", "ui", "component", "react", "vue", "angular"),
    ),
    "backend": ProjectMapping(
        branches=("feature/backend/*", "fix/backend/*", "api/*"),
        files=("src/api/*", "src/server/*", "src/controllers/*", "*.py", "*.java", "*.go"),
        keywords=("backend", "api", "server", "endpoint"),
    ),
    "mobile": ProjectMapping(
        branches=("feature/mobile/*", "fix/mobile/*", "ios/*", "android/*"),
        files=("ios/*", "android/*", "*.swift", "*.kt"),
        keywords=("mobile", "ios", "android", "react-native"),
    ),
    "infrastructure": ProjectMapping(
        branches=("feature/infra/*", "fix/infra/*"),
        files=("docker/*", "kubernetes/*", "terraform/*", "*.tf", "*.yml"),
        keywords=("infrastructure", "devops", "deployment", "ci/cd"),
    ),
}

# Ticket-style branch names: feature/PROJ-123, bugfix/PROJ-456, PROJ-789-x, team/...
_BRANCH_PROJECT_PATTERNS = (
    re.compile(r"^feature/([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"^bugfix/([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"^([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"^([a-z]+)/", re.IGNORECASE),
)

_PATH_PROJECT_ROOTS = frozenset({"src", "packages", "apps"})


def merge_mappings(user: Mapping[str, ProjectMapping]) -> dict[str, ProjectMapping]:
    """User mappings are checked first and replace defaults of the same name."""
    merged = dict(user)
    for name, mapping in DEFAULT_PROJECT_MAPPINGS.items():
        merged.setdefault(name, mapping)
    return merged


def matches_pattern(value: str, pattern: str) -> bool:
    """Glob match where ``*`` also crosses ``/`` boundaries."""
    if not pattern or pattern == "all":
        return True
    return fnmatchcase(value, pattern)


def learn_from_branch(branch: str) -> Optional[str]:
    """``feature/checkout`` -> ``checkout``."""
    parts = branch.split("/")
    if len(parts) >= 2 and parts[1]:
        return parts[1]
    return None


def extract_project_from_branch(branch: str) -> Optional[str]:
    for pattern in _BRANCH_PROJECT_PATTERNS:
        match = pattern.match(branch)
        if match:
            return match.group(1)
    return None


def learn_from_file_path(path: str) -> Optional[str]:
    """``src/billing/x.py`` / ``packages/api/x.js`` / ``apps/web/x`` -> second segment."""
    parts = PurePosixPath(path).parts
    if len(parts) >= 3 and parts[0] in _PATH_PROJECT_ROOTS:
        return parts[1]
    return None
