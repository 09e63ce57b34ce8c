"""Commit analysis: tickets, projects, file types."""

from .analyzer import CommitAnalyzer, classify_path
from .projects import DEFAULT_PROJECT_MAPPINGS

__all__ = ["CommitAnalyzer", "DEFAULT_PROJECT_MAPPINGS", "classify_path"]
