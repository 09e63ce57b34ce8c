"""Timesheet assembly: single and multi-repository generators."""

from .generator import TimesheetGenerator, summarize, tag_records
from .models import Period, RepositoryStats, Timesheet, TimesheetEntry
from .multi_repo import MultiRepoTimesheetGenerator

__all__ = [
    "MultiRepoTimesheetGenerator",
    "Period",
    "RepositoryStats",
    "Timesheet",
    "TimesheetEntry",
    "TimesheetGenerator",
    "summarize",
    "tag_records",
]
