"""
git-timesheet - Timesheets from commit history

Parses git log output into commits, clusters them into work sessions and
estimates the time spent in each session with weighted heuristics.
"""

__version__ = "0.1.0"

from .config import TimesheetConfig, load_config
from .estimation import TimeEstimate, TimeEstimator
from .history import Commit, GitLogSource, LogParser, LogQuery
from .sessions import SessionGrouper, WorkPatternLearner
from .timesheet import MultiRepoTimesheetGenerator, Timesheet, TimesheetGenerator

__all__ = [
    "TimesheetGenerator",  # Main entry point
    "MultiRepoTimesheetGenerator",
    "Timesheet",
    "TimesheetConfig",
    "load_config",
    "Commit",
    "LogParser",
    "GitLogSource",
    "LogQuery",
    "SessionGrouper",
    "WorkPatternLearner",
    "TimeEstimate",
    "TimeEstimator",
]
