"""Exception hierarchy for git-timesheet."""

from .base import TimesheetError
from .config import ConfigurationError, InvalidConfigError
from .records import (
    EmptyInputError,
    InvalidTimestampError,
    MalformedRecordError,
    RecordError,
)
from .source import GitCommandError, SourceAccessError

__all__ = [
    "TimesheetError",
    "SourceAccessError",
    "GitCommandError",
    "RecordError",
    "MalformedRecordError",
    "InvalidTimestampError",
    "EmptyInputError",
    "ConfigurationError",
    "InvalidConfigError",
]
