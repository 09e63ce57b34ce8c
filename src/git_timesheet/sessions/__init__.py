"""Sessions: grouping commits into blocks of work, calendar rules, pattern learning."""

from .calendar import HolidayCalendar, is_weekend, is_work_hour
from .grouper import SessionGrouper
from .models import LearnedPattern, Session
from .patterns import WorkPatternLearner

__all__ = [
    "HolidayCalendar",
    "LearnedPattern",
    "Session",
    "SessionGrouper",
    "WorkPatternLearner",
    "is_weekend",
    "is_work_hour",
]
