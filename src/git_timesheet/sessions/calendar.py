"""Calendar rules: calendar days, weekends, holidays, work hours."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

import holidays

from ..config import WorkHours
from ..exceptions import InvalidConfigError

SATURDAY = 5
SUNDAY = 6


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of an instant in the reference zone."""
    return moment.astimezone(tz).date()


def is_same_day(a: datetime, b: datetime, tz: tzinfo) -> bool:
    return local_date(a, tz) == local_date(b, tz)


def is_weekend(moment: datetime, tz: tzinfo) -> bool:
    return moment.astimezone(tz).weekday() in (SATURDAY, SUNDAY)


def is_work_hour(moment: datetime, work_hours: WorkHours) -> bool:
    """Time-of-day check in UTC; both window ends are inclusive."""
    utc = moment.astimezone(timezone.utc)
    minute_of_day = utc.hour * 60 + utc.minute
    return work_hours.start_minutes <= minute_of_day <= work_hours.end_minutes


class HolidayCalendar:
    """Public holidays of a country/region plus custom dates.

    Each instance builds its own ``holidays`` calendar; nothing is shared
    between instances.
    """

    def __init__(
        self,
        country: Optional[str] = "US",
        region: Optional[str] = None,
        custom_holidays: Iterable[date] = (),
    ):
        self.country = country
        self.region = region
        self.custom_holidays = frozenset(custom_holidays)
        self._calendar: Optional[holidays.HolidayBase] = None
        if country:
            try:
                self._calendar = holidays.country_holidays(country, subdiv=region)
            except NotImplementedError as e:
                key = "holiday_region" if region else "holiday_country"
                raise InvalidConfigError(key, region or country, str(e)) from e

    def is_holiday(self, day: date) -> bool:
        if day in self.custom_holidays:
            return True
        return self._calendar is not None and day in self._calendar

    def holiday_name(self, day: date) -> Optional[str]:
        if day in self.custom_holidays:
            return "Custom Holiday"
        if self._calendar is None:
            return None
        return self._calendar.get(day)
