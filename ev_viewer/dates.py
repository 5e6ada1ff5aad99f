"""Calendar-date helpers used by the timeline layout."""
import math
from datetime import datetime

import pytz

DATE_FORMAT = '%Y-%m-%d'
SECONDS_PER_DAY = 24 * 60 * 60

MONTH_ABBR = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
              'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


def parse_calendar_date(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` as local midnight. Raises ValueError on bad input."""
    return datetime.strptime(value, DATE_FORMAT)


def format_calendar_date(instant: datetime) -> str:
    return instant.strftime(DATE_FORMAT)


def days_between(start: datetime, end: datetime) -> int:
    """Signed whole days from ``start`` to ``end``, rounding partial days up."""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def format_display_date(value: str) -> str:
    # locale independent
    d = parse_calendar_date(value)
    return f"{MONTH_ABBR[d.month - 1]} {d.day}, {d.year}"


def is_calendar_date(value) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        # strptime accepts unpadded fields; only the canonical form is valid
        return format_calendar_date(parse_calendar_date(value)) == value
    except ValueError:
        return False


def local_today(tz_name='UTC') -> str:
    """Today's calendar date in the named timezone."""
    return format_calendar_date(datetime.now(pytz.timezone(tz_name)))
