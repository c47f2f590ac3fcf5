"""
Small recurring-schedule language used by scheduled messages.

Accepted clauses (case-insensitive, any order, each at most once):

    every N <unit>s | every <unit>     unit: second, minute, hour, day, week, month
    at H[:MM][am|pm]                   next occurrence of that local clock time
    on <weekday>                       next occurrence of that weekday

Examples: 'every 2 hours', 'every day at 8am', 'every week on monday at 9:30',
'on friday at 5pm', 'at 18:00'.

Anything the clauses do not consume is a ScheduleParseError. Nothing is guessed.
"""
import calendar
import datetime
import re
from dataclasses import dataclass

import pytz

from scheduled_messages.exceptions import ScheduleParseError

UNITS = ('second', 'minute', 'hour', 'day', 'week', 'month')
WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

CLAUSES = [
    ('every', re.compile(
        r'every\s+(?:(?P<count>\d+)\s+)?(?P<unit>' + '|'.join(UNITS) + r')s?\b'
    )),
    ('at', re.compile(
        r'at\s+(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm)?\b'
    )),
    ('on', re.compile(
        r'on\s+(?P<weekday>' + '|'.join(WEEKDAYS) + r')\b'
    )),
]

EXAMPLES = "e.g. 'every day at 8am', 'every 2 hours', 'on monday at 9:30am'"


@dataclass(frozen=True)
class Schedule:
    count: int = None
    unit: str = None
    hour: int = None
    minute: int = 0
    weekday: int = None

    @property
    def anchored(self):
        return self.hour is not None or self.weekday is not None

    @property
    def period(self):
        """Length of one recurrence, used where no precomputed due date exists."""
        if self.anchored:
            if self.weekday is not None:
                return datetime.timedelta(weeks=1)
            return datetime.timedelta(days=1)
        if self.unit == 'month':
            # shortest month, so a stale row is never considered fresh
            return datetime.timedelta(days=28 * self.count)
        return datetime.timedelta(**{f'{self.unit}s': self.count})

    def next_run(self, reference, tz):
        if reference.tzinfo is None:
            reference = pytz.utc.localize(reference)
        tz = get_timezone(tz)
        if self.anchored:
            return self._next_anchored(reference, tz)
        if self.unit == 'month':
            local = reference.astimezone(tz).replace(tzinfo=None)
            candidate = _localize(tz, add_months(local, self.count))
            return candidate.astimezone(pytz.utc)
        return (reference + self.period).astimezone(pytz.utc)

    def _next_anchored(self, reference, tz):
        local = reference.astimezone(tz)
        clock = datetime.time(self.hour or 0, self.minute)
        # a weekday that already passed today comes back within 7 days
        for offset in range(8):
            day = local.date() + datetime.timedelta(days=offset)
            if self.weekday is not None and day.weekday() != self.weekday:
                continue
            candidate = _localize(tz, datetime.datetime.combine(day, clock))
            if candidate > reference:
                return candidate.astimezone(pytz.utc)
        raise ScheduleParseError(f'No upcoming occurrence for {self!r}')


def parse_schedule(expression):
    if not expression or not expression.strip():
        raise ScheduleParseError(f'Schedule expression is empty ({EXAMPLES})')

    text = ' '.join(expression.lower().split())
    found = {}
    pos = 0
    while pos < len(text):
        if text[pos] == ' ':
            pos += 1
            continue
        for name, pattern in CLAUSES:
            match = pattern.match(text, pos)
            if match:
                break
        else:
            raise ScheduleParseError(
                f"Unrecognized schedule syntax near '{text[pos:]}' ({EXAMPLES})"
            )
        if name in found:
            raise ScheduleParseError(f"The '{name}' clause appears more than once in '{expression}'")
        found[name] = match
        pos = match.end()

    values = {}
    if 'every' in found:
        count = int(found['every'].group('count') or 1)
        if count < 1:
            raise ScheduleParseError(f"Interval must be at least 1 in '{expression}'")
        values['count'] = count
        values['unit'] = found['every'].group('unit')
    if 'at' in found:
        values['hour'], values['minute'] = _parse_clock(found['at'], expression)
    if 'on' in found:
        values['weekday'] = WEEKDAYS.index(found['on'].group('weekday'))

    schedule = Schedule(**values)
    if schedule.unit and schedule.anchored:
        daily = schedule.unit == 'day' and schedule.weekday is None
        weekly = schedule.unit == 'week' and schedule.weekday is not None
        if schedule.count != 1 or not (daily or weekly):
            raise ScheduleParseError(
                f"'{expression}' combines an interval with 'at'/'on'; only 'every day at …' "
                f"and 'every week on …' are supported"
            )
    return schedule


def next_run(expression, timezone, reference):
    """Next instant (UTC) strictly after ``reference`` for ``expression`` in ``timezone``."""
    return parse_schedule(expression).next_run(reference, timezone)


def get_timezone(name):
    if isinstance(name, datetime.tzinfo):
        return name
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ScheduleParseError(f"Unknown timezone '{name}'")


def add_months(value, months):
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _parse_clock(match, expression):
    hour = int(match.group('hour'))
    minute = int(match.group('minute') or 0)
    meridiem = match.group('meridiem')
    if minute > 59:
        raise ScheduleParseError(f"Invalid minute in '{expression}'")
    if meridiem:
        if not 1 <= hour <= 12:
            raise ScheduleParseError(f"Invalid 12-hour clock time in '{expression}'")
        hour = hour % 12 + (12 if meridiem == 'pm' else 0)
    elif hour > 23:
        raise ScheduleParseError(f"Invalid hour in '{expression}'")
    return hour, minute


def _localize(tz, naive):
    # normalize() moves times inside a DST gap onto a real instant
    if hasattr(tz, 'localize'):
        return tz.normalize(tz.localize(naive))
    return naive.replace(tzinfo=tz)
