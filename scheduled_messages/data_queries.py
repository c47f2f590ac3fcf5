import calendar
import copy
import logging
from dataclasses import dataclass
from typing import Callable

from django.contrib.auth import get_user_model

from schedules.calculator import get_timezone
from .exceptions import QueryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Birthday:
    """What a template may see of a user. Never hand the user row itself to a template."""

    display_name: str
    handle: str
    mention: str
    month: int
    day: int
    month_name: str
    today: bool
    in_current_month: bool

    def in_month(self, month):
        return self.month == month

    def __str__(self):
        return f'{self.month_name} {self.day}'


def is_birthday_on(month, day, date):
    if (month, day) == (date.month, date.day):
        return True
    # Feb 29 birthdays are celebrated on Feb 28 in common years
    return (month, day) == (2, 29) and (date.month, date.day) == (2, 28) and not calendar.isleap(date.year)


def project_birthday(user, date):
    return Birthday(
        display_name=user.display_name or user.username,
        handle=user.username,
        mention=f'<@{user.discord_uid}>' if user.discord_uid else f'@{user.username}',
        month=user.birthday_month,
        day=user.birthday_day,
        month_name=calendar.month_name[user.birthday_month],
        today=is_birthday_on(user.birthday_month, user.birthday_day, date),
        in_current_month=user.birthday_month == date.month,
    )


def birthdays_today(reference):
    date = reference.date()
    days = [date.day]
    if (date.month, date.day) == (2, 28) and not calendar.isleap(date.year):
        days.append(29)
    users = get_user_model().objects.filter(
        is_active=True, birthday_month=date.month, birthday_day__in=days,
    ).order_by('birthday_day', 'username')
    birthdays = [project_birthday(user, date) for user in users]
    return {
        'birthdays': birthdays,
        'birthday_count': len(birthdays),
        'current_month': date.month,
        'current_day': date.day,
    }


def all_birthdays(reference):
    date = reference.date()
    users = get_user_model().objects.filter(
        is_active=True, birthday_month__isnull=False, birthday_day__isnull=False,
    ).order_by('birthday_month', 'birthday_day', 'username')
    birthdays = [project_birthday(user, date) for user in users]
    return {
        'birthdays': birthdays,
        'birthday_count': len(birthdays),
        'current_month': date.month,
        'current_day': date.day,
    }


BIRTHDAY_PROPERTIES = [
    {'name': 'display_name', 'type': 'String', 'description': "User's display name"},
    {'name': 'handle', 'type': 'String', 'description': 'Discord username'},
    {'name': 'mention', 'type': 'String', 'description': 'Discord mention (<@uid>)'},
    {'name': 'month', 'type': 'Integer', 'description': 'Birth month (1-12)'},
    {'name': 'day', 'type': 'Integer', 'description': 'Birth day (1-31)'},
    {'name': 'month_name', 'type': 'String', 'description': "Birth month name (e.g. 'January')"},
    {'name': 'today', 'type': 'Boolean', 'description': 'Birthday falls on the reference date'},
    {'name': 'in_current_month', 'type': 'Boolean', 'description': 'Birthday falls in the reference month'},
]

DATE_VARIABLES = [
    {'name': 'birthday_count', 'type': 'Integer', 'description': 'Number of birthdays returned'},
    {'name': 'current_month', 'type': 'Integer', 'description': 'Current month number (1-12)'},
    {'name': 'current_day', 'type': 'Integer', 'description': 'Current day of the month (1-31)'},
]


@dataclass(frozen=True)
class DataQuery:
    key: str
    run: Callable
    metadata: dict
    # schedules using this query send at most once per calendar day
    once_per_day: bool = False


BUILTIN_QUERIES = {
    query.key: query for query in (
        DataQuery(
            key='birthdays_today',
            run=birthdays_today,
            once_per_day=True,
            metadata={
                'name': "Today's birthdays",
                'description': "Active members whose birthday is today in the message's timezone.",
                'variables': [
                    {'name': 'birthdays', 'type': 'List<Birthday>', 'description': 'Birthdays today, ordered by name'},
                ] + DATE_VARIABLES,
                'object_properties': [{'object': 'Birthday (each item in birthdays)', 'properties': BIRTHDAY_PROPERTIES}],
                'example': (
                    '{% for birthday in birthdays %}'
                    'Happy Birthday {{ birthday.mention }}! 🎂\n'
                    '{% endfor %}'
                ),
            },
        ),
        DataQuery(
            key='birthdays',
            run=all_birthdays,
            metadata={
                'name': 'All member birthdays',
                'description': 'Every active member with a birthday, ordered by month and day. Filter in the template.',
                'variables': [
                    {'name': 'birthdays', 'type': 'List<Birthday>', 'description': 'All birthdays, ordered by month and day'},
                ] + DATE_VARIABLES,
                'object_properties': [{'object': 'Birthday (each item in birthdays)', 'properties': BIRTHDAY_PROPERTIES}],
                'example': (
                    '🎂 {{ month }} birthdays:\n'
                    '{% for birthday in birthdays %}{% if birthday.in_current_month %}'
                    '• {{ birthday.day }} - {{ birthday.display_name }}\n'
                    '{% endif %}{% endfor %}'
                ),
            },
        ),
    )
}

DATA_QUERY_CHOICES = [(key, query.metadata['name']) for key, query in BUILTIN_QUERIES.items()]


def query_metadata(query_key):
    query = BUILTIN_QUERIES.get(query_key)
    if query is None:
        return None
    return copy.deepcopy(query.metadata)


def available_queries():
    return [
        {'value': key, 'label': query.metadata['name'], 'description': query.metadata['description']}
        for key, query in BUILTIN_QUERIES.items()
    ]


class DataQueryProvider:
    def __init__(self, queries=None):
        self.queries = dict(BUILTIN_QUERIES if queries is None else queries)

    def execute(self, query_key, reference, timezone):
        if not query_key:
            return {}
        query = self.queries.get(query_key)
        if query is None:
            logger.warning(f"Unknown data query type: {query_key}")
            return {}
        local = reference.astimezone(get_timezone(timezone))
        try:
            return dict(query.run(local))
        except Exception as e:
            logger.error(f"Data query '{query_key}' failed: {e}")
            raise QueryError(f"Data query '{query_key}' failed: {e}", query_key=query_key) from e

    def once_per_day(self, query_key):
        query = self.queries.get(query_key)
        return bool(query and query.once_per_day)
