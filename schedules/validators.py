import pytz
from django.core.exceptions import ValidationError

from scheduled_messages.exceptions import ScheduleParseError
from .calculator import parse_schedule


def validate_schedule_expression(value):
    try:
        parse_schedule(value)
    except ScheduleParseError as e:
        raise ValidationError(str(e), code='invalid_schedule')


def validate_timezone(value):
    if value not in pytz.all_timezones_set:
        raise ValidationError(f"'{value}' is not a valid IANA timezone", code='invalid_timezone')
