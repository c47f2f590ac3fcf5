import datetime

import pytest
import pytz
from django.core.exceptions import ValidationError
from django.utils import timezone

from executions.models import STATUS_SUCCESS, ScheduledMessageExecution
from scheduled_messages.models import ScheduledMessage
from schedules.validators import validate_schedule_expression, validate_timezone

pytestmark = pytest.mark.django_db

MEXICO = pytz.timezone('America/Mexico_City')


def test_validators_accept_valid_values():
    validate_schedule_expression('every day at 8am')
    validate_timezone('America/Mexico_City')


def test_validators_reject_invalid_values():
    with pytest.raises(ValidationError) as excinfo:
        validate_schedule_expression('every fortnight')
    assert excinfo.value.code == 'invalid_schedule'

    with pytest.raises(ValidationError):
        validate_timezone('Not/AZone')


def test_full_clean_rejects_blank_template_and_bad_schedule(user):
    message = ScheduledMessage(
        name='bad', template='   ', schedule_expression='whenever',
        timezone='America/Mexico_City', destination_id='1', created_by=user,
    )

    with pytest.raises(ValidationError) as excinfo:
        message.full_clean()

    assert 'template' in excinfo.value.message_dict
    assert 'schedule_expression' in excinfo.value.message_dict


def test_new_message_gets_next_due_at(make_message):
    before = timezone.now()

    message = make_message(schedule_expression='every 2 hours')

    assert message.next_due_at > before
    assert message.next_due_at <= timezone.now() + datetime.timedelta(hours=2)


def test_disabled_message_has_no_next_due_at(make_message):
    message = make_message(enabled=False)

    assert message.next_due_at is None


def test_changing_schedule_recomputes_next_due_at(make_message):
    message = make_message(schedule_expression='every day at 8am')
    ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=None)
    message = ScheduledMessage.objects.get(pk=message.pk)

    message.schedule_expression = 'every 5 minutes'
    message.save()

    message.refresh_from_db()
    assert message.next_due_at is not None
    assert message.next_due_at <= timezone.now() + datetime.timedelta(minutes=5)


def test_editing_other_fields_keeps_stored_next_due_at(make_message):
    message = make_message()
    stored = timezone.now() + datetime.timedelta(days=3)
    ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=stored)
    stale_copy = ScheduledMessage.objects.get(pk=message.pk)
    stale_copy.next_due_at = timezone.now() - datetime.timedelta(days=1)

    stale_copy.template = 'Updated text'
    stale_copy.save()

    fresh = ScheduledMessage.objects.get(pk=message.pk)
    assert fresh.template == 'Updated text'
    assert fresh.next_due_at == stored


def test_disabling_clears_next_due_at(make_message):
    message = make_message()

    message.enabled = False
    message.save()

    assert ScheduledMessage.objects.get(pk=message.pk).next_due_at is None


def test_due_selects_messages_whose_time_has_come(make_message, make_due):
    past = make_due(make_message(), timezone.now() - datetime.timedelta(minutes=5))
    make_message()
    disabled = make_message(enabled=False)
    ScheduledMessage.objects.filter(pk=disabled.pk).update(next_due_at=timezone.now() - datetime.timedelta(hours=1))

    due = ScheduledMessage.objects.due(timezone.now())

    assert [message.pk for message in due] == [past.pk]


def test_due_orders_by_next_due_at(make_message, make_due):
    later = make_due(make_message(), timezone.now() - datetime.timedelta(minutes=1))
    earlier = make_due(make_message(), timezone.now() - datetime.timedelta(minutes=10))

    due = ScheduledMessage.objects.due(timezone.now())

    assert [message.pk for message in due] == [earlier.pk, later.pk]


def test_scenario_every_day_at_8am_becomes_due_at_8_01(make_message):
    message = make_message(schedule_expression='every day at 8am', timezone='America/Mexico_City', template='Hello {{ date }}')
    at_7_59 = MEXICO.localize(datetime.datetime(2024, 5, 10, 7, 59))
    at_8_01 = MEXICO.localize(datetime.datetime(2024, 5, 10, 8, 1))
    next_due_at = message.calculate_next_due_at(at_7_59)
    ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=next_due_at)

    assert next_due_at.astimezone(MEXICO) == MEXICO.localize(datetime.datetime(2024, 5, 10, 8, 0))
    assert message.pk not in [m.pk for m in ScheduledMessage.objects.due(at_7_59)]
    assert message.pk in [m.pk for m in ScheduledMessage.objects.due(at_8_01)]


def test_missing_next_due_at_falls_back_to_last_execution(make_message):
    never_run = make_message(schedule_expression='every hour')
    ran_recently = make_message(schedule_expression='every hour')
    ran_long_ago = make_message(schedule_expression='every hour')
    now = timezone.now()
    ScheduledMessageExecution.objects.create(
        scheduled_message=ran_recently, executed_at=now - datetime.timedelta(minutes=10),
        status=STATUS_SUCCESS, channel_type='discord',
    )
    ScheduledMessageExecution.objects.create(
        scheduled_message=ran_long_ago, executed_at=now - datetime.timedelta(hours=2),
        status=STATUS_SUCCESS, channel_type='discord',
    )
    ScheduledMessage.objects.filter(pk__in=[never_run.pk, ran_recently.pk, ran_long_ago.pk]).update(next_due_at=None)

    due = {message.pk for message in ScheduledMessage.objects.due(now)}

    assert due == {never_run.pk, ran_long_ago.pk}


def test_unparseable_schedule_without_next_due_at_is_due(make_message):
    message = make_message(schedule_expression='every hour')
    ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=None, schedule_expression='whenever')
    healthy = make_message(schedule_expression='every hour')
    ScheduledMessage.objects.filter(pk=healthy.pk).update(next_due_at=timezone.now() - datetime.timedelta(minutes=1))

    due = [m.pk for m in ScheduledMessage.objects.due(timezone.now())]

    assert due == [healthy.pk, message.pk]


def test_deleting_message_removes_its_history(make_message):
    message = make_message()
    ScheduledMessageExecution.objects.create(scheduled_message=message, status=STATUS_SUCCESS, channel_type='discord')

    message.delete()

    assert ScheduledMessageExecution.objects.count() == 0
