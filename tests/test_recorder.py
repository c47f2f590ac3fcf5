import datetime
from unittest import mock

import pytest
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from executions.models import (
    STATUS_ERROR, STATUS_SUCCESS, TRIGGER_MANUAL, TRIGGER_SCHEDULED, ScheduledMessageExecution, SentNotification,
)
from executions.recorder import ExecutionRecorder
from scheduled_messages.exceptions import RecorderError
from scheduled_messages.models import ScheduledMessage

pytestmark = pytest.mark.django_db


def test_record_creates_execution_and_advances(make_message, make_due):
    message = make_due(make_message(schedule_expression='every 2 hours'))
    now = timezone.now()

    execution = ExecutionRecorder(clock=lambda: now).record(message, STATUS_SUCCESS, TRIGGER_SCHEDULED, {'a': 1})

    assert execution.status == STATUS_SUCCESS
    assert execution.channel_type == 'discord'
    assert execution.result_payload == {'a': 1}
    assert execution.executed_at == now
    assert message.next_due_at == now + datetime.timedelta(hours=2)
    assert ScheduledMessage.objects.get(pk=message.pk).next_due_at == now + datetime.timedelta(hours=2)


def test_disabled_message_is_recorded_without_advancing(make_message):
    message = make_message(enabled=False)

    ExecutionRecorder().record(message, STATUS_SUCCESS, TRIGGER_MANUAL)

    assert ScheduledMessage.objects.get(pk=message.pk).next_due_at is None
    assert message.executions.count() == 1


def test_executions_are_immutable(make_message):
    execution = ExecutionRecorder().record(make_message(), STATUS_ERROR, TRIGGER_SCHEDULED, {'error': 'x'})

    execution.status = STATUS_SUCCESS
    with pytest.raises(ValueError):
        execution.save()


def test_advance_never_moves_backward(make_message):
    message = make_message(schedule_expression='every hour')
    far_future = timezone.now() + datetime.timedelta(days=30)
    ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=far_future)

    ExecutionRecorder().advance(message, timezone.now())

    assert ScheduledMessage.objects.get(pk=message.pk).next_due_at == far_future


def test_advance_falls_back_when_expression_no_longer_parses(make_message):
    message = make_message()
    ScheduledMessage.objects.filter(pk=message.pk).update(schedule_expression='whenever', next_due_at=None)
    message.refresh_from_db()
    now = timezone.now()

    ExecutionRecorder().advance(message, now)

    assert ScheduledMessage.objects.get(pk=message.pk).next_due_at == now + datetime.timedelta(hours=1)


def test_mark_sent_writes_one_notification_per_local_day(make_message):
    message = make_message(data_query='birthdays_today')
    recorder = ExecutionRecorder()

    recorder.record(message, STATUS_SUCCESS, TRIGGER_SCHEDULED, mark_sent=True)
    recorder.record(message, STATUS_SUCCESS, TRIGGER_SCHEDULED, mark_sent=True)

    assert SentNotification.objects.filter(scheduled_message=message).count() == 1
    assert message.executions.count() == 2
    assert recorder.already_sent_on(message, recorder.local_date(message))


def test_sent_notification_uniqueness_is_enforced_by_database(make_message):
    message = make_message()
    today = datetime.date(2024, 5, 10)
    SentNotification.objects.create(scheduled_message=message, sent_on=today)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            SentNotification.objects.create(scheduled_message=message, sent_on=today)


def test_database_failure_raises_recorder_error(make_message):
    message = make_message()

    with mock.patch.object(ScheduledMessageExecution.objects, 'create', side_effect=DatabaseError('disk full')):
        with pytest.raises(RecorderError, match='disk full'):
            ExecutionRecorder().record(message, STATUS_SUCCESS, TRIGGER_SCHEDULED)


def test_local_date_uses_message_timezone(make_message):
    message = make_message(timezone='America/Mexico_City')
    instant = timezone.make_aware(datetime.datetime(2024, 5, 11, 3, 0), datetime.timezone.utc)

    assert ExecutionRecorder().local_date(message, instant) == datetime.date(2024, 5, 10)
