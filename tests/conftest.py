import datetime
import itertools

import pytest
from django.utils import timezone

from consumers.base import BaseConsumer, DeliveryResult
from consumers.registry import build_registry
from scheduled_messages.executor import Executor
from scheduled_messages.models import ScheduledMessage

_names = itertools.count(1)


class FakeConsumer(BaseConsumer):
    channel_type = 'discord'

    def __init__(self, result=None):
        self.result = result or DeliveryResult(success=True, details={'message_id': 'discord-1'})
        self.sent = []

    def deliver(self, text, destination_id):
        self.sent.append((destination_id, text))
        return self.result


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username='organizer', password='secret-pass')


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username='moderator', password='secret-pass', is_staff=True)


@pytest.fixture
def make_message(user):
    def _make(**overrides):
        values = {
            'name': f'message-{next(_names)}',
            'template': 'Hello from the scheduler',
            'schedule_expression': 'every day at 8am',
            'timezone': 'America/Mexico_City',
            'destination_id': '123456789',
            'created_by': user,
        }
        values.update(overrides)
        return ScheduledMessage.objects.create(**values)

    return _make


@pytest.fixture
def make_due():
    def _due(message, when=None):
        when = when or timezone.now() - datetime.timedelta(minutes=1)
        ScheduledMessage.objects.filter(pk=message.pk).update(next_due_at=when)
        message.refresh_from_db()
        return message

    return _due


@pytest.fixture
def fake_consumer():
    return FakeConsumer()


@pytest.fixture
def executor(fake_consumer):
    return Executor(consumers=build_registry({'discord': fake_consumer}), timeout=5)
