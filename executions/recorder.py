import datetime
import logging

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from scheduled_messages.exceptions import RecorderError, ScheduleParseError
from scheduled_messages.models import ScheduledMessage
from schedules.calculator import get_timezone, next_run
from .models import ScheduledMessageExecution, SentNotification

logger = logging.getLogger(__name__)

# used when a stored expression no longer parses
FALLBACK_DELAY = datetime.timedelta(hours=1)


class ExecutionRecorder:
    """Writes one immutable execution per attempt and moves next_due_at forward."""

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def record(self, message, status, trigger_kind, payload=None, mark_sent=False):
        try:
            with transaction.atomic():
                now = self.clock()
                execution = ScheduledMessageExecution.objects.create(
                    scheduled_message=message,
                    executed_at=now,
                    status=status,
                    trigger_kind=trigger_kind,
                    channel_type=message.channel_type,
                    result_payload=payload or {},
                )
                if mark_sent:
                    self._mark_sent(message, now)
                if message.enabled:
                    self.advance(message, now)
        except DatabaseError as e:
            logger.error(f"Failed to record execution for message '{message.name}': {e}")
            raise RecorderError(f"Could not record execution for message '{message.name}': {e}") from e
        return execution

    def advance(self, message, now):
        """Recompute next_due_at from ``now`` (not from the missed due date)."""
        try:
            next_due_at = next_run(message.schedule_expression, message.timezone, now)
        except ScheduleParseError as e:
            logger.error(f"Failed to parse schedule '{message.schedule_expression}' for message {message.pk}: {e}")
            next_due_at = now + FALLBACK_DELAY
        updated = ScheduledMessage.objects.filter(pk=message.pk).filter(
            Q(next_due_at__isnull=True) | Q(next_due_at__lt=next_due_at)
        ).update(next_due_at=next_due_at)
        if updated:
            message.next_due_at = next_due_at
        return message.next_due_at

    def already_sent_on(self, message, day):
        return SentNotification.objects.filter(scheduled_message=message, sent_on=day).exists()

    def local_date(self, message, instant=None):
        return (instant or self.clock()).astimezone(get_timezone(message.timezone)).date()

    def _mark_sent(self, message, now):
        day = self.local_date(message, now)
        try:
            with transaction.atomic():
                SentNotification.objects.create(scheduled_message=message, sent_at=now, sent_on=day)
        except IntegrityError:
            logger.warning(f"Message '{message.name}' already has a sent notification for {day}")
