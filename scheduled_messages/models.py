import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from schedules.calculator import next_run, parse_schedule
from schedules.validators import validate_schedule_expression, validate_timezone

from .data_queries import DATA_QUERY_CHOICES
from .exceptions import ScheduleParseError

logger = logging.getLogger(__name__)

CHANNEL_TYPES = [
    ('discord', 'Discord'),
]


def default_timezone():
    return settings.SCHEDULED_MESSAGES['DEFAULT_TIMEZONE']


class ScheduledMessageQuerySet(models.QuerySet):
    def active(self):
        return self.filter(enabled=True)

    def due(self, now=None):
        """Enabled messages whose next_due_at has arrived.

        Rows without next_due_at fall back to comparing their last execution
        against the parsed schedule's period.
        """
        now = now or timezone.now()
        due = list(self.active().filter(next_due_at__lte=now).order_by('next_due_at', 'pk'))
        for message in self.active().filter(next_due_at__isnull=True).order_by('pk'):
            try:
                stale = message.is_stale(now)
            except ScheduleParseError as e:
                logger.warning(f"Message {message.pk} has an unparseable schedule, treating it as due: {e}")
                stale = True
            if stale:
                due.append(message)
        return due


class ScheduledMessage(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    template = models.TextField()
    schedule_expression = models.CharField(
        max_length=200,
        validators=[validate_schedule_expression],
        help_text="e.g. 'every day at 8am', 'every 2 hours', 'on monday at 9:30am'",
    )
    data_query = models.CharField(max_length=50, choices=DATA_QUERY_CHOICES, blank=True)
    channel_type = models.CharField(max_length=20, choices=CHANNEL_TYPES, default='discord')
    timezone = models.CharField(max_length=64, default=default_timezone, validators=[validate_timezone])
    enabled = models.BooleanField(default=True)
    destination_id = models.CharField(max_length=64, help_text='Discord channel ID')
    next_due_at = models.DateTimeField(blank=True, null=True, editable=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='scheduled_messages')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ScheduledMessageQuerySet.as_manager()

    class Meta:
        ordering = ['name']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_schedule_state = None

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._saved_schedule_state = instance._schedule_state()
        return instance

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.template is not None and not self.template.strip():
            raise ValidationError({'template': 'Template cannot be blank.'})

    def save(self, *args, **kwargs):
        update_fields = kwargs.get('update_fields')
        if self._schedule_state() != self._saved_schedule_state or (self.enabled and self.next_due_at is None):
            self.next_due_at = self.calculate_next_due_at() if self.enabled else None
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'next_due_at'}
        elif not self._state.adding and update_fields is None:
            # once the row exists, next_due_at only moves through the recorder
            kwargs['update_fields'] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name != 'next_due_at'
            ]
        super().save(*args, **kwargs)
        self._saved_schedule_state = self._schedule_state()

    def calculate_next_due_at(self, from_time=None):
        return next_run(self.schedule_expression, self.timezone, from_time or timezone.now())

    def is_stale(self, now=None):
        """Fallback due check for rows that never got a next_due_at."""
        now = now or timezone.now()
        last = self.executions.order_by('-executed_at').values_list('executed_at', flat=True).first()
        if last is None:
            return True
        return last <= now - parse_schedule(self.schedule_expression).period

    def _schedule_state(self):
        return (self.schedule_expression, self.timezone, self.enabled)
