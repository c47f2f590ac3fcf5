from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

STATUS_SUCCESS = 'success'
STATUS_ERROR = 'error'
STATUS_SKIPPED = 'skipped'

STATUS_CHOICES = [
    (STATUS_SUCCESS, 'Success'),
    (STATUS_ERROR, 'Error'),
    (STATUS_SKIPPED, 'Skipped'),
]

TRIGGER_SCHEDULED = 'scheduled'
TRIGGER_MANUAL = 'manual'

TRIGGER_CHOICES = [
    (TRIGGER_SCHEDULED, 'Scheduled'),
    (TRIGGER_MANUAL, 'Manual'),
]


class ExecutionQuerySet(models.QuerySet):
    def successful(self):
        return self.filter(status=STATUS_SUCCESS)

    def failed(self):
        return self.filter(status=STATUS_ERROR)

    def skipped(self):
        return self.filter(status=STATUS_SKIPPED)

    def scheduled(self):
        return self.filter(trigger_kind=TRIGGER_SCHEDULED)

    def manual(self):
        return self.filter(trigger_kind=TRIGGER_MANUAL)


class ScheduledMessageExecution(models.Model):
    scheduled_message = models.ForeignKey(
        'scheduled_messages.ScheduledMessage', on_delete=models.CASCADE, related_name='executions',
    )
    executed_at = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    trigger_kind = models.CharField(max_length=20, choices=TRIGGER_CHOICES, default=TRIGGER_SCHEDULED)
    channel_type = models.CharField(max_length=20)
    result_payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ExecutionQuerySet.as_manager()

    class Meta:
        ordering = ['-executed_at', '-pk']
        verbose_name = 'Scheduled message execution'

    def __str__(self):
        return f"{self.scheduled_message} - {self.status} ({self.executed_at:%Y-%m-%d %H:%M})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Executions are immutable once recorded')
        super().save(*args, **kwargs)


class SentNotification(models.Model):
    scheduled_message = models.ForeignKey(
        'scheduled_messages.ScheduledMessage', on_delete=models.CASCADE, related_name='sent_notifications',
    )
    sent_at = models.DateTimeField(default=timezone.now)
    # calendar day of sent_at in the message's timezone
    sent_on = models.DateField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['scheduled_message', 'sent_on'], name='one_notification_per_message_per_day'),
        ]
        verbose_name = 'Sent notification'

    def __str__(self):
        return f"{self.scheduled_message} - {self.sent_on}"
