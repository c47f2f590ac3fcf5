from django.core.management.base import BaseCommand
from django.utils import timezone

from executions.recorder import ExecutionRecorder
from scheduled_messages.models import ScheduledMessage


class Command(BaseCommand):
    help = 'Fills next_due_at for enabled scheduled messages that have none.'

    def handle(self, *args, **options):
        recorder = ExecutionRecorder()
        now = timezone.now()
        count = 0
        for message in ScheduledMessage.objects.active().filter(next_due_at__isnull=True):
            recorder.advance(message, now)
            count += 1
            self.stdout.write(f"Message {message.pk} ({message.name}) next run at {message.next_due_at}")
        self.stdout.write(self.style.SUCCESS(f'Updated {count} scheduled messages.'))
