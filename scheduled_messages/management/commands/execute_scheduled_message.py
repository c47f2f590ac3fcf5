from django.core.management.base import BaseCommand, CommandError

from executions.models import STATUS_ERROR, TRIGGER_MANUAL
from scheduled_messages.executor import Executor
from scheduled_messages.models import ScheduledMessage


class Command(BaseCommand):
    help = 'Runs one scheduled message now, ignoring its schedule (recorded as a manual execution).'

    def add_arguments(self, parser):
        parser.add_argument('message_id', type=int)

    def handle(self, *args, **options):
        try:
            message = ScheduledMessage.objects.get(pk=options['message_id'])
        except ScheduledMessage.DoesNotExist:
            raise CommandError(f"Scheduled message {options['message_id']} does not exist")

        result = Executor().execute_message(message, trigger_kind=TRIGGER_MANUAL)
        if result.status == STATUS_ERROR:
            raise CommandError(f"'{message.name}' failed: {result.error}")
        self.stdout.write(self.style.SUCCESS(f"'{message.name}': {result.status} (execution {result.execution_id})"))
