from django.core.management.base import BaseCommand

from scheduled_messages.executor import Executor
from scheduled_messages.worker import ExecutorSupervisor


class Command(BaseCommand):
    help = 'Runs due scheduled messages every --interval seconds (or a single check with --once)'

    def add_arguments(self, parser):
        parser.add_argument('--interval', type=int, default=60, help='Seconds between checks')
        parser.add_argument('--once', action='store_true', help='Run one check and exit')

    def handle(self, *args, **options):
        if options['once']:
            result = Executor().execute_due_messages()
            summary = f"Executions: {len(result['executions'])} | Errors: {len(result['errors'])}"
            for error in result['errors']:
                self.stderr.write(f"[{error['error_kind']}] {error['message_name']}: {error['error']}")
            self.stdout.write(self.style.SUCCESS(summary) if result['success'] else self.style.ERROR(summary))
            return

        interval = options['interval']
        supervisor = ExecutorSupervisor(Executor, interval=interval)
        self.stdout.write(self.style.WARNING(f'Starting scheduled message worker (interval: {interval}s)...'))
        supervisor.start()
        try:
            while supervisor.wait(1):
                pass
        except KeyboardInterrupt:
            status = supervisor.stop()
            self.stdout.write(self.style.WARNING(f'Worker stopped by user after {status.runs} runs.'))
