import json
import logging
import threading
from dataclasses import asdict, dataclass, field

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import connections
from django.utils import timezone

from consumers.registry import build_registry
from executions.models import STATUS_ERROR, STATUS_SKIPPED, STATUS_SUCCESS, TRIGGER_MANUAL, TRIGGER_SCHEDULED
from executions.recorder import ExecutionRecorder
from .data_queries import DataQueryProvider
from .exceptions import DeliveryError, EmptyRenderSkip, ExecutionTimeoutError, MessagingError
from .models import ScheduledMessage
from .rendering import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    message_id: int
    message_name: str
    execution_id: int = None
    status: str = None
    delivery_result: dict = field(default_factory=dict)
    error: str = None
    error_kind: str = None

    def as_dict(self):
        return asdict(self)


def serializable_variables(variables):
    """Query variables that can go into the audit payload (drops view objects)."""
    kept = {}
    for name, value in variables.items():
        try:
            json.dumps(value, cls=DjangoJSONEncoder)
        except (TypeError, ValueError):
            continue
        kept[name] = value
    return kept


class Executor:
    """
    Runs scheduled messages: query -> render -> deliver -> record.

    Each message runs in its own error boundary, and query/render/delivery run
    in a worker thread bounded by ``timeout`` seconds. Every attempt ends in
    exactly one recorded execution; only recorder failures (and bugs) escape.
    """

    def __init__(self, data_queries=None, renderer=None, consumers=None, recorder=None, timeout=None, clock=timezone.now):
        self.data_queries = data_queries or DataQueryProvider()
        self.renderer = renderer or TemplateRenderer()
        self.consumers = consumers if consumers is not None else build_registry()
        self.recorder = recorder or ExecutionRecorder(clock=clock)
        self.timeout = timeout if timeout is not None else settings.SCHEDULED_MESSAGES['EXECUTION_TIMEOUT']
        self.clock = clock

    def execute_due_messages(self):
        logger.info("Starting scheduled message execution check")
        messages = ScheduledMessage.objects.due(self.clock())
        logger.info(f"Found {len(messages)} scheduled messages due to run")

        executions = []
        errors = []
        for message in messages:
            result = self.execute_message(message, trigger_kind=TRIGGER_SCHEDULED)
            executions.append(result.as_dict())
            if result.error:
                errors.append({
                    'message_id': result.message_id,
                    'message_name': result.message_name,
                    'execution_id': result.execution_id,
                    'error_kind': result.error_kind,
                    'error': result.error,
                })

        logger.info(f"Scheduled message execution completed. Executions: {len(executions)}, Errors: {len(errors)}")
        return {
            'success': not errors,
            'executions': executions,
            'errors': errors,
        }

    def execute_message(self, message, trigger_kind=TRIGGER_MANUAL):
        """Run one message now. Manual runs skip the due check and the daily dedupe."""
        if not isinstance(message, ScheduledMessage):
            message = ScheduledMessage.objects.get(pk=message)
        logger.info(f"Executing message: {message.name} (ID: {message.pk}, trigger: {trigger_kind})")

        reference = self.clock()
        once_per_day = trigger_kind == TRIGGER_SCHEDULED and self.data_queries.once_per_day(message.data_query)
        if once_per_day and self.recorder.already_sent_on(message, self.recorder.local_date(message, reference)):
            logger.info(f"Message '{message.name}' already sent today, skipping")
            return self._record(
                message, trigger_kind, STATUS_SKIPPED,
                {'skip_reason': 'Already sent today'},
                delivery_result={'success': True, 'skipped': True, 'reason': 'Already sent today'},
            )

        progress = {'stage': 'selected'}
        try:
            variables, rendered, delivery = self._run_with_timeout(message, reference, progress)
        except EmptyRenderSkip as skip:
            logger.info(f"Message '{message.name}' skipped due to empty template")
            return self._record(
                message, trigger_kind, STATUS_SKIPPED,
                {'query_data': serializable_variables(skip.variables), 'skip_reason': skip.reason},
                delivery_result={'success': True, 'skipped': True, 'reason': 'Template rendered empty'},
            )
        except MessagingError as e:
            logger.error(f"Error executing message '{message.name}' while {progress['stage']}: {e}")
            payload = {
                'query_data': serializable_variables(progress.get('variables', {})),
                'error': str(e),
                'error_kind': e.error_kind,
                'stage': progress['stage'],
            }
            return self._record(
                message, trigger_kind, STATUS_ERROR, payload,
                delivery_result={'success': False, 'error': str(e)},
                error=e,
            )

        payload = {
            'query_data': serializable_variables(variables),
            'delivery_result': delivery.as_dict(),
            'rendered_length': len(rendered),
        }
        if delivery.success:
            return self._record(
                message, trigger_kind, STATUS_SUCCESS, payload,
                delivery_result=delivery.as_dict(),
                mark_sent=once_per_day,
            )

        details = delivery.details
        error = DeliveryError(f"{details.get('error', 'Delivery failed')}: {details.get('message', 'Unknown error')}", **details)
        return self._record(message, trigger_kind, STATUS_ERROR, payload, delivery_result=delivery.as_dict(), error=error)

    def _pipeline(self, message, reference, progress, cancelled):
        progress['stage'] = 'querying'
        variables = self.data_queries.execute(message.data_query, reference, message.timezone)
        progress['variables'] = variables
        if cancelled.is_set():
            return None

        progress['stage'] = 'rendering'
        rendered = self.renderer.render_message(message.template, variables, reference, message.timezone)
        logger.debug(f"Rendered message content ({len(rendered)} chars)")
        if not rendered.strip():
            raise EmptyRenderSkip(variables=variables)

        progress['stage'] = 'delivering'
        deliver = self.consumers.resolve(message.channel_type)
        if cancelled.is_set():
            return None
        delivery = deliver(rendered, message.destination_id)

        progress['stage'] = 'recording'
        return variables, rendered, delivery

    def _run_with_timeout(self, message, reference, progress):
        outcome = {}
        cancelled = threading.Event()

        def runner():
            try:
                outcome['result'] = self._pipeline(message, reference, progress, cancelled)
            except Exception as e:
                outcome['error'] = e
            finally:
                connections.close_all()

        # a timed out worker stops before its next stage and never delivers
        worker = threading.Thread(target=runner, name=f'scheduled-message-{message.pk}', daemon=True)
        worker.start()
        worker.join(self.timeout)
        if worker.is_alive():
            cancelled.set()
            logger.error(f"Message execution timed out after {self.timeout} seconds: {message.name}")
            raise ExecutionTimeoutError(f'Execution timed out after {self.timeout} seconds', stage=progress['stage'])
        if 'error' in outcome:
            raise outcome['error']
        return outcome['result']

    def _record(self, message, trigger_kind, status, payload, delivery_result=None, error=None, mark_sent=False):
        execution = self.recorder.record(message, status, trigger_kind, payload, mark_sent=mark_sent)
        logger.info(f"Message '{message.name}' executed: {status}, next run at: {message.next_due_at}")
        return ExecutionResult(
            message_id=message.pk,
            message_name=message.name,
            execution_id=execution.pk,
            status=status,
            delivery_result=delivery_result or {},
            error=str(error) if error else None,
            error_kind=error.error_kind if error else None,
        )
