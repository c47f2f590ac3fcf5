from django.contrib.admin.views.decorators import staff_member_required
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse

from .models import (
    STATUS_ERROR, STATUS_SKIPPED, STATUS_SUCCESS, TRIGGER_MANUAL, TRIGGER_SCHEDULED, ScheduledMessageExecution,
)


def serialize_execution(execution):
    return {
        'id': execution.pk,
        'message_id': execution.scheduled_message_id,
        'message_name': execution.scheduled_message.name,
        'executed_at': execution.executed_at.isoformat(),
        'status': execution.status,
        'trigger_kind': execution.trigger_kind,
        'channel_type': execution.channel_type,
        'result_payload': execution.result_payload,
    }


@staff_member_required
def execution_list(request):
    message = request.GET.get('message', '')
    status = request.GET.get('status', '')
    trigger = request.GET.get('trigger', '')
    search = request.GET.get('q', '')
    executions = ScheduledMessageExecution.objects.select_related('scheduled_message')
    if message.isdigit():
        executions = executions.filter(scheduled_message_id=message)
    if status == STATUS_SUCCESS:
        executions = executions.successful()
    elif status == STATUS_ERROR:
        executions = executions.failed()
    elif status == STATUS_SKIPPED:
        executions = executions.skipped()
    if trigger == TRIGGER_SCHEDULED:
        executions = executions.scheduled()
    elif trigger == TRIGGER_MANUAL:
        executions = executions.manual()
    if search:
        executions = executions.filter(
            Q(scheduled_message__name__icontains=search) |
            Q(channel_type__icontains=search)
        )
    paginator = Paginator(executions, 20)
    page_obj = paginator.get_page(request.GET.get('page'))
    return JsonResponse({
        'executions': [serialize_execution(execution) for execution in page_obj],
        'page': page_obj.number,
        'num_pages': paginator.num_pages,
        'count': paginator.count,
    })
