import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from executions.models import STATUS_ERROR, TRIGGER_MANUAL
from schedules.calculator import next_run
from .data_queries import available_queries, query_metadata
from .exceptions import ScheduleParseError
from .executor import Executor
from .models import ScheduledMessage

logger = logging.getLogger(__name__)


def messages_for(user):
    if user.is_staff or user.is_superuser:
        return ScheduledMessage.objects.all()
    return ScheduledMessage.objects.filter(created_by=user)


@login_required
@require_POST
def test_send(request, pk):
    """Send one message right now and report the raw outcome."""
    message = get_object_or_404(messages_for(request.user), pk=pk)
    logger.info(f"Test send of '{message.name}' requested by {request.user}")
    result = Executor().execute_message(message, trigger_kind=TRIGGER_MANUAL)
    return JsonResponse({'success': result.status != STATUS_ERROR, **result.as_dict()})


@login_required
@require_GET
def data_query_list(request):
    return JsonResponse({'queries': available_queries()})


@login_required
@require_GET
def data_query_detail(request, key):
    metadata = query_metadata(key)
    if metadata is None:
        return JsonResponse({'success': False, 'error': f"Unknown data query '{key}'"}, status=404)
    return JsonResponse({'key': key, **metadata})


@login_required
@require_GET
def schedule_preview(request):
    expression = request.GET.get('expression', '')
    tz = request.GET.get('timezone') or ScheduledMessage._meta.get_field('timezone').get_default()
    try:
        upcoming = next_run(expression, tz, timezone.now())
    except ScheduleParseError as e:
        return JsonResponse({'valid': False, 'error': str(e)}, status=400)
    return JsonResponse({'valid': True, 'next_run': upcoming.isoformat(), 'timezone': tz})
