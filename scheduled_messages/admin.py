from django.contrib import admin, messages

from executions.models import STATUS_ERROR, TRIGGER_MANUAL, ScheduledMessageExecution
from .executor import Executor
from .forms import ScheduledMessageForm
from .models import ScheduledMessage


class ExecutionInline(admin.TabularInline):
    model = ScheduledMessageExecution
    extra = 0
    can_delete = False
    fields = ('executed_at', 'status', 'trigger_kind', 'channel_type', 'result_payload')
    readonly_fields = fields
    ordering = ('-executed_at',)
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ScheduledMessage)
class ScheduledMessageAdmin(admin.ModelAdmin):
    form = ScheduledMessageForm
    list_display = ('name', 'channel_type', 'schedule_expression', 'timezone', 'enabled', 'next_due_at', 'last_status')
    list_filter = ('enabled', 'channel_type', 'data_query')
    search_fields = ('name', 'description')
    readonly_fields = ('next_due_at', 'created_by', 'created_at', 'updated_at')
    inlines = [ExecutionInline]
    actions = ['run_now']

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    def last_status(self, obj):
        execution = obj.executions.first()
        return execution.status if execution else '-'
    last_status.short_description = 'Last run'

    def run_now(self, request, queryset):
        executor = Executor()
        for message in queryset:
            result = executor.execute_message(message, trigger_kind=TRIGGER_MANUAL)
            if result.status == STATUS_ERROR:
                self.message_user(request, f"{message.name}: {result.error}", messages.ERROR)
            else:
                self.message_user(request, f"{message.name}: {result.status}", messages.SUCCESS)
    run_now.short_description = 'Run selected messages now'
