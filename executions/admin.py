from django.contrib import admin

from .models import ScheduledMessageExecution, SentNotification


@admin.register(ScheduledMessageExecution)
class ScheduledMessageExecutionAdmin(admin.ModelAdmin):
    list_display = ('scheduled_message', 'status', 'trigger_kind', 'channel_type', 'executed_at')
    list_filter = ('status', 'trigger_kind', 'channel_type', 'executed_at')
    search_fields = ('scheduled_message__name',)
    readonly_fields = ('scheduled_message', 'executed_at', 'status', 'trigger_kind', 'channel_type', 'result_payload', 'created_at', 'updated_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(SentNotification)
class SentNotificationAdmin(admin.ModelAdmin):
    list_display = ('scheduled_message', 'sent_on', 'sent_at')
    list_filter = ('sent_on',)
    search_fields = ('scheduled_message__name',)
