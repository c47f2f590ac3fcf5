from django.apps import AppConfig


class ScheduledMessagesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'scheduled_messages'
    verbose_name = 'Scheduled messages'
