import django.db.models.deletion
import scheduled_messages.models
import schedules.validators
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ScheduledMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('description', models.TextField(blank=True)),
                ('template', models.TextField()),
                ('schedule_expression', models.CharField(help_text="e.g. 'every day at 8am', 'every 2 hours', 'on monday at 9:30am'", max_length=200, validators=[schedules.validators.validate_schedule_expression])),
                ('data_query', models.CharField(blank=True, choices=[('birthdays_today', "Today's birthdays"), ('birthdays', 'All member birthdays')], max_length=50)),
                ('channel_type', models.CharField(choices=[('discord', 'Discord')], default='discord', max_length=20)),
                ('timezone', models.CharField(default=scheduled_messages.models.default_timezone, max_length=64, validators=[schedules.validators.validate_timezone])),
                ('enabled', models.BooleanField(default=True)),
                ('destination_id', models.CharField(help_text='Discord channel ID', max_length=64)),
                ('next_due_at', models.DateTimeField(blank=True, editable=False, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scheduled_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
    ]
