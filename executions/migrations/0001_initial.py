import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('scheduled_messages', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ScheduledMessageExecution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('executed_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('success', 'Success'), ('error', 'Error'), ('skipped', 'Skipped')], max_length=20)),
                ('trigger_kind', models.CharField(choices=[('scheduled', 'Scheduled'), ('manual', 'Manual')], default='scheduled', max_length=20)),
                ('channel_type', models.CharField(max_length=20)),
                ('result_payload', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('scheduled_message', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='executions', to='scheduled_messages.scheduledmessage')),
            ],
            options={
                'verbose_name': 'Scheduled message execution',
                'ordering': ['-executed_at', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='SentNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sent_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('sent_on', models.DateField()),
                ('scheduled_message', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sent_notifications', to='scheduled_messages.scheduledmessage')),
            ],
            options={
                'verbose_name': 'Sent notification',
                'constraints': [models.UniqueConstraint(fields=('scheduled_message', 'sent_on'), name='one_notification_per_message_per_day')],
            },
        ),
    ]
