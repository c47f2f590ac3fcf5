import pytz
from django import forms
from django.template import TemplateSyntaxError
from django.utils.timezone import now

from schedules.calculator import next_run
from schedules.validators import validate_schedule_expression
from .models import ScheduledMessage
from .rendering import TemplateRenderer

TIMEZONE_CHOICES = [(name, name) for name in pytz.common_timezones]


class ScheduledMessageForm(forms.ModelForm):
    template = forms.CharField(
        strip=False,
        widget=forms.Textarea(attrs={
            'class': 'form-control',
            'placeholder': 'Happy Birthday {{ birthday.mention }}!',
            'rows': 6
        })
    )
    schedule_expression = forms.CharField(
        max_length=200,
        validators=[validate_schedule_expression],
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'every day at 8am'})
    )
    timezone = forms.ChoiceField(choices=TIMEZONE_CHOICES, widget=forms.Select(attrs={'class': 'form-control'}))

    class Meta:
        model = ScheduledMessage
        fields = [
            'name', 'description', 'template', 'schedule_expression', 'timezone',
            'data_query', 'channel_type', 'destination_id', 'enabled',
        ]

    def clean_template(self):
        template = self.cleaned_data['template']
        if not template.strip():
            raise forms.ValidationError('Template cannot be blank.')
        try:
            TemplateRenderer().engine.from_string(template)
        except TemplateSyntaxError as e:
            raise forms.ValidationError(f'Template error: {e}')
        return template

    def clean(self):
        cleaned_data = super().clean()
        expression = cleaned_data.get('schedule_expression')
        timezone = cleaned_data.get('timezone')
        if expression and timezone:
            self.next_run_preview = next_run(expression, timezone, now())
        return cleaned_data
