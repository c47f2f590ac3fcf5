import logging

import requests
from django.conf import settings
from django.utils import timezone

from .base import BaseConsumer, DeliveryResult

logger = logging.getLogger(__name__)

# Discord rejects message content above this length
MAX_CONTENT_LENGTH = 2000

STATUS_ERRORS = {
    401: ('unauthorized', 'Unauthorized'),
    403: ('forbidden', 'Forbidden'),
    404: ('not_found', 'Not Found'),
    429: ('rate_limited', 'Rate limited'),
}


class DiscordConsumer(BaseConsumer):
    channel_type = 'discord'

    def __init__(self, bot_token=None, base_url=None, timeout=None):
        self.bot_token = bot_token if bot_token is not None else settings.DISCORD_BOT_TOKEN
        self.base_url = (base_url or settings.DISCORD_API_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.SCHEDULED_MESSAGES['DISCORD_TIMEOUT']

    def deliver(self, text, destination_id):
        if not self.bot_token:
            return DeliveryResult.failure(
                'configuration', 'Discord bot token not configured',
                'Set DISCORD_BOT_TOKEN to deliver Discord messages', destination_id,
            )
        if len(text) > MAX_CONTENT_LENGTH:
            return DeliveryResult.failure(
                'content_too_long', 'Message too long',
                f'Rendered message has {len(text)} characters (limit {MAX_CONTENT_LENGTH})', destination_id,
            )

        url = f"{self.base_url}/channels/{destination_id}/messages"
        try:
            response = requests.post(url, json={'content': text}, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Discord message delivery failed for channel {destination_id}: {e}")
            return DeliveryResult.failure('network_error', e.__class__.__name__, str(e), destination_id)

        body = self._json(response)
        if 200 <= response.status_code < 300:
            return DeliveryResult(success=True, details={
                'message_id': body.get('id'),
                'channel_id': destination_id,
                'sent_at': timezone.now().isoformat(),
            })

        error_kind, error = STATUS_ERRORS.get(response.status_code, ('api_error', f'HTTP {response.status_code}'))
        message = body.get('message') or getattr(response, 'reason', None) or 'Unknown error'
        extra = {'status_code': response.status_code}
        if response.status_code == 429:
            extra['retry_after'] = body.get('retry_after') or response.headers.get('Retry-After')
        logger.warning(f"Discord API error for channel {destination_id}: {response.status_code} - {message}")
        return DeliveryResult.failure(error_kind, error, message, destination_id, **extra)

    def _headers(self):
        return {
            'Authorization': f'Bot {self.bot_token}',
            'Content-Type': 'application/json',
            'User-Agent': 'DiscordBot (community-scheduler, 1.0)',
        }

    @staticmethod
    def _json(response):
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
