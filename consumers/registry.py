import functools
import logging
import time

from django.conf import settings
from django.utils.module_loading import import_string

from scheduled_messages.exceptions import UnknownConsumerError
from .base import DeliveryResult

logger = logging.getLogger(__name__)


def log_delivery(deliver, channel_type):
    @functools.wraps(deliver)
    def wrapper(text, destination_id):
        logger.info(f"Delivering message to {channel_type} channel {destination_id}")
        started = time.monotonic()
        result = deliver(text, destination_id)
        elapsed = time.monotonic() - started
        logger.info(f"Delivery to {channel_type} channel {destination_id} finished: success={result.success} ({elapsed:.2f}s)")
        return result
    return wrapper


def catch_delivery_errors(deliver, channel_type):
    @functools.wraps(deliver)
    def wrapper(text, destination_id):
        try:
            return deliver(text, destination_id)
        except Exception as e:
            logger.exception(f"{channel_type} consumer raised while delivering to {destination_id}")
            return DeliveryResult.failure('exception', e.__class__.__name__, str(e), destination_id)
    return wrapper


# outermost first
DEFAULT_MIDDLEWARE = (log_delivery, catch_delivery_errors)


class ConsumerRegistry:
    """Channel type -> deliver callable, each wrapped once with the middleware chain."""

    def __init__(self, middleware=DEFAULT_MIDDLEWARE):
        self._middleware = tuple(middleware)
        self._handlers = {}

    def register(self, channel_type, consumer):
        deliver = consumer.deliver
        for middleware in reversed(self._middleware):
            deliver = middleware(deliver, channel_type)
        self._handlers[channel_type] = deliver

    def resolve(self, channel_type):
        try:
            return self._handlers[channel_type]
        except KeyError:
            raise UnknownConsumerError(f'Unknown consumer type: {channel_type}', channel_type=channel_type) from None

    def channel_types(self):
        return sorted(self._handlers)

    def __contains__(self, channel_type):
        return channel_type in self._handlers


def build_registry(consumers=None, middleware=DEFAULT_MIDDLEWARE):
    """Registry from ``SCHEDULED_MESSAGES['CONSUMERS']`` (channel type -> dotted path or instance)."""
    if consumers is None:
        consumers = settings.SCHEDULED_MESSAGES['CONSUMERS']
    registry = ConsumerRegistry(middleware)
    for channel_type, consumer in consumers.items():
        if isinstance(consumer, str):
            consumer = import_string(consumer)()
        registry.register(channel_type, consumer)
    return registry
