from .base import BaseConsumer, DeliveryResult
from .registry import ConsumerRegistry, build_registry

__all__ = ['BaseConsumer', 'DeliveryResult', 'ConsumerRegistry', 'build_registry']
