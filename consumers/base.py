from dataclasses import dataclass, field


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    details: dict = field(default_factory=dict)

    @classmethod
    def failure(cls, error_kind, error, message, channel_id, **extra):
        details = {
            'error_kind': error_kind,
            'error': error,
            'message': message,
            'channel_id': channel_id,
        }
        details.update(extra)
        return cls(success=False, details=details)

    def as_dict(self):
        return {'success': self.success, 'details': dict(self.details)}


class BaseConsumer:
    """Sends already-rendered text to one destination. Never retries, never raises."""

    channel_type = None

    def deliver(self, text, destination_id):
        raise NotImplementedError(f'{type(self).__name__} must implement deliver()')
