class MessagingError(Exception):
    """Base class for per-schedule failures recorded as executions."""

    error_kind = 'error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.details = details


class ScheduleParseError(MessagingError, ValueError):
    error_kind = 'schedule_parse'


class QueryError(MessagingError):
    error_kind = 'query'


class RenderError(MessagingError):
    error_kind = 'render'


class UnknownConsumerError(MessagingError):
    error_kind = 'unknown_consumer'


class DeliveryError(MessagingError):
    error_kind = 'delivery'


class ExecutionTimeoutError(MessagingError):
    error_kind = 'timeout'


class RecorderError(Exception):
    """Audit write failed. Never caught per schedule: it aborts the batch."""


class EmptyRenderSkip(Exception):
    """Not an error: the template had nothing to say this cycle."""

    def __init__(self, reason='Template rendered empty (no content to send)', variables=None):
        super().__init__(reason)
        self.reason = reason
        self.variables = variables or {}
