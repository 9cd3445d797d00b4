"""
Webhook pipeline errors. Each abort maps to one HTTP status; every abort
happens before the first write.
"""


class WebhookError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(WebhookError):
    """Webhook secret is not configured."""
    status_code = 500


class AuthenticityError(WebhookError):
    """Signature header missing or not matching the body."""
    status_code = 401


class MalformedEventError(WebhookError):
    """Body cannot be correlated to a payment (no reference, wrong shape)."""
    status_code = 400


class NotFoundError(WebhookError):
    status_code = 404


class PersistenceError(WebhookError):
    """Store failure during the status update / activation unit of work."""
    status_code = 500


class DeadlineExceededError(WebhookError):
    """Processing budget exhausted; the provider will retry."""
    status_code = 503


class NotificationError(Exception):
    """Outbound notification failed. Never surfaced to the webhook caller."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable
