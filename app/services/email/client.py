"""
Email client for the Resend HTTP API using httpx sync client.
Sync on purpose: it is called from Celery workers.
"""
import logging
import time

import httpx
import pybreaker

from app.core.config import Settings, settings as default_settings
from app.services.circuit_breaker import get_circuit_breaker
from app.services.payments.errors import NotificationError
from app.utils.metrics import email_requests_total, email_request_duration_seconds

logger = logging.getLogger(__name__)


class EmailClient:
    """
    Sends one HTML email per call. Every failure is raised as NotificationError;
    4xx answers other than 429 are not retryable.
    """

    def __init__(self, settings: Settings | None = None, breaker: pybreaker.CircuitBreaker | None = None) -> None:
        self._settings = settings or default_settings
        self._breaker = breaker
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._settings.http_client_timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def send(self, to: str, subject: str, html: str) -> str | None:
        """Send email; returns provider message id."""
        if not self._settings.resend_api_key:
            raise NotificationError("Email provider is not configured", retryable=False)

        start = time.time()
        try:
            breaker = self._breaker or get_circuit_breaker("email")
            resp = breaker.call(self._post, to, subject, html)
            if resp.is_error:
                # Permanent rejection (bad address, bad payload): kept outside the breaker.
                resp.raise_for_status()
            email_requests_total.labels(status="success").inc()
            return (resp.json() if resp.content else {}).get("id")
        except pybreaker.CircuitBreakerError:
            email_requests_total.labels(status="circuit_open").inc()
            raise NotificationError("Email provider circuit is open")
        except httpx.HTTPStatusError as e:
            email_requests_total.labels(status="error").inc()
            status_code = e.response.status_code
            retryable = status_code == 429 or status_code >= 500
            logger.warning("email_send_rejected", extra={"status_code": status_code, "error": e.response.text[:500]})
            raise NotificationError(f"Email provider answered {status_code}", retryable=retryable)
        except httpx.HTTPError as e:
            email_requests_total.labels(status="error").inc()
            logger.warning("email_send_transport_error", extra={"error": str(e)})
            raise NotificationError(f"Email provider unreachable: {e}")
        finally:
            email_request_duration_seconds.observe(time.time() - start)

    def _post(self, to: str, subject: str, html: str) -> httpx.Response:
        """Raises only for answers that mean the provider is unhealthy (429, 5xx)."""
        resp = self.client.post(
            self._settings.resend_api_url,
            headers={"Authorization": f"Bearer {self._settings.resend_api_key}"},
            json={
                "from": self._settings.email_sender,
                "to": [to],
                "subject": subject,
                "html": html,
            },
        )
        if resp.status_code == 429 or resp.status_code >= 500:
            resp.raise_for_status()
        return resp
