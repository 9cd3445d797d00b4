"""
HMAC-SHA256 verification of provider webhooks (Lenco `X-Lenco-Signature`).
The digest is computed over the raw request bytes, before any JSON parsing.
"""
import hashlib
import hmac
import logging

from app.services.payments.errors import AuthenticityError, ConfigurationError

logger = logging.getLogger(__name__)


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None) -> None:
    """
    Raise unless `signature` is the hex HMAC of `raw_body` under `secret`.

    A missing secret is a configuration fault, never a reason to skip the check.
    """
    if not secret:
        logger.critical("payment_webhook_secret_missing")
        raise ConfigurationError("Webhook secret is not configured")

    if not signature:
        logger.warning("payment_webhook_signature_missing")
        raise AuthenticityError("Missing signature")

    expected = compute_signature(raw_body, secret)
    if not hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8")):
        logger.warning("payment_webhook_signature_mismatch")
        raise AuthenticityError("Invalid signature")
