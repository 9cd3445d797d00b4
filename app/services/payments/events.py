"""
Normalization of provider webhook payloads.

Two payload shapes are accepted:
- enveloped: {"event" | "type": name, "data": {reference, status, transaction_id, ...}}
- flat:      {reference | transaction_reference, status, transaction_id, ...}
Everything is narrowed to one NormalizedEvent; anything else is rejected.
"""
import json
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from app.schemas.payments import EnvelopedEvent, FlatEvent
from app.services.payments.errors import MalformedEventError


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


_COMPLETED_STATUSES = frozenset({"success", "successful", "completed"})
_FAILED_STATUSES = frozenset({"failed", "declined", "cancelled"})


def map_status(raw_status: str | None) -> PaymentStatus:
    """Provider status string -> canonical status. Unknown or missing is pending."""
    value = (raw_status or "").strip().lower()
    if value in _COMPLETED_STATUSES:
        return PaymentStatus.COMPLETED
    if value in _FAILED_STATUSES:
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


@dataclass(frozen=True)
class NormalizedEvent:
    reference: str
    status: PaymentStatus
    raw_status: str | None = None
    transaction_id: str | None = None
    event_name: str | None = None


def _first(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


def parse_body(raw_body: bytes) -> dict:
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise MalformedEventError("Body is not valid JSON")
    if not isinstance(body, dict):
        raise MalformedEventError("Body must be a JSON object")
    return body


def normalize_event(body: dict) -> NormalizedEvent:
    """Narrow a decoded payload to NormalizedEvent or raise MalformedEventError."""
    try:
        if body.get("data") is not None:
            if not isinstance(body["data"], dict):
                raise MalformedEventError("Event data must be an object")
            enveloped = EnvelopedEvent.model_validate(body)
            data = enveloped.data
            reference = _first(data.reference, data.transaction_reference, enveloped.reference)
            transaction_id = _first(data.transaction_id, enveloped.transaction_id)
            raw_status = _first(data.status, enveloped.status)
            event_name = _first(enveloped.event, enveloped.type)
        else:
            flat = FlatEvent.model_validate(body)
            reference = _first(flat.reference, flat.transaction_reference)
            transaction_id = _first(flat.transaction_id)
            raw_status = _first(flat.status)
            event_name = _first(flat.event, flat.type)
    except ValidationError as e:
        raise MalformedEventError(f"Unsupported payload shape: {e.error_count()} invalid field(s)")

    if not reference:
        raise MalformedEventError("Missing payment reference")

    return NormalizedEvent(
        reference=reference,
        status=map_status(raw_status),
        raw_status=raw_status,
        transaction_id=transaction_id,
        event_name=event_name,
    )
