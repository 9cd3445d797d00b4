from pydantic import BaseModel, ConfigDict


class ProviderEventData(BaseModel):
    """Fields the pipeline reads from a provider payload (nested `data` or top level)."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    reference: str | None = None
    transaction_reference: str | None = None
    transaction_id: str | None = None
    status: str | None = None


class EnvelopedEvent(BaseModel):
    """`{"event"|"type": "...", "data": {...}}`"""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    event: str | None = None
    type: str | None = None
    data: ProviderEventData
    reference: str | None = None
    transaction_id: str | None = None
    status: str | None = None


class FlatEvent(ProviderEventData):
    """`{"reference": "...", "status": "...", "transaction_id": "..."}`"""

    event: str | None = None
    type: str | None = None


class WebhookAck(BaseModel):
    success: bool = True
    status: str
    paymentId: str
