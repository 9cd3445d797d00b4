"""
Base classes and types for entitlement activation.
One activator per product type; all run inside the caller's transaction
and only after a confirmed transition of the payment into `completed`.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.models.payment import Payment
from app.services.payments.errors import PersistenceError


class ProductType(str, Enum):
    SUBSCRIPTION = "subscription"
    ACADEMY = "academy"
    CLASS = "class"

    def label(self, settings: Settings | None = None) -> str:
        """Human-readable product name used in payment emails."""
        if self is ProductType.SUBSCRIPTION:
            cfg = settings or default_settings
            months = cfg.subscription_period_months
            period = f"{months} Month" if months == 1 else f"{months} Months"
            return f"{cfg.subscription_plan.title()} Subscription ({period})"
        return _PRODUCT_LABELS[self]


_PRODUCT_LABELS = {
    ProductType.ACADEMY: "Lumina Academy Enrollment",
    ProductType.CLASS: "Class Purchase",
}


class ActivationError(PersistenceError):
    """The payment cannot be turned into an entitlement (unknown product, missing metadata)."""


def parse_product_type(value: str | None) -> ProductType:
    try:
        return ProductType((value or "").strip().lower())
    except ValueError:
        raise ActivationError(f"Unknown product type: {value!r}")


@dataclass
class NotificationIntent:
    """A notification to deliver after commit. recipient=None means: account email of user_id."""
    kind: str
    payload: dict[str, Any]
    recipient: str | None = None


@dataclass
class EntitlementOutcome:
    product_type: ProductType
    granted: list[str] = field(default_factory=list)
    notifications: list[NotificationIntent] = field(default_factory=list)


class EntitlementActivator(ABC):
    """Base class for product-specific activators."""

    product_type: ProductType

    def __init__(
        self,
        db: Session,
        now: datetime | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.now = now or datetime.now(timezone.utc)
        self.settings = settings or default_settings

    @abstractmethod
    def activate(self, payment: Payment) -> EntitlementOutcome:
        """Grant the entitlement paid for by `payment`. Raises ActivationError or SQLAlchemyError."""
        pass
