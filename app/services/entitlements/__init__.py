"""
Entitlement activation: subscription, academy enrollment, class purchase.
"""
from .base import (
    ActivationError,
    EntitlementActivator,
    EntitlementOutcome,
    NotificationIntent,
    ProductType,
    parse_product_type,
)
from .factory import ACTIVATORS, get_activator

__all__ = [
    "ActivationError",
    "EntitlementActivator",
    "EntitlementOutcome",
    "NotificationIntent",
    "ProductType",
    "parse_product_type",
    "ACTIVATORS",
    "get_activator",
]
