"""
Registry of entitlement activators, one per ProductType.
"""
import logging

from app.services.entitlements.academy import AcademyActivator
from app.services.entitlements.base import EntitlementActivator, ProductType
from app.services.entitlements.live_class import ClassPurchaseActivator
from app.services.entitlements.subscription import SubscriptionActivator

logger = logging.getLogger(__name__)


ACTIVATORS: dict[ProductType, type[EntitlementActivator]] = {
    ProductType.SUBSCRIPTION: SubscriptionActivator,
    ProductType.ACADEMY: AcademyActivator,
    ProductType.CLASS: ClassPurchaseActivator,
}

_unhandled = set(ProductType) - set(ACTIVATORS)
if _unhandled:
    raise RuntimeError(f"No entitlement activator for: {sorted(p.value for p in _unhandled)}")


def get_activator(product_type: ProductType, db, **kwargs) -> EntitlementActivator:
    activator_class = ACTIVATORS[product_type]
    return activator_class(db, **kwargs)
