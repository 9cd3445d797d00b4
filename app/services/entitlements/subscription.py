import logging

from sqlalchemy.exc import IntegrityError

from app.models.payment import Payment
from app.models.subscription import Subscription
from app.services.entitlements.base import EntitlementActivator, EntitlementOutcome, ProductType
from app.utils.dates import add_months

logger = logging.getLogger(__name__)


class SubscriptionActivator(EntitlementActivator):
    """Upsert the user's single subscription row: active Pro plan for one renewal period."""

    product_type = ProductType.SUBSCRIPTION

    def activate(self, payment: Payment) -> EntitlementOutcome:
        expires_at = add_months(self.now, self.settings.subscription_period_months)
        subscription = self._get_for_update(payment.user_id)
        if subscription is None:
            try:
                with self.db.begin_nested():
                    subscription = Subscription(user_id=payment.user_id)
                    self._apply(subscription, expires_at)
                    self.db.add(subscription)
            except IntegrityError:
                # Concurrent insert for the same user won the race; update that row instead.
                subscription = self._get_for_update(payment.user_id)
                self._apply(subscription, expires_at)
        else:
            self._apply(subscription, expires_at)
        self.db.flush()

        logger.info(
            "subscription_activated",
            extra={
                "payment_id": payment.id,
                "user_id": payment.user_id,
                "status": subscription.status,
            },
        )
        return EntitlementOutcome(product_type=self.product_type, granted=[subscription.id])

    def _get_for_update(self, user_id: str) -> Subscription | None:
        return (
            self.db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .with_for_update()
            .one_or_none()
        )

    def _apply(self, subscription: Subscription, expires_at) -> None:
        subscription.plan = self.settings.subscription_plan
        subscription.status = "active"
        subscription.started_at = self.now
        subscription.expires_at = expires_at
