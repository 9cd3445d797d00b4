import logging

from sqlalchemy.exc import IntegrityError

from app.models.class_purchase import ClassPurchase
from app.models.payment import Payment
from app.services.entitlements.base import (
    ActivationError,
    EntitlementActivator,
    EntitlementOutcome,
    NotificationIntent,
    ProductType,
)
from app.services.live_classes.service import LiveClassService

logger = logging.getLogger(__name__)

CLASS_JOIN = "class_join"


class ClassPurchaseActivator(EntitlementActivator):
    """
    Insert one ClassPurchase for the payment. Live seats also get a join-link
    email to the purchaser (the email captured at checkout, else the account email).
    """

    product_type = ProductType.CLASS

    def activate(self, payment: Payment) -> EntitlementOutcome:
        class_id = payment.class_id
        if not class_id:
            raise ActivationError(f"Class payment {payment.id} has no classId")

        summary = LiveClassService(self.db).get_summary(class_id)
        purchase_type = payment.class_purchase_type

        purchase = ClassPurchase(
            user_id=payment.user_id,
            class_id=class_id,
            purchase_type=purchase_type,
            amount=payment.amount,
            payment_id=payment.id,
            purchaser_email=payment.purchaser_email,
            purchased_at=self.now,
        )
        try:
            with self.db.begin_nested():
                self.db.add(purchase)
        except IntegrityError:
            logger.warning("class_purchase_duplicate", extra={"payment_id": payment.id, "class_id": class_id})
            return EntitlementOutcome(product_type=self.product_type)

        logger.info(
            "class_purchase_recorded",
            extra={"payment_id": payment.id, "user_id": payment.user_id, "class_id": class_id},
        )

        notifications = []
        if purchase_type == "live":
            notifications.append(
                NotificationIntent(
                    kind=CLASS_JOIN,
                    recipient=payment.purchaser_email,
                    payload={
                        "user_id": payment.user_id,
                        "class_id": class_id,
                        "class_title": summary.title if summary else "Live Class",
                        "scheduled_at": summary.scheduled_at.isoformat() if summary and summary.scheduled_at else None,
                        "join_url": self._join_url(class_id, summary.room_url if summary else None),
                    },
                )
            )
        return EntitlementOutcome(product_type=self.product_type, granted=[purchase.id], notifications=notifications)

    def _join_url(self, class_id: str, room_url: str | None) -> str:
        if room_url:
            return room_url
        return f"{self.settings.app_base_url.rstrip('/')}/live-class/{class_id}"
