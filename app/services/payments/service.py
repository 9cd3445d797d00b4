"""
PaymentWebhookService: the payment confirmation pipeline.

verify signature -> normalize event -> resolve payment -> guarded status update
-> entitlement activation -> outbox rows, all in one transaction. Outbox rows
are handed to the worker only after commit.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.session import SessionLocal
from app.models.payment import Payment
from app.services.audit.service import AuditService
from app.services.entitlements import (
    EntitlementOutcome,
    get_activator,
    parse_product_type,
)
from app.services.notifications.dispatcher import PAYMENT_CONFIRMATION, PAYMENT_FAILURE
from app.services.notifications.outbox import OutboxService
from app.services.payments.errors import NotFoundError, PersistenceError, WebhookError
from app.services.payments.events import NormalizedEvent, PaymentStatus, normalize_event, parse_body
from app.services.payments.signature import verify_signature
from app.utils.metrics import (
    entitlement_activations_total,
    payment_transitions_total,
    payment_webhook_duration_seconds,
    payment_webhooks_total,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusTransition:
    previous: PaymentStatus
    current: PaymentStatus
    applied: bool

    @property
    def is_new_completion(self) -> bool:
        return self.applied and self.current is PaymentStatus.COMPLETED and self.previous is not PaymentStatus.COMPLETED

    @property
    def is_new_outcome(self) -> bool:
        """Genuine move into a terminal status; drives the outcome email."""
        return self.applied and self.current.is_terminal and self.previous is not self.current


@dataclass
class WebhookResult:
    payment_id: str
    status: PaymentStatus
    transition: StatusTransition
    outcome: EntitlementOutcome | None = None
    outbox_ids: list[str] = field(default_factory=list)

    def to_response(self) -> dict:
        return {"success": True, "status": self.status.value, "paymentId": self.payment_id}


def _as_status(value: str | None) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        return PaymentStatus.PENDING


class PaymentWebhookService:
    """
    Stateless per call. The session factory, settings and the post-commit
    dispatcher are injected so tests can run against SQLite with no broker.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        settings: Settings | None = None,
        dispatch: Callable[[list[str]], None] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.dispatch = dispatch
        self.now = now or (lambda: datetime.now(timezone.utc))

    def handle(self, raw_body: bytes, signature: str | None) -> WebhookResult:
        start = time.time()
        try:
            verify_signature(raw_body, signature, self.settings.payment_webhook_secret)
            event = normalize_event(parse_body(raw_body))
            result = self._apply(event)
        except WebhookError as e:
            payment_webhooks_total.labels(outcome=type(e).__name__).inc()
            raise
        finally:
            payment_webhook_duration_seconds.observe(time.time() - start)

        outcome = result.status.value if result.transition.applied else "duplicate"
        payment_webhooks_total.labels(outcome=outcome).inc()
        if result.outbox_ids:
            self._dispatch(result.outbox_ids)
        return result

    def _dispatch(self, outbox_ids: list[str]) -> None:
        dispatch = self.dispatch
        if dispatch is None:
            from app.workers.tasks.notifications import enqueue_deliveries
            dispatch = enqueue_deliveries
        try:
            dispatch(outbox_ids)
        except Exception:
            # Rows stay pending; the outbox sweep picks them up.
            logger.exception("notification_dispatch_failed", extra={"outbox_id": ",".join(outbox_ids)})

    def _apply(self, event: NormalizedEvent) -> WebhookResult:
        db = self.session_factory()
        try:
            result = self._apply_in_session(db, event)
            db.commit()
            return result
        except WebhookError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("payment_webhook_db_error", extra={"reference": event.reference})
            raise PersistenceError(f"Failed to persist payment update: {e.__class__.__name__}")
        finally:
            db.close()

    def _apply_in_session(self, db: Session, event: NormalizedEvent) -> WebhookResult:
        payment = self._find_payment(db, event.reference)
        if payment is None:
            logger.warning("payment_not_found", extra={"reference": event.reference})
            raise NotFoundError("Payment not found")

        now = self.now()
        transition = self._update_status(db, payment, event, now)
        result = WebhookResult(payment_id=payment.id, status=event.status, transition=transition)

        if transition.is_new_completion:
            product_type = parse_product_type(payment.product_type)
            activator = get_activator(product_type, db, now=now, settings=self.settings)
            result.outcome = activator.activate(payment)
            entitlement_activations_total.labels(product_type=product_type.value).inc()
            logger.info(
                "entitlement_activated",
                extra={"payment_id": payment.id, "user_id": payment.user_id, "product_type": product_type.value},
            )

        outbox = OutboxService(db, self.settings)
        if result.outcome is not None:
            for intent in result.outcome.notifications:
                row = outbox.enqueue(intent.kind, intent.payload, recipient=intent.recipient, payment_id=payment.id)
                result.outbox_ids.append(row.id)

        if transition.is_new_outcome:
            kind = PAYMENT_CONFIRMATION if transition.current is PaymentStatus.COMPLETED else PAYMENT_FAILURE
            row = outbox.enqueue(
                kind,
                {
                    "user_id": payment.user_id,
                    "payment_id": payment.id,
                    "amount": str(payment.amount),
                    "currency": payment.currency,
                    "product_type": payment.product_type,
                },
                payment_id=payment.id,
            )
            result.outbox_ids.append(row.id)

        AuditService(db).record_delivery(
            payment.id,
            event.event_name,
            transition.applied,
            {
                "reference": event.reference,
                "raw_status": event.raw_status,
                "previous_status": transition.previous.value,
                "status": event.status.value,
                "transaction_id": event.transaction_id,
                "granted": result.outcome.granted if result.outcome else [],
            },
        )
        return result

    def _find_payment(self, db: Session, reference: str) -> Payment | None:
        payment = db.query(Payment).filter(Payment.id == reference).with_for_update().one_or_none()
        if payment is None:
            payment = (
                db.query(Payment)
                .filter(Payment.transaction_id == reference)
                .order_by(Payment.created_at.desc())
                .with_for_update()
                .first()
            )
        return payment

    def _update_status(
        self, db: Session, payment: Payment, event: NormalizedEvent, now: datetime
    ) -> StatusTransition:
        """
        Conditional update: a completed payment is never rewritten. rowcount tells
        a genuine transition apart from a redelivery or a lost race.
        """
        previous = _as_status(payment.status)
        values = {"status": event.status.value, "updated_at": now}
        if event.transaction_id:
            values["transaction_id"] = event.transaction_id

        res = db.execute(
            sa_update(Payment)
            .where(Payment.id == payment.id, Payment.status != PaymentStatus.COMPLETED.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        applied = res.rowcount == 1
        db.refresh(payment)

        if not applied:
            if event.status is PaymentStatus.COMPLETED:
                logger.info("payment_already_completed", extra={"payment_id": payment.id, "reference": event.reference})
            else:
                logger.warning(
                    "payment_status_regression_ignored",
                    extra={"payment_id": payment.id, "previous_status": previous.value, "status": event.status.value},
                )
        else:
            payment_transitions_total.labels(previous=previous.value, current=event.status.value).inc()
            logger.info(
                "payment_status_updated",
                extra={
                    "payment_id": payment.id,
                    "previous_status": previous.value,
                    "status": event.status.value,
                    "transaction_id": event.transaction_id,
                },
            )
        return StatusTransition(previous=previous, current=event.status, applied=applied)
