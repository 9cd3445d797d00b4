"""
NotificationDispatcher: delivers one outbox row.

Kinds:
- payment_confirmation / payment_failure: outcome email to the payer's account email
- class_join: join link for a live class seat (purchaser email, else account email)
- tutor_enrollment: one email per tutor teaching any of the enrolled courses
"""
import logging

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.models.notification_outbox import NotificationOutbox
from app.services.email.client import EmailClient
from app.services.entitlements.academy import TUTOR_ENROLLMENT
from app.services.entitlements.base import ActivationError, parse_product_type
from app.services.entitlements.live_class import CLASS_JOIN
from app.services.notifications import templates
from app.services.notifications.outbox import OutboxService
from app.services.payments.errors import NotificationError
from app.services.tutors.service import TutorService
from app.services.users.service import UserService
from app.utils.currency import format_amount
from app.utils.metrics import notifications_total

logger = logging.getLogger(__name__)

PAYMENT_CONFIRMATION = "payment_confirmation"
PAYMENT_FAILURE = "payment_failure"


class NotificationDispatcher:
    def __init__(
        self,
        db: Session,
        email_client: EmailClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.email = email_client or EmailClient(self.settings)
        self.outbox = OutboxService(db, self.settings)
        self._handlers = {
            PAYMENT_CONFIRMATION: self._send_payment_outcome,
            PAYMENT_FAILURE: self._send_payment_outcome,
            CLASS_JOIN: self._send_class_join,
            TUTOR_ENROLLMENT: self._send_tutor_enrollment,
        }

    def deliver(self, outbox_id: str) -> bool:
        """Try to deliver one pending row. Returns True when it was sent by this call."""
        row = self.outbox.get_pending_for_update(outbox_id)
        if row is None:
            return False

        try:
            self._send(row)
        except NotificationError as e:
            self.outbox.mark_attempt_failed(row, str(e), retryable=e.retryable)
            notifications_total.labels(kind=row.kind, status=row.status if row.status == "failed" else "retry").inc()
            return False
        except Exception as e:
            logger.exception("notification_unexpected_error", extra={"outbox_id": row.id, "kind": row.kind})
            self.outbox.mark_attempt_failed(row, repr(e))
            notifications_total.labels(kind=row.kind, status=row.status if row.status == "failed" else "retry").inc()
            return False

        self.outbox.mark_sent(row)
        notifications_total.labels(kind=row.kind, status="sent").inc()
        logger.info("notification_sent", extra={"outbox_id": row.id, "kind": row.kind, "payment_id": row.payment_id})
        return True

    def _send(self, row: NotificationOutbox) -> None:
        handler = self._handlers.get(row.kind)
        if handler is None:
            raise NotificationError(f"Unknown notification kind: {row.kind}", retryable=False)
        handler(row)

    def _recipient(self, row: NotificationOutbox, user_id: str | None) -> str:
        recipient = row.recipient or (UserService(self.db).get_email(user_id) if user_id else None)
        if not recipient:
            raise NotificationError(f"No email address for user {user_id}", retryable=False)
        return recipient

    def _send_payment_outcome(self, row: NotificationOutbox) -> None:
        payload = row.payload
        user_id = payload.get("user_id")
        to = self._recipient(row, user_id)
        try:
            label = parse_product_type(payload.get("product_type")).label(self.settings)
        except ActivationError:
            label = "Purchase"
        amount = format_amount(payload.get("amount", 0), payload.get("currency") or "ZMW")
        name = UserService(self.db).get_display_name(user_id) if user_id else None
        if row.kind == PAYMENT_CONFIRMATION:
            subject, html = templates.payment_confirmation(amount, label, payload.get("payment_id", ""), name)
        else:
            subject, html = templates.payment_failure(amount, label, payload.get("payment_id", ""), name)
        self.email.send(to, subject, html)

    def _send_class_join(self, row: NotificationOutbox) -> None:
        payload = row.payload
        to = self._recipient(row, payload.get("user_id"))
        subject, html = templates.class_join(
            payload.get("class_title") or "Live Class",
            payload.get("scheduled_at"),
            payload["join_url"],
        )
        self.email.send(to, subject, html)

    def _send_tutor_enrollment(self, row: NotificationOutbox) -> None:
        payload = row.payload
        course_ids = payload.get("course_ids") or []
        tutors = TutorService(self.db).tutors_for_courses(course_ids)
        if not tutors:
            logger.info("tutor_enrollment_no_tutors", extra={"outbox_id": row.id})
            return

        users = UserService(self.db)
        student_id = payload.get("student_user_id")
        student_name = users.get_display_name(student_id) or "A new student"
        student_email = users.get_email(student_id)

        notified = list(payload.get("notified") or [])
        errors: list[NotificationError] = []
        for tutor in tutors:
            if tutor.email in notified:
                continue
            subject, html = templates.tutor_enrollment(tutor.name, student_name, student_email, tutor.course_names)
            try:
                self.email.send(tutor.email, subject, html)
                notified.append(tutor.email)
            except NotificationError as e:
                errors.append(e)

        # Reassign so the JSON column is flagged dirty; retries skip tutors already emailed.
        row.payload = {**payload, "notified": notified}
        if errors:
            raise NotificationError(
                f"{len(errors)} tutor email(s) failed: {errors[0]}",
                retryable=any(e.retryable for e in errors),
            )
