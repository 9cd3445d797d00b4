"""
OutboxService: persistence side of notification delivery.

Rows are added inside the webhook transaction, so an intent exists if and
only if the status change that caused it was committed.
"""
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.models.notification_outbox import NotificationOutbox

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class OutboxService:
    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or default_settings

    def enqueue(
        self,
        kind: str,
        payload: dict,
        recipient: str | None = None,
        payment_id: str | None = None,
    ) -> NotificationOutbox:
        row = NotificationOutbox(
            kind=kind,
            payload=payload,
            recipient=recipient,
            payment_id=payment_id,
            status=STATUS_PENDING,
            attempts=0,
        )
        self.db.add(row)
        self.db.flush()
        logger.info(
            "notification_enqueued",
            extra={"outbox_id": row.id, "kind": kind, "payment_id": payment_id},
        )
        return row

    def get_pending_for_update(self, outbox_id: str) -> NotificationOutbox | None:
        """Lock a pending row; None if another worker holds it or it was already handled."""
        return (
            self.db.query(NotificationOutbox)
            .filter(NotificationOutbox.id == outbox_id, NotificationOutbox.status == STATUS_PENDING)
            .with_for_update(skip_locked=True)
            .one_or_none()
        )

    def due_ids(self, now: datetime | None = None, limit: int | None = None) -> list[str]:
        now = now or datetime.now(timezone.utc)
        rows = (
            self.db.query(NotificationOutbox.id)
            .filter(
                NotificationOutbox.status == STATUS_PENDING,
                NotificationOutbox.next_attempt_at <= now,
            )
            .order_by(NotificationOutbox.created_at)
            .limit(limit or self.settings.outbox_sweep_batch_size)
            .all()
        )
        return [r.id for r in rows]

    def pending_count(self) -> int:
        return self.db.query(NotificationOutbox).filter(NotificationOutbox.status == STATUS_PENDING).count()

    def mark_sent(self, row: NotificationOutbox) -> None:
        row.attempts += 1
        row.status = STATUS_SENT
        row.sent_at = datetime.now(timezone.utc)
        row.last_error = None
        self.db.flush()

    def mark_attempt_failed(self, row: NotificationOutbox, error: str, retryable: bool = True) -> None:
        """Schedule a retry with exponential backoff, or give up."""
        row.attempts += 1
        row.last_error = error[:2000]
        if not retryable or row.attempts >= self.settings.outbox_max_attempts:
            row.status = STATUS_FAILED
            logger.error(
                "notification_failed",
                extra={"outbox_id": row.id, "kind": row.kind, "attempts": row.attempts, "error": error},
            )
        else:
            delay = self.settings.outbox_retry_base_seconds * (2 ** (row.attempts - 1))
            row.next_attempt_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
            logger.warning(
                "notification_retry_scheduled",
                extra={"outbox_id": row.id, "kind": row.kind, "attempts": row.attempts, "error": error},
            )
        self.db.flush()
