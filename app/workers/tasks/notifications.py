"""
Celery tasks: deliver notification outbox rows.

deliver_notification is queued right after the webhook transaction commits;
sweep_notification_outbox (beat, every minute) picks up anything that was not
queued or is due for a retry.
"""
import logging

from app.core.celery_app import celery_app
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.email.client import EmailClient
from app.services.notifications.dispatcher import NotificationDispatcher
from app.services.notifications.outbox import OutboxService
from app.utils.metrics import outbox_pending

logger = logging.getLogger(__name__)

configure_logging()


@celery_app.task(name="app.workers.tasks.notifications.deliver_notification")
def deliver_notification(outbox_id: str) -> dict:
    db = SessionLocal()
    email = EmailClient()
    try:
        sent = NotificationDispatcher(db, email_client=email).deliver(outbox_id)
        db.commit()
        return {"outbox_id": outbox_id, "sent": sent}
    except Exception:
        db.rollback()
        logger.exception("deliver_notification_error", extra={"outbox_id": outbox_id})
        return {"outbox_id": outbox_id, "sent": False, "error": "exception"}
    finally:
        email.close()
        db.close()


@celery_app.task(name="app.workers.tasks.notifications.sweep_notification_outbox")
def sweep_notification_outbox() -> dict:
    db = SessionLocal()
    email = EmailClient()
    sent = 0
    try:
        outbox = OutboxService(db)
        due = outbox.due_ids()
        dispatcher = NotificationDispatcher(db, email_client=email)
        for outbox_id in due:
            try:
                if dispatcher.deliver(outbox_id):
                    sent += 1
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("sweep_notification_error", extra={"outbox_id": outbox_id})
        outbox_pending.set(outbox.pending_count())
        logger.info("sweep_notification_outbox_done", extra={"attempts": len(due)})
        return {"due": len(due), "sent": sent}
    finally:
        email.close()
        db.close()


def enqueue_deliveries(outbox_ids: list[str]) -> None:
    """Queue delivery after commit. Broker errors are logged; the sweep retries those rows."""
    for outbox_id in outbox_ids:
        try:
            deliver_notification.delay(outbox_id)
        except Exception:
            logger.exception("notification_enqueue_failed", extra={"outbox_id": outbox_id})
