from typing import Any

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog

ACTION_APPLIED = "payment_status_applied"
ACTION_IGNORED = "payment_status_ignored"


class AuditService:
    """Audit rows are flushed, never committed: they share the caller's transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record_delivery(
        self,
        payment_id: str,
        event_name: str | None,
        applied: bool,
        details: dict[str, Any],
    ) -> AuditLog:
        entry = AuditLog(
            actor_type="provider",
            actor_id=event_name,
            action=ACTION_APPLIED if applied else ACTION_IGNORED,
            entity_type="payment",
            entity_id=payment_id,
            payload=details,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def history(self, payment_id: str) -> list[AuditLog]:
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.entity_type == "payment", AuditLog.entity_id == payment_id)
            .order_by(AuditLog.created_at)
            .all()
        )
