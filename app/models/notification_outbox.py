"""
Notification outbox: one row per notification intent, written in the same
transaction as the payment status change and delivered by a Celery worker.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.db.base import Base, JSONType


class NotificationOutbox(Base):
    __tablename__ = "notification_outbox"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    kind = Column(String, nullable=False)                     # payment_confirmation / payment_failure / class_join / tutor_enrollment
    recipient = Column(String, nullable=True)                 # resolved at delivery time when null
    payload = Column(JSONType, nullable=False, default=dict)
    status = Column(String, nullable=False, default="pending", index=True)  # pending / sent / failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    payment_id = Column(String, nullable=True, index=True)
    next_attempt_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    sent_at = Column(DateTime(timezone=True), nullable=True)
