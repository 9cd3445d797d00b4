"""
ClassPurchase: the only entitlement that is inserted, not upserted.
payment_id is unique so a redelivered webhook can never create a second row.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Numeric, String

from app.db.base import Base


class ClassPurchase(Base):
    __tablename__ = "class_purchases"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    class_id = Column(String, nullable=False, index=True)
    purchase_type = Column(String, nullable=False, default="live")  # live / recording
    amount = Column(Numeric(12, 2), nullable=False)
    payment_id = Column(String, unique=True, nullable=True)
    purchaser_email = Column(String, nullable=True)
    purchased_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
