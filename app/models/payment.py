"""
PaymentRecord: created as `pending` by the charge-initiation flow,
mutated only by the payment webhook.
`metadata` carries what the webhook needs to grant the entitlement:
selectedCourses, classId, classPurchaseType, purchaserEmail.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Numeric, String

from app.db.base import Base, JSONType


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False, default="ZMW")
    product_type = Column(String, nullable=False)             # subscription / academy / class
    product_id = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)            # mobile_money / bank_transfer
    provider = Column(String, nullable=True)                  # mtn / airtel / zamtel / bank code
    status = Column(String, nullable=False, default="pending")  # pending / completed / failed
    transaction_id = Column(String, nullable=True, index=True)  # provider-side reference
    payment_metadata = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def selected_courses(self) -> list[str]:
        courses = (self.payment_metadata or {}).get("selectedCourses") or []
        return [str(c) for c in courses if c]

    @property
    def class_id(self) -> str | None:
        return (self.payment_metadata or {}).get("classId")

    @property
    def class_purchase_type(self) -> str:
        return (self.payment_metadata or {}).get("classPurchaseType") or "live"

    @property
    def purchaser_email(self) -> str | None:
        return (self.payment_metadata or {}).get("purchaserEmail")
