from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, UniqueConstraint

from app.db.base import Base


class Enrollment(Base):
    __tablename__ = "academy_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_academy_enrollments_user_course"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    course_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=True, default="active")
    enrolled_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=True)
