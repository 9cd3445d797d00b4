from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Text

from app.db.base import Base


class LiveClass(Base):
    __tablename__ = "live_classes"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    course_id = Column(String, nullable=True, index=True)
    host_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="scheduled")
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    daily_room_url = Column(String, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
