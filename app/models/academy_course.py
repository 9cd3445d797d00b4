from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Numeric, String

from app.db.base import Base


class AcademyCourse(Base):
    __tablename__ = "academy_courses"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    institution = Column(String, nullable=True)
    school = Column(String, nullable=True)  # law / business / health
    price = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
