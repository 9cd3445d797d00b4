"""Read-only access to live-class metadata needed for purchase emails."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.live_class import LiveClass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveClassSummary:
    id: str
    title: str
    scheduled_at: datetime | None
    room_url: str | None


class LiveClassService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_summary(self, class_id: str) -> LiveClassSummary | None:
        """
        Title, schedule and room URL of a class. Lookup failures are logged and
        reported as None; they never abort the surrounding transaction.
        """
        try:
            with self.db.begin_nested():
                live_class = self.db.query(LiveClass).filter(LiveClass.id == class_id).one_or_none()
        except SQLAlchemyError:
            logger.exception("live_class_lookup_failed", extra={"class_id": class_id})
            return None
        if live_class is None:
            logger.warning("live_class_not_found", extra={"class_id": class_id})
            return None
        return LiveClassSummary(
            id=live_class.id,
            title=live_class.title,
            scheduled_at=live_class.scheduled_at,
            room_url=live_class.daily_room_url,
        )
