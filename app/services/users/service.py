from sqlalchemy.orm import Session

from app.models.user import User


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def get_email(self, user_id: str) -> str | None:
        """Account email used for payment outcome emails."""
        user = self.get(user_id)
        return user.email if user and user.email else None

    def get_display_name(self, user_id: str) -> str | None:
        user = self.get(user_id)
        if not user:
            return None
        return user.full_name or user.email
