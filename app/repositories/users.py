from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.user import User


class UserRepository:
    """User persistence. Soft-deleted users are invisible to every query here."""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(User).filter(User.is_deleted.is_(False))

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._active().filter(User.id == user_id).first()

    def find_by_username(self, username: str) -> Optional[User]:
        return self._active().filter(User.username == username).first()

    def find_by_email(self, email: str) -> Optional[User]:
        return self._active().filter(func.lower(User.email) == email.lower()).first()

    def add(self, user: User) -> User:
        self.db.add(user)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def soft_delete(self, user: User) -> None:
        user.is_deleted = True
        user.updated_at = func.now()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
