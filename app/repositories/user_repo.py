# app/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (queries)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def list_by_ids(self, session: Session, user_ids: list[uuid.UUID]) -> list[User]:
        """Return the users among `user_ids` that exist (unknown ids are skipped)."""
        if not user_ids:
            return []
        stmt = select(User).where(User.id.in_(user_ids))
        return session.exec(stmt).all()

    def get_many(self, session: Session, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, User]:
        return {u.id: u for u in self.list_by_ids(session, user_ids)}
