from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.models.user import User, Child
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User, BaseModel, BaseModel]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()


class ChildRepository(BaseRepository[Child, BaseModel, BaseModel]):
    def get_for_parent(self, db: Session, *, child_id: int, parent_id: int) -> Optional[Child]:
        """Hijo solo si pertenece al miembro indicado"""
        return db.query(Child).filter(
            Child.id == child_id,
            Child.parent_id == parent_id
        ).first()


# Instantiate repositories
user_repository = UserRepository(User)
child_repository = ChildRepository(Child)
