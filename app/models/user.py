from sqlalchemy import Boolean, Column, Integer, String, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class UserRole(str, enum.Enum):
    ADMIN = "admin"      # Administrador del gimnasio
    COACH = "coach"      # Entrenador que imparte clases
    MEMBER = "member"    # Miembro regular


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
                  default=UserRole.MEMBER, nullable=False)
    is_active = Column(Boolean(), default=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    # Relaciones
    children = relationship("Child", back_populates="parent", cascade="all, delete-orphan")
    packages = relationship("MemberPackage", back_populates="member")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class Child(Base):
    """Hijo de un miembro; puede ser beneficiario de una reserva del padre"""
    __tablename__ = "child"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    parent = relationship("User", back_populates="children")
