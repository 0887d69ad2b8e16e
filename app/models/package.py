from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Numeric, Enum, Text, CheckConstraint, Index
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    BOOKING = "booking"
    REFUND = "refund"
    EXPIRY = "expiry"


class SessionPackage(Base):
    """Catálogo de paquetes de sesiones a la venta"""
    __tablename__ = "session_package"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    session_count = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    expiry_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint('session_count > 0', name='check_package_session_count_positive'),
        CheckConstraint('expiry_days > 0', name='check_package_expiry_days_positive'),
    )


class MemberPackage(Base):
    """
    Entrada del ledger de créditos: un paquete comprado por un miembro.

    sessions_total es el techo (session_count al momento de la compra);
    sessions_remaining nunca sale del rango [0, sessions_total].
    """
    __tablename__ = "member_package"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    package_id = Column(Integer, ForeignKey("session_package.id"), nullable=False)
    sessions_remaining = Column(Integer, nullable=False)
    sessions_total = Column(Integer, nullable=False)
    purchase_date = Column(UTCDateTime, nullable=False)
    expiry_date = Column(UTCDateTime, nullable=False)
    is_expired = Column(Boolean, default=False, nullable=False)

    # Relaciones
    member = relationship("User", back_populates="packages")
    package = relationship("SessionPackage")

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    __table_args__ = (
        CheckConstraint('sessions_remaining >= 0 AND sessions_remaining <= sessions_total',
                        name='check_member_package_remaining_range'),
        Index('ix_member_package_member_expiry', 'member_id', 'expiry_date'),
    )


class CreditTransaction(Base):
    """Registro de auditoría de movimientos de créditos (solo inserción)"""
    __tablename__ = "credit_transaction"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    member_package_id = Column(Integer, ForeignKey("member_package.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("booking.id"), nullable=True)
    transaction_type = Column(
        Enum(TransactionType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    credits_change = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
