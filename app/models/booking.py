from sqlalchemy import Column, Integer, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    ATTENDED = "attended"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"


# Beneficiario "el propio miembro" en beneficiary_key
SELF_BENEFICIARY = 0


class Booking(Base):
    """
    Reserva de una plaza en una clase. El beneficiario es el propio miembro
    (child_id NULL) o uno de sus hijos.

    confirmed -> attended | no_show | cancelled; los demás estados son finales.
    """
    __tablename__ = "booking"

    id = Column(Integer, primary_key=True, index=True)
    class_instance_id = Column(Integer, ForeignKey("class_instance.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    child_id = Column(Integer, ForeignKey("child.id"), nullable=True)
    # 0 para el propio miembro, child_id para un hijo (NULL no sirve en índices únicos)
    beneficiary_key = Column(Integer, nullable=False, default=SELF_BENEFICIARY)
    member_package_id = Column(Integer, ForeignKey("member_package.id"), nullable=False)
    status = Column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False, default=BookingStatus.CONFIRMED
    )
    booked_at = Column(UTCDateTime, nullable=False)
    cancelled_at = Column(UTCDateTime, nullable=True)
    attendance_marked_at = Column(UTCDateTime, nullable=True)

    # Relaciones
    class_instance = relationship("ClassInstance", back_populates="bookings")
    member = relationship("User")
    child = relationship("Child")
    member_package = relationship("MemberPackage")

    __table_args__ = (
        # Una sola reserva activa por (clase, miembro, beneficiario)
        Index(
            'uq_booking_active_beneficiary',
            'class_instance_id', 'member_id', 'beneficiary_key',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )
