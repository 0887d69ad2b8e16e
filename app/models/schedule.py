from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Time, Date, Text,
    CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class DayOfWeek(int, enum.Enum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class Location(Base):
    """Sede o sala donde se imparten las clases"""
    __tablename__ = "location"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    capacity = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, server_default=func.now())


class ClassType(Base):
    """Tipo de clase (boxeo, kickboxing, infantil...)"""
    __tablename__ = "class_type"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='check_class_type_duration_positive'),
    )


class ScheduleTemplate(Base):
    """
    Definición semanal recurrente de una clase. Nunca se elimina, solo se desactiva.

    Las plantillas de tipo override sustituyen temporalmente a una plantilla base
    (misma sede, día y hora) entre override_start_date y override_end_date.
    """
    __tablename__ = "schedule_template"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = lunes ... 6 = domingo
    start_time = Column(Time, nullable=False)  # Hora local del gimnasio
    duration_minutes = Column(Integer, nullable=False)
    class_type_id = Column(Integer, ForeignKey("class_type.id"), nullable=False)
    coach_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Overrides temporales
    is_override = Column(Boolean, default=False, nullable=False)
    override_start_date = Column(Date, nullable=True)
    override_end_date = Column(Date, nullable=True)
    base_template_id = Column(Integer, ForeignKey("schedule_template.id"), nullable=True)

    # Relaciones
    class_type = relationship("ClassType")
    coach = relationship("User")
    location = relationship("Location")
    base_template = relationship("ScheduleTemplate", remote_side=[id])

    # Campos de auditoría
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    __table_args__ = (
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6',
                        name='check_template_day_of_week'),
        CheckConstraint('capacity > 0', name='check_template_capacity_positive'),
        CheckConstraint('duration_minutes > 0', name='check_template_duration_positive'),
    )


class ClassInstance(Base):
    """Ocurrencia concreta y fechada de una clase (horas guardadas en UTC)"""
    __tablename__ = "class_instance"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("schedule_template.id"), nullable=True, index=True)
    schedule_date = Column(Date, nullable=False)  # Fecha local del gimnasio
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    class_type_id = Column(Integer, ForeignKey("class_type.id"), nullable=False)
    coach_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=False)
    capacity = Column(Integer, nullable=False)
    booked_count = Column(Integer, nullable=False, default=0)  # Reservas en estado confirmed
    is_cancelled = Column(Boolean, default=False, nullable=False)

    # Relaciones
    template = relationship("ScheduleTemplate")
    class_type = relationship("ClassType")
    coach = relationship("User")
    location = relationship("Location")
    bookings = relationship("Booking", back_populates="class_instance")

    # Campos de auditoría
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('template_id', 'schedule_date', name='uq_class_instance_template_date'),
        CheckConstraint('booked_count >= 0 AND booked_count <= capacity',
                        name='check_class_instance_booked_count'),
        Index('ix_class_instance_location_start', 'location_id', 'start_time'),
    )

    @property
    def available_spots(self) -> int:
        return max(self.capacity - (self.booked_count or 0), 0)
