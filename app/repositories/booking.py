from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import update as sql_update
from sqlalchemy.orm import Session, joinedload

from app.models.booking import Booking, BookingStatus
from app.models.schedule import ClassInstance
from app.repositories.base import BaseRepository


class BookingRepository(BaseRepository[Booking, BaseModel, BaseModel]):
    def get_active_for_beneficiary(
        self, db: Session, *, class_instance_id: int, member_id: int, beneficiary_key: int
    ) -> Optional[Booking]:
        """Reserva no cancelada de un beneficiario en una clase"""
        return db.query(Booking).filter(
            Booking.class_instance_id == class_instance_id,
            Booking.member_id == member_id,
            Booking.beneficiary_key == beneficiary_key,
            Booking.status != BookingStatus.CANCELLED
        ).first()

    def get_with_instance(self, db: Session, *, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).options(
            joinedload(Booking.class_instance)
        ).filter(Booking.id == booking_id).first()

    def get_by_member(
        self, db: Session, *, member_id: int, since: Optional[datetime] = None,
        skip: int = 0, limit: int = 100
    ) -> List[Booking]:
        query = db.query(Booking).join(
            ClassInstance, Booking.class_instance_id == ClassInstance.id
        ).filter(Booking.member_id == member_id)
        if since is not None:
            query = query.filter(ClassInstance.start_time >= since)
        return query.order_by(ClassInstance.start_time, Booking.id).offset(skip).limit(limit).all()

    def get_by_instance(self, db: Session, *, class_instance_id: int) -> List[Booking]:
        return db.query(Booking).options(
            joinedload(Booking.member), joinedload(Booking.child)
        ).filter(
            Booking.class_instance_id == class_instance_id
        ).order_by(Booking.booked_at, Booking.id).all()

    def get_confirmed_by_instance(self, db: Session, *, class_instance_id: int) -> List[Booking]:
        return db.query(Booking).filter(
            Booking.class_instance_id == class_instance_id,
            Booking.status == BookingStatus.CONFIRMED
        ).order_by(Booking.id).all()

    def count_active_by_instance(self, db: Session, *, class_instance_id: int) -> int:
        return db.query(Booking).filter(
            Booking.class_instance_id == class_instance_id,
            Booking.status != BookingStatus.CANCELLED
        ).count()

    def transition_status(
        self, db: Session, *, booking_id: int, from_status: BookingStatus,
        to_status: BookingStatus, **values
    ) -> bool:
        """
        Cambia el estado solo si la reserva sigue en ``from_status``.
        Evita que dos peticiones simultáneas (doble click) apliquen la misma
        transición dos veces.
        """
        result = db.execute(
            sql_update(Booking)
            .where(Booking.id == booking_id, Booking.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


# Instantiate repositories
booking_repository = BookingRepository(Booking)
