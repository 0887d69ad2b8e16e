import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import get_settings
from app.core.exceptions import (
    BookingDomainError,
    ClassNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    NotSameDayError,
)
from app.core.timezone_utils import gym_local_date
from app.db.transactions import retry_on_db_error
from app.models.booking import Booking, BookingStatus
from app.models.schedule import ClassInstance
from app.models.user import UserRole
from app.repositories.booking import booking_repository
from app.repositories.schedule import class_instance_repository
from app.schemas.booking import RosterEntry

logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = (BookingStatus.ATTENDED, BookingStatus.NO_SHOW)


class AttendanceService:
    def __init__(self, clock: Clock = system_clock, gym_timezone: Optional[str] = None):
        self.clock = clock
        self.gym_timezone = gym_timezone or get_settings().GYM_TIMEZONE

    def _check_coach(self, instance: ClassInstance, actor_id: int, actor_role: UserRole) -> None:
        if actor_role != UserRole.ADMIN and instance.coach_id != actor_id:
            raise ForbiddenError(
                "Solo el entrenador de la clase puede gestionar su asistencia",
                details={"class_instance_id": instance.id},
            )

    @retry_on_db_error()
    async def mark_attendance(
        self,
        db: Session,
        actor_id: int,
        booking_id: int,
        status: BookingStatus,
        actor_role: UserRole = UserRole.COACH,
    ) -> Booking:
        """
        Marcar una reserva confirmada como asistida o no asistida.
        Solo el día de la clase (fecha local del gimnasio). No afecta a los créditos.

        Raises:
            NotFoundError: La reserva no existe
            ForbiddenError: El solicitante no es el entrenador de la clase (ni admin)
            NotSameDayError: Hoy no es el día de la clase
            InvalidTransitionError: La reserva no está confirmada
        """
        if status not in ATTENDANCE_STATUSES:
            raise InvalidTransitionError(
                "El estado de asistencia debe ser 'attended' o 'no_show'",
                details={"status": str(status)},
            )

        try:
            now = self.clock.now()
            booking = booking_repository.get_with_instance(db, booking_id=booking_id)
            if not booking:
                raise NotFoundError("Reserva no encontrada", details={"booking_id": booking_id})

            instance = booking.class_instance
            self._check_coach(instance, actor_id, actor_role)

            today = gym_local_date(now, self.gym_timezone)
            class_day = gym_local_date(instance.start_time, self.gym_timezone)
            if today != class_day:
                raise NotSameDayError(details={"class_date": class_day, "today": today})

            if booking.status != BookingStatus.CONFIRMED or not booking_repository.transition_status(
                db,
                booking_id=booking.id,
                from_status=BookingStatus.CONFIRMED,
                to_status=status,
                attendance_marked_at=now,
            ):
                raise InvalidTransitionError(
                    "Solo se puede marcar asistencia de reservas confirmadas",
                    details={"booking_id": booking.id, "status": booking.status.value},
                )
            # booked_count solo cuenta reservas confirmadas
            class_instance_repository.release_seat(db, instance_id=instance.id)
            db.commit()
        except BookingDomainError:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(f"Reserva {booking.id} marcada como {status.value} por el usuario {actor_id}")
        return booking

    async def get_class_roster(
        self, db: Session, actor_id: int, class_instance_id: int, actor_role: UserRole = UserRole.COACH
    ) -> List[RosterEntry]:
        """Lista de reservas de una clase para el entrenador (o un admin)"""
        instance = class_instance_repository.get(db, id=class_instance_id)
        if not instance:
            raise ClassNotFoundError(details={"class_instance_id": class_instance_id})
        self._check_coach(instance, actor_id, actor_role)

        bookings = booking_repository.get_by_instance(db, class_instance_id=instance.id)
        return [
            RosterEntry(
                booking_id=b.id,
                member_id=b.member_id,
                member_name=b.member.full_name if b.member else None,
                child_id=b.child_id,
                child_name=b.child.first_name if b.child else None,
                status=b.status,
                attendance_marked_at=b.attendance_marked_at,
            )
            for b in bookings
        ]


attendance_service = AttendanceService()
