"""
Motor de reservas: crear y cancelar reservas contra una instancia de clase,
aplicando aforo, créditos y ventana de cancelación.

La creación bloquea la fila de la instancia (SELECT ... FOR UPDATE) y ocupa la
plaza con un UPDATE condicionado a ``booked_count < capacity``; el débito de
créditos, la reserva y el movimiento del ledger se confirman en un único
commit. Cualquier fallo deshace todo.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import get_settings
from app.core.exceptions import (
    AlreadyBookedError,
    BookingDomainError,
    CancellationWindowPassedError,
    ClassAlreadyStartedError,
    ClassFullError,
    ClassNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from app.db.transactions import retry_on_db_error
from app.models.booking import SELF_BENEFICIARY, Booking, BookingStatus
from app.repositories.booking import booking_repository
from app.repositories.schedule import class_instance_repository
from app.repositories.user import child_repository
from app.services.cache_service import CacheService
from app.services.credit_ledger import CreditLedgerService

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(self, clock: Clock = system_clock, cancellation_window_minutes: Optional[int] = None):
        self.clock = clock
        self.ledger = CreditLedgerService(clock=clock)
        if cancellation_window_minutes is None:
            cancellation_window_minutes = get_settings().CANCELLATION_WINDOW_MINUTES
        self.cancellation_window = timedelta(minutes=cancellation_window_minutes)

    @retry_on_db_error()
    async def create_booking(
        self,
        db: Session,
        member_id: int,
        class_instance_id: int,
        child_id: Optional[int] = None,
        redis_client: Optional[Redis] = None,
    ) -> Booking:
        """
        Reservar una plaza para el miembro o para uno de sus hijos.

        Raises:
            ClassNotFoundError: La instancia no existe o está cancelada
            ClassAlreadyStartedError: La clase ya comenzó
            ForbiddenError: El hijo indicado no pertenece al miembro
            AlreadyBookedError: Ya hay una reserva activa para ese beneficiario
            ClassFullError: No quedan plazas
            InsufficientCreditsError: El miembro no tiene créditos vigentes
        """
        try:
            booking = await self._create_booking_tx(db, member_id, class_instance_id, child_id)
            db.commit()
        except BookingDomainError:
            db.rollback()
            raise
        except IntegrityError as e:
            # Otra petición creó la misma reserva entre la comprobación y el insert
            db.rollback()
            logger.warning(
                f"Reserva duplicada detectada por índice único: miembro {member_id}, "
                f"clase {class_instance_id}: {e}"
            )
            raise AlreadyBookedError(details={"class_instance_id": class_instance_id})

        db.refresh(booking)
        logger.info(
            f"Reserva {booking.id} creada: miembro {member_id}, clase {class_instance_id}, "
            f"hijo {child_id}, entrada de créditos {booking.member_package_id}"
        )
        await CacheService.invalidate_class_listings(redis_client)
        return booking

    async def _create_booking_tx(
        self, db: Session, member_id: int, class_instance_id: int, child_id: Optional[int]
    ) -> Booking:
        now = self.clock.now()

        instance = class_instance_repository.get_for_update(db, instance_id=class_instance_id)
        if not instance or instance.is_cancelled:
            raise ClassNotFoundError(details={"class_instance_id": class_instance_id})

        if instance.start_time <= now:
            raise ClassAlreadyStartedError(
                details={"class_instance_id": instance.id, "start_time": instance.start_time}
            )

        beneficiary_key = SELF_BENEFICIARY
        if child_id is not None:
            child = child_repository.get_for_parent(db, child_id=child_id, parent_id=member_id)
            if not child:
                raise ForbiddenError(
                    "El hijo indicado no pertenece a este miembro",
                    details={"child_id": child_id},
                    code="INVALID_CHILD",
                )
            beneficiary_key = child.id

        existing = booking_repository.get_active_for_beneficiary(
            db, class_instance_id=instance.id, member_id=member_id, beneficiary_key=beneficiary_key
        )
        if existing:
            raise AlreadyBookedError(details={"booking_id": existing.id})

        if not class_instance_repository.reserve_seat(db, instance_id=instance.id):
            raise ClassFullError(details={"class_instance_id": instance.id, "capacity": instance.capacity})

        transaction = await self.ledger.debit(
            db, member_id=member_id, n=1,
            notes=f"Reserva de clase {instance.id} ({instance.start_time.isoformat()})",
        )

        booking = booking_repository.create(
            db,
            obj_in={
                "class_instance_id": instance.id,
                "member_id": member_id,
                "child_id": child_id,
                "beneficiary_key": beneficiary_key,
                "member_package_id": transaction.member_package_id,
                "status": BookingStatus.CONFIRMED,
                "booked_at": now,
            },
            commit=False,
        )
        # Vincular el movimiento del ledger con la reserva para poder revertirlo exactamente
        transaction.booking_id = booking.id
        db.flush()
        return booking

    @retry_on_db_error()
    async def cancel_booking(
        self,
        db: Session,
        member_id: int,
        booking_id: int,
        admin_override: bool = False,
        redis_client: Optional[Redis] = None,
    ) -> Booking:
        """
        Cancelar una reserva confirmada y devolver el crédito a la misma entrada
        del ledger que se debitó.

        Con ``admin_override`` no se comprueba el propietario ni la ventana de cancelación.

        Raises:
            NotFoundError: La reserva no existe o no pertenece al miembro
            InvalidTransitionError: La reserva no está confirmada
            CancellationWindowPassedError: Falta menos de la ventana configurada para el inicio
        """
        try:
            booking = await self._cancel_booking_tx(db, member_id, booking_id, admin_override)
            db.commit()
        except BookingDomainError:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(
            f"Reserva {booking.id} cancelada{' por administrador' if admin_override else ''}; "
            f"crédito devuelto a la entrada {booking.member_package_id}"
        )
        await CacheService.invalidate_class_listings(redis_client)
        return booking

    async def _cancel_booking_tx(
        self, db: Session, member_id: int, booking_id: int, admin_override: bool
    ) -> Booking:
        now = self.clock.now()

        booking = booking_repository.get_with_instance(db, booking_id=booking_id)
        if not booking or (not admin_override and booking.member_id != member_id):
            raise NotFoundError("Reserva no encontrada", details={"booking_id": booking_id})

        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(
                "Solo se pueden cancelar reservas confirmadas",
                details={"booking_id": booking.id, "status": booking.status.value},
            )

        instance = booking.class_instance
        deadline = instance.start_time - self.cancellation_window
        if not admin_override and now >= deadline:
            minutes_until_class = int((instance.start_time - now).total_seconds() // 60)
            raise CancellationWindowPassedError(
                details={
                    "class_start_time": instance.start_time,
                    "minutes_until_class": minutes_until_class,
                    "cancellation_deadline": deadline,
                },
            )

        await self._cancel_and_refund(db, booking, now, reason="Cancelación de reserva")
        return booking

    async def _cancel_and_refund(self, db: Session, booking: Booking, now: datetime, reason: str) -> None:
        if not booking_repository.transition_status(
            db,
            booking_id=booking.id,
            from_status=BookingStatus.CONFIRMED,
            to_status=BookingStatus.CANCELLED,
            cancelled_at=now,
        ):
            raise InvalidTransitionError(
                "La reserva ya no está confirmada",
                details={"booking_id": booking.id},
            )
        class_instance_repository.release_seat(db, instance_id=booking.class_instance_id)
        await self.ledger.credit(
            db,
            member_id=booking.member_id,
            member_package_id=booking.member_package_id,
            n=1,
            booking_id=booking.id,
            notes=f"{reason} {booking.id}",
        )

    @retry_on_db_error()
    async def cancel_class_instance(
        self, db: Session, class_instance_id: int, redis_client: Optional[Redis] = None
    ) -> int:
        """
        Cancelar una clase completa (administrador): todas las reservas
        confirmadas se cancelan y se reembolsan.

        Returns:
            Número de reservas canceladas
        """
        try:
            instance = class_instance_repository.get_for_update(db, instance_id=class_instance_id)
            if not instance:
                raise ClassNotFoundError(details={"class_instance_id": class_instance_id})
            if instance.is_cancelled:
                raise InvalidTransitionError(
                    "La clase ya está cancelada", details={"class_instance_id": class_instance_id}
                )

            now = self.clock.now()
            confirmed = booking_repository.get_confirmed_by_instance(db, class_instance_id=instance.id)
            for booking in confirmed:
                await self._cancel_and_refund(db, booking, now, reason="Clase cancelada, reserva")
            instance.is_cancelled = True
            db.commit()
        except BookingDomainError:
            db.rollback()
            raise

        logger.info(f"Clase {class_instance_id} cancelada; {len(confirmed)} reservas reembolsadas")
        await CacheService.invalidate_class_listings(redis_client)
        return len(confirmed)

    async def get_booking(self, db: Session, booking_id: int) -> Booking:
        booking = booking_repository.get(db, id=booking_id)
        if not booking:
            raise NotFoundError("Reserva no encontrada", details={"booking_id": booking_id})
        return booking

    async def list_member_bookings(
        self, db: Session, member_id: int, upcoming_only: bool = False, skip: int = 0, limit: int = 100
    ) -> List[Booking]:
        since = self.clock.now() if upcoming_only else None
        return booking_repository.get_by_member(db, member_id=member_id, since=since, skip=skip, limit=limit)


booking_service = BookingService()
