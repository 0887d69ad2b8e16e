"""
Tests del marcado de asistencia: solo el día de la clase, solo el entrenador
asignado (o un admin) y solo sobre reservas confirmadas.
"""

import pytest
from datetime import timedelta

from app.core.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError, NotSameDayError
from app.models.booking import Booking, BookingStatus, SELF_BENEFICIARY
from app.models.package import CreditTransaction
from app.models.user import UserRole
from app.services.attendance import AttendanceService
from app.services.booking import BookingService


class TestAttendanceService:
    """Tests para AttendanceService."""

    @pytest.fixture
    def service(self, clock):
        return AttendanceService(clock=clock, gym_timezone="Africa/Cairo")

    @pytest.fixture
    def make_booking(self, db, seed, make_entry, clock):
        """Reserva confirmada insertada directamente (sin pasar por el motor de reservas)."""
        entry = make_entry(remaining=5)

        def _make(instance, status=BookingStatus.CONFIRMED):
            booking = Booking(
                class_instance_id=instance.id,
                member_id=seed["member"].id,
                beneficiary_key=SELF_BENEFICIARY,
                member_package_id=entry.id,
                status=status,
                booked_at=clock.now() - timedelta(days=2),
            )
            db.add(booking)
            db.commit()
            return booking
        return _make

    @pytest.mark.asyncio
    async def test_mark_attended_same_day(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() - timedelta(hours=1))
        booking = make_booking(instance)

        marked = await service.mark_attendance(
            db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.ATTENDED
        )

        assert marked.status == BookingStatus.ATTENDED
        assert marked.attendance_marked_at == clock.now()
        # La asistencia no mueve créditos
        assert db.query(CreditTransaction).count() == 0

    @pytest.mark.asyncio
    async def test_mark_no_show_before_class_starts(self, db, seed, service, make_instance, make_booking, clock):
        """Se puede marcar en cualquier momento del día de la clase."""
        instance = make_instance(start=clock.now() + timedelta(hours=3))
        booking = make_booking(instance)

        marked = await service.mark_attendance(
            db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.NO_SHOW
        )

        assert marked.status == BookingStatus.NO_SHOW

    @pytest.mark.asyncio
    async def test_class_yesterday_is_not_same_day(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() - timedelta(days=1))
        booking = make_booking(instance)

        with pytest.raises(NotSameDayError):
            await service.mark_attendance(
                db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.ATTENDED
            )

        db.refresh(booking)
        assert booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_same_day_uses_gym_local_date(self, db, seed, service, make_instance, make_booking, clock):
        """23:30 UTC del día anterior ya es el día de hoy en El Cairo (UTC+2)."""
        clock.set(clock.now().replace(hour=0, minute=30))  # 02:30 en El Cairo
        instance = make_instance(start=clock.now() - timedelta(hours=1))  # 23:30 UTC de ayer
        booking = make_booking(instance)

        marked = await service.mark_attendance(
            db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.ATTENDED
        )

        assert marked.status == BookingStatus.ATTENDED

    @pytest.mark.asyncio
    async def test_marking_twice_is_invalid_transition(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance)

        await service.mark_attendance(
            db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.ATTENDED
        )
        with pytest.raises(InvalidTransitionError):
            await service.mark_attendance(
                db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.ATTENDED
            )

    @pytest.mark.asyncio
    async def test_cancelled_booking_cannot_be_marked(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance, status=BookingStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError):
            await service.mark_attendance(
                db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.NO_SHOW
            )

    @pytest.mark.asyncio
    async def test_other_coach_forbidden(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance)

        with pytest.raises(ForbiddenError):
            await service.mark_attendance(
                db, actor_id=seed["admin"].id, booking_id=booking.id,
                status=BookingStatus.ATTENDED, actor_role=UserRole.COACH
            )

    @pytest.mark.asyncio
    async def test_admin_can_mark_any_class(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance)

        marked = await service.mark_attendance(
            db, actor_id=seed["admin"].id, booking_id=booking.id,
            status=BookingStatus.ATTENDED, actor_role=UserRole.ADMIN
        )

        assert marked.status == BookingStatus.ATTENDED

    @pytest.mark.asyncio
    async def test_non_attendance_status_rejected(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance)

        with pytest.raises(InvalidTransitionError):
            await service.mark_attendance(
                db, actor_id=seed["coach"].id, booking_id=booking.id, status=BookingStatus.CANCELLED
            )

    @pytest.mark.asyncio
    async def test_unknown_booking(self, db, seed, service):
        with pytest.raises(NotFoundError):
            await service.mark_attendance(
                db, actor_id=seed["coach"].id, booking_id=9999, status=BookingStatus.ATTENDED
            )

    @pytest.mark.asyncio
    async def test_roster_lists_bookings_for_coach(self, db, seed, service, make_instance, make_booking, clock):
        instance = make_instance(start=clock.now() + timedelta(hours=1))
        booking = make_booking(instance)

        roster = await service.get_class_roster(db, actor_id=seed["coach"].id, class_instance_id=instance.id)

        assert len(roster) == 1
        assert roster[0].booking_id == booking.id
        assert roster[0].member_name == "Mona Adel"
        assert roster[0].status == BookingStatus.CONFIRMED

        with pytest.raises(ForbiddenError):
            await service.get_class_roster(db, actor_id=seed["other_member"].id, class_instance_id=instance.id)

    @pytest.mark.asyncio
    async def test_marked_booking_frees_seat(self, db, seed, service, make_instance, make_entry, clock):
        """Una reserva marcada deja de ocupar plaza: otro miembro puede reservar la última plaza."""
        booking_service = BookingService(clock=clock, cancellation_window_minutes=60)
        instance = make_instance(start=clock.now() + timedelta(hours=3), capacity=1)
        make_entry(member=seed["member"], remaining=2)
        make_entry(member=seed["other_member"], remaining=2)

        first = await booking_service.create_booking(db, member_id=seed["member"].id, class_instance_id=instance.id)
        await service.mark_attendance(
            db, actor_id=seed["admin"].id, booking_id=first.id,
            status=BookingStatus.ATTENDED, actor_role=UserRole.ADMIN
        )
        db.refresh(instance)
        assert instance.booked_count == 0

        second = await booking_service.create_booking(
            db, member_id=seed["other_member"].id, class_instance_id=instance.id
        )
        assert second.status == BookingStatus.CONFIRMED
        db.refresh(instance)
        assert instance.booked_count == 1
