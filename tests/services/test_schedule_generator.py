"""
Tests del generador de instancias: idempotencia, copia de valores de la
plantilla, overrides temporales y errores aislados por plantilla/fecha.
"""

import pytest
from datetime import date, datetime, time, timezone

from sqlalchemy import text

from app.models.booking import Booking, BookingStatus, SELF_BENEFICIARY
from app.models.schedule import ClassInstance
from app.models.user import User, UserRole
from app.services.schedule_generator import ScheduleGeneratorService, matching_dates

WINDOW_START = date(2026, 1, 5)  # lunes


def _instances(db, template_id=None):
    query = db.query(ClassInstance)
    if template_id is not None:
        query = query.filter(ClassInstance.template_id == template_id)
    return query.order_by(ClassInstance.start_time).all()


class TestMatchingDates:
    def test_includes_both_ends(self):
        days = list(matching_dates(0, date(2026, 1, 5), date(2026, 1, 19)))
        assert days == [date(2026, 1, 5), date(2026, 1, 12), date(2026, 1, 19)]

    def test_starts_on_next_matching_weekday(self):
        days = list(matching_dates(2, date(2026, 1, 5), date(2026, 1, 14)))
        assert days == [date(2026, 1, 7), date(2026, 1, 14)]


class TestScheduleGenerator:
    """Tests para ScheduleGeneratorService."""

    @pytest.fixture
    def generator(self, clock):
        return ScheduleGeneratorService(clock=clock, gym_timezone="Africa/Cairo")

    @pytest.fixture
    def second_coach(self, db):
        coach = User(email="coach2@jabclub.test", first_name="Sara", role=UserRole.COACH, is_active=True)
        db.add(coach)
        db.commit()
        return coach

    @pytest.mark.asyncio
    async def test_generates_matching_weekdays_in_utc(self, db, generator, make_template):
        monday = make_template(day_of_week=0, start=time(18, 0))
        wednesday = make_template(day_of_week=2, start=time(7, 30))

        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.created == 10
        assert report.errors == []
        monday_instances = _instances(db, monday.id)
        assert [i.schedule_date for i in monday_instances] == [
            date(2026, 1, 5), date(2026, 1, 12), date(2026, 1, 19), date(2026, 1, 26), date(2026, 2, 2)
        ]
        # 18:00 en El Cairo (UTC+2 en invierno) son las 16:00 UTC
        assert monday_instances[0].start_time == datetime(2026, 1, 5, 16, 0, tzinfo=timezone.utc)
        assert monday_instances[0].end_time == datetime(2026, 1, 5, 17, 0, tzinfo=timezone.utc)
        assert len(_instances(db, wednesday.id)) == 5

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, db, generator, make_template):
        make_template(day_of_week=0)
        make_template(day_of_week=4, start=time(19, 0))

        first = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)
        ids_after_first = [i.id for i in _instances(db)]
        second = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert first.created == 9
        assert second.created == 0
        assert second.skipped == 9
        assert [i.id for i in _instances(db)] == ids_after_first

    @pytest.mark.asyncio
    async def test_default_window_starts_at_gym_today(self, db, generator, make_template):
        """Sin from_date la ventana empieza hoy en la zona del gimnasio (lunes 5 de enero)."""
        template = make_template(day_of_week=0)

        await generator.generate_instances(db, months_ahead=1)

        assert _instances(db, template.id)[0].schedule_date == date(2026, 1, 5)

    @pytest.mark.asyncio
    async def test_template_values_are_copied(self, db, generator, make_template):
        """Editar la plantilla después no cambia las instancias ya generadas."""
        template = make_template(day_of_week=0, capacity=12)
        await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        template.capacity = 20
        db.commit()
        await generator.generate_instances(db, months_ahead=2, from_date=WINDOW_START)

        instances = _instances(db, template.id)
        assert {i.capacity for i in instances if i.schedule_date <= date(2026, 2, 5)} == {12}
        assert {i.capacity for i in instances if i.schedule_date > date(2026, 2, 5)} == {20}

    @pytest.mark.asyncio
    async def test_inactive_templates_are_ignored(self, db, generator, make_template):
        make_template(day_of_week=0, is_active=False)

        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.created == 0
        assert _instances(db) == []

    @pytest.mark.asyncio
    async def test_months_ahead_must_be_positive(self, db, generator):
        with pytest.raises(ValueError):
            await generator.generate_instances(db, months_ahead=0, from_date=WINDOW_START)

    @pytest.mark.asyncio
    async def test_override_replaces_base_within_range(self, db, generator, make_template, second_coach):
        base = make_template(day_of_week=0, capacity=12)
        override = make_template(
            day_of_week=0, capacity=6, coach_id=second_coach.id, is_override=True,
            override_start_date=date(2026, 1, 12), override_end_date=date(2026, 1, 19),
        )

        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.errors == []
        assert [i.schedule_date for i in _instances(db, base.id)] == [
            date(2026, 1, 5), date(2026, 1, 26), date(2026, 2, 2)
        ]
        override_instances = _instances(db, override.id)
        assert [i.schedule_date for i in override_instances] == [date(2026, 1, 12), date(2026, 1, 19)]
        assert {i.coach_id for i in override_instances} == {second_coach.id}
        assert {i.capacity for i in override_instances} == {6}

    @pytest.mark.asyncio
    async def test_override_repoints_unbooked_instance(self, db, generator, make_template, second_coach):
        """Un override creado después toma la instancia ya generada si no tiene reservas."""
        base = make_template(day_of_week=0, capacity=12)
        await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)
        original = [i for i in _instances(db, base.id) if i.schedule_date == date(2026, 1, 12)][0]
        original_id = original.id

        override = make_template(
            day_of_week=0, capacity=8, coach_id=second_coach.id, is_override=True,
            override_start_date=date(2026, 1, 12), override_end_date=date(2026, 1, 12),
        )
        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.created == 1
        repointed = db.get(ClassInstance, original_id)
        assert repointed.template_id == override.id
        assert repointed.coach_id == second_coach.id
        assert repointed.capacity == 8
        assert db.query(ClassInstance).count() == 5

    @pytest.mark.asyncio
    async def test_override_keeps_booked_instance(
        self, db, seed, generator, make_template, make_entry, second_coach
    ):
        """Las instancias con reservas no se reasignan."""
        base = make_template(day_of_week=0, capacity=12)
        await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)
        booked = [i for i in _instances(db, base.id) if i.schedule_date == date(2026, 1, 19)][0]
        entry = make_entry(remaining=1, total=5)
        db.add(Booking(
            class_instance_id=booked.id, member_id=seed["member"].id, beneficiary_key=SELF_BENEFICIARY,
            member_package_id=entry.id, status=BookingStatus.CONFIRMED, booked_at=entry.purchase_date,
        ))
        booked.booked_count = 1
        db.commit()

        make_template(
            day_of_week=0, capacity=8, coach_id=second_coach.id, is_override=True,
            override_start_date=date(2026, 1, 19), override_end_date=date(2026, 1, 19),
        )
        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.created == 0
        db.refresh(booked)
        assert booked.template_id == base.id
        assert booked.coach_id == seed["coach"].id
        assert booked.capacity == 12

    @pytest.mark.asyncio
    async def test_failures_are_reported_and_run_continues(self, db, generator, make_template):
        """Un fallo en una fecha se anota en el informe y el resto se genera."""
        template = make_template(day_of_week=0)
        db.execute(text(
            "CREATE TRIGGER fail_one_date BEFORE INSERT ON class_instance "
            "WHEN NEW.schedule_date = '2026-01-12' "
            "BEGIN SELECT RAISE(ABORT, 'forced failure'); END"
        ))
        db.commit()

        report = await generator.generate_instances(db, months_ahead=1, from_date=WINDOW_START)

        assert report.created == 4
        assert len(report.errors) == 1
        assert f"template {template.id} date 2026-01-12" in report.errors[0]
        assert date(2026, 1, 12) not in [i.schedule_date for i in _instances(db, template.id)]
