import os

# Configuración de pruebas: sin scheduler, sin Redis y sin rate limiting
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["GYM_TIMEZONE"] = "Africa/Cairo"
os.environ["DATABASE_URL"] = "sqlite:///./jabclub_test.db"

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from app.core.clock import FixedClock
from app.db.base import Base
from app.db.session import build_engine
from app.models.package import MemberPackage, SessionPackage
from app.models.schedule import ClassInstance, ClassType, Location, ScheduleTemplate
from app.models.user import Child, User, UserRole

GYM_TIMEZONE = "Africa/Cairo"
# Lunes 5 de enero de 2026, 08:00 UTC (10:00 en El Cairo, UTC+2 en invierno)
NOW = datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """
    Base de datos SQLite en fichero por test: permite que varios hilos
    usen conexiones distintas contra los mismos datos.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """
    Crea una sesión de base de datos fresca para cada test y la cierra al finalizar.
    """
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def seed(db):
    """
    Datos base: un admin, un entrenador, un miembro con un hijo, una sede,
    un tipo de clase y un paquete de 5 sesiones válido 30 días.
    """
    admin = User(email="admin@jabclub.test", first_name="Ana", role=UserRole.ADMIN, is_active=True)
    coach = User(email="coach@jabclub.test", first_name="Carlos", role=UserRole.COACH, is_active=True)
    member = User(email="member@jabclub.test", first_name="Mona", last_name="Adel",
                  role=UserRole.MEMBER, is_active=True)
    other_member = User(email="other@jabclub.test", first_name="Omar", role=UserRole.MEMBER, is_active=True)
    db.add_all([admin, coach, member, other_member])
    db.flush()

    child = Child(parent_id=member.id, first_name="Yusuf", age=9)
    location = Location(name="Sala principal", capacity=20, is_active=True)
    class_type = ClassType(name="Boxeo", duration_minutes=60)
    package = SessionPackage(name="5 sesiones", session_count=5, price=Decimal("500.00"),
                             expiry_days=30, is_active=True)
    db.add_all([child, location, class_type, package])
    db.commit()

    return {
        "admin": admin,
        "coach": coach,
        "member": member,
        "other_member": other_member,
        "child": child,
        "location": location,
        "class_type": class_type,
        "package": package,
    }


@pytest.fixture
def make_instance(db, seed):
    """Crea una instancia de clase suelta (sin plantilla)."""
    def _make(start: datetime = NOW + timedelta(days=1), capacity: int = 10, coach=None):
        instance = ClassInstance(
            template_id=None,
            schedule_date=start.date(),
            start_time=start,
            end_time=start + timedelta(minutes=60),
            class_type_id=seed["class_type"].id,
            coach_id=(coach or seed["coach"]).id,
            location_id=seed["location"].id,
            capacity=capacity,
            booked_count=0,
            is_cancelled=False,
        )
        db.add(instance)
        db.commit()
        return instance
    return _make


@pytest.fixture
def make_template(db, seed):
    def _make(day_of_week: int = 0, start: time = time(18, 0), capacity: int = 12, **kwargs):
        template = ScheduleTemplate(
            day_of_week=day_of_week,
            start_time=start,
            duration_minutes=kwargs.pop("duration_minutes", 60),
            class_type_id=seed["class_type"].id,
            coach_id=kwargs.pop("coach_id", seed["coach"].id),
            location_id=seed["location"].id,
            capacity=capacity,
            is_active=kwargs.pop("is_active", True),
            is_override=kwargs.pop("is_override", False),
            **kwargs,
        )
        db.add(template)
        db.commit()
        return template
    return _make


@pytest.fixture
def make_entry(db, seed):
    """Crea directamente una entrada del ledger para un miembro."""
    def _make(member=None, remaining: int = 5, total: int = None, expires_in: timedelta = timedelta(days=30),
              purchased_at: datetime = NOW, is_expired: bool = False):
        entry = MemberPackage(
            member_id=(member or seed["member"]).id,
            package_id=seed["package"].id,
            sessions_remaining=remaining,
            sessions_total=total if total is not None else max(remaining, 1),
            purchase_date=purchased_at,
            expiry_date=purchased_at + expires_in,
            is_expired=is_expired,
        )
        db.add(entry)
        db.commit()
        return entry
    return _make


@pytest.fixture(scope="function")
def client(db, clock):
    """
    Cliente de prueba con la sesión del test, servicios con reloj fijo
    y sin Redis.
    """
    from fastapi.testclient import TestClient

    from app.core import deps
    from app.db.redis_client import get_redis_client
    from app.db.session import get_db
    from app.main import app
    from app.services.attendance import AttendanceService
    from app.services.booking import BookingService
    from app.services.credit_ledger import CreditLedgerService
    from app.services.schedule import ClassInstanceService
    from app.services.schedule_generator import ScheduleGeneratorService

    def override_get_db():
        try:
            yield db
        finally:
            pass

    async def override_get_redis_client():
        yield None

    booking_service = BookingService(clock=clock)
    attendance_service = AttendanceService(clock=clock, gym_timezone=GYM_TIMEZONE)
    ledger_service = CreditLedgerService(clock=clock)
    generator_service = ScheduleGeneratorService(clock=clock, gym_timezone=GYM_TIMEZONE)
    class_instance_service = ClassInstanceService(clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = override_get_redis_client
    app.dependency_overrides[deps.get_booking_service] = lambda: booking_service
    app.dependency_overrides[deps.get_attendance_service] = lambda: attendance_service
    app.dependency_overrides[deps.get_credit_ledger_service] = lambda: ledger_service
    app.dependency_overrides[deps.get_schedule_generator_service] = lambda: generator_service
    app.dependency_overrides[deps.get_class_instance_service] = lambda: class_instance_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed):
    """
    Cabeceras Bearer por rol, firmadas con la SECRET_KEY de la configuración.
    """
    from app.core.auth import create_access_token

    def _headers(user):
        token = create_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers
