"""
Generación de instancias de clase a partir de las plantillas semanales.

Para cada plantilla activa y cada fecha de la ventana cuyo día de la semana
coincide, se crea una ClassInstance si todavía no existe para
(plantilla, fecha). Los valores (aforo, entrenador, sede, tipo) se copian en
el momento de generar; editar la plantilla después no cambia las instancias
ya creadas. Re-ejecutar la generación no crea duplicados.

Cada creación va en su propio SAVEPOINT: un fallo se anota en el informe y la
generación continúa con el resto de plantillas y fechas.
"""
import logging
from datetime import date, timedelta
from typing import Iterator, List, Optional

from dateutil.relativedelta import relativedelta
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import get_settings
from app.core.timezone_utils import gym_local_date, local_slot_to_utc
from app.db.transactions import retry_on_db_error
from app.models.schedule import ClassInstance, ScheduleTemplate
from app.repositories.booking import booking_repository
from app.repositories.schedule import class_instance_repository, schedule_template_repository
from app.schemas.schedule import GenerationReport
from app.services.cache_service import CacheService

logger = logging.getLogger(__name__)


def matching_dates(day_of_week: int, start: date, end: date) -> Iterator[date]:
    """Fechas entre start y end (ambas incluidas) que caen en day_of_week (0 = lunes)"""
    current = start + timedelta(days=(day_of_week - start.weekday()) % 7)
    while current <= end:
        yield current
        current += timedelta(days=7)


def override_covers(override: ScheduleTemplate, template: ScheduleTemplate, day: date) -> bool:
    """Indica si un override sustituye a la plantilla base en esa fecha"""
    if not (override.override_start_date <= day <= override.override_end_date):
        return False
    if override.base_template_id is not None:
        return override.base_template_id == template.id
    return (
        override.location_id == template.location_id
        and override.day_of_week == template.day_of_week
        and override.start_time == template.start_time
    )


class ScheduleGeneratorService:
    def __init__(self, clock: Clock = system_clock, gym_timezone: Optional[str] = None):
        self.clock = clock
        self.gym_timezone = gym_timezone or get_settings().GYM_TIMEZONE

    def _slot(self, template: ScheduleTemplate, day: date):
        start_utc = local_slot_to_utc(day, template.start_time, self.gym_timezone)
        return start_utc, start_utc + timedelta(minutes=template.duration_minutes)

    def _create_instance(self, db: Session, template: ScheduleTemplate, day: date, report: GenerationReport) -> None:
        start_utc, end_utc = self._slot(template, day)
        try:
            with db.begin_nested():
                db.add(ClassInstance(
                    template_id=template.id,
                    schedule_date=day,
                    start_time=start_utc,
                    end_time=end_utc,
                    class_type_id=template.class_type_id,
                    coach_id=template.coach_id,
                    location_id=template.location_id,
                    capacity=template.capacity,
                    booked_count=0,
                    is_cancelled=False,
                ))
            report.created += 1
        except SQLAlchemyError as e:
            message = f"template {template.id} date {day.isoformat()}: {e.__class__.__name__}: {getattr(e, 'orig', e)}"
            report.errors.append(message)
            logger.error(f"Error generando instancia ({message})")

    def _apply_override(self, db: Session, override: ScheduleTemplate, day: date, report: GenerationReport) -> None:
        """
        Si ya existe una instancia de otra plantilla en la misma sede y hora,
        se reasigna al override siempre que no tenga reservas; si no existe,
        se crea una nueva.
        """
        start_utc, end_utc = self._slot(override, day)
        clashing = [
            instance for instance in class_instance_repository.get_at_location_and_time(
                db, location_id=override.location_id, start_time=start_utc
            )
            if instance.template_id != override.id
        ]
        if not clashing:
            self._create_instance(db, override, day, report)
            return

        target = clashing[0]
        if booking_repository.count_active_by_instance(db, class_instance_id=target.id) > 0:
            logger.info(
                f"Override {override.id}: la instancia {target.id} del {day.isoformat()} "
                f"tiene reservas, se mantiene sin cambios"
            )
            report.skipped += 1
            return

        try:
            with db.begin_nested():
                target.template_id = override.id
                target.schedule_date = day
                target.end_time = end_utc
                target.class_type_id = override.class_type_id
                target.coach_id = override.coach_id
                target.capacity = override.capacity
            report.created += 1
            logger.debug(f"Instancia {target.id} reasignada al override {override.id}")
        except SQLAlchemyError as e:
            message = f"override {override.id} date {day.isoformat()}: {e.__class__.__name__}: {getattr(e, 'orig', e)}"
            report.errors.append(message)
            logger.error(f"Error aplicando override ({message})")

    @retry_on_db_error()
    async def generate_instances(
        self,
        db: Session,
        months_ahead: Optional[int] = None,
        from_date: Optional[date] = None,
        redis_client: Optional[Redis] = None,
    ) -> GenerationReport:
        """
        Materializar instancias para la ventana [hoy, hoy + months_ahead meses].

        Args:
            db: Sesión de base de datos
            months_ahead: Meses hacia adelante (por defecto GENERATION_MONTHS_AHEAD)
            from_date: Primer día de la ventana (por defecto hoy en la zona del gimnasio)
            redis_client: Cliente Redis opcional para invalidar listados

        Returns:
            GenerationReport con created, skipped y errors
        """
        if months_ahead is None:
            months_ahead = get_settings().GENERATION_MONTHS_AHEAD
        if months_ahead < 1:
            raise ValueError("months_ahead debe ser al menos 1")

        start = from_date or gym_local_date(self.clock.now(), self.gym_timezone)
        end = start + relativedelta(months=months_ahead)
        logger.info(f"Generando instancias de clase entre {start.isoformat()} y {end.isoformat()}")

        templates: List[ScheduleTemplate] = schedule_template_repository.get_active(db)
        base_templates = [t for t in templates if not t.is_override]
        overrides = [t for t in templates if t.is_override]
        existing = class_instance_repository.get_existing_keys(
            db, template_ids=[t.id for t in templates], start_date=start, end_date=end
        )

        report = GenerationReport()

        for template in base_templates:
            for day in matching_dates(template.day_of_week, start, end):
                if (template.id, day) in existing:
                    report.skipped += 1
                    continue
                if any(override_covers(o, template, day) for o in overrides):
                    report.skipped += 1
                    continue
                self._create_instance(db, template, day, report)

        for override in overrides:
            window_start = max(start, override.override_start_date)
            window_end = min(end, override.override_end_date)
            for day in matching_dates(override.day_of_week, window_start, window_end):
                if (override.id, day) in existing:
                    report.skipped += 1
                    continue
                self._apply_override(db, override, day, report)

        db.commit()

        logger.info(
            f"Generación completada: {report.created} creadas, {report.skipped} omitidas, "
            f"{len(report.errors)} errores"
        )
        if report.created:
            await CacheService.invalidate_class_listings(redis_client)
        return report


schedule_generator_service = ScheduleGeneratorService()
