import logging
from datetime import datetime, timedelta
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import get_settings
from app.core.exceptions import ClassNotFoundError, NotFoundError, ValidationFailedError
from app.core.timezone_utils import ensure_utc
from app.models.schedule import ClassInstance, ClassType, Location, ScheduleTemplate
from app.models.user import UserRole
from app.repositories.schedule import class_instance_repository, schedule_template_repository
from app.repositories.user import user_repository
from app.schemas.schedule import (
    ClassInstance as ClassInstanceSchema,
    ScheduleTemplateCreate,
    ScheduleTemplateUpdate,
)
from app.services.cache_service import CLASS_LISTING_PREFIX, CacheService

logger = logging.getLogger(__name__)


class ScheduleTemplateService:
    """
    Alta, edición y desactivación de plantillas semanales. Las plantillas no se
    eliminan nunca y los cambios solo afectan a generaciones futuras.
    """

    def _validate_refs(
        self, db: Session, *, coach_id: Optional[int], location_id: Optional[int],
        class_type_id: Optional[int] = None
    ) -> Optional[ClassType]:
        if coach_id is not None:
            coach = user_repository.get(db, id=coach_id)
            if not coach or coach.role != UserRole.COACH:
                raise ValidationFailedError("El entrenador indicado no existe", details={"coach_id": coach_id})
        if location_id is not None:
            location = db.get(Location, location_id)
            if not location or not location.is_active:
                raise NotFoundError("Sede no encontrada", details={"location_id": location_id})
        if class_type_id is not None:
            class_type = db.get(ClassType, class_type_id)
            if not class_type:
                raise NotFoundError("Tipo de clase no encontrado", details={"class_type_id": class_type_id})
            return class_type
        return None

    async def create_template(self, db: Session, template_in: ScheduleTemplateCreate) -> ScheduleTemplate:
        class_type = self._validate_refs(
            db, coach_id=template_in.coach_id, location_id=template_in.location_id,
            class_type_id=template_in.class_type_id
        )
        if template_in.base_template_id is not None:
            base = schedule_template_repository.get(db, id=template_in.base_template_id)
            if not base or base.is_override:
                raise ValidationFailedError(
                    "La plantilla base no existe o es un override",
                    details={"base_template_id": template_in.base_template_id},
                )

        data = template_in.model_dump()
        if data.get("duration_minutes") is None:
            data["duration_minutes"] = class_type.duration_minutes
        data["is_active"] = True

        template = schedule_template_repository.create(db, obj_in=data)
        logger.info(
            f"Plantilla {template.id} creada: día {template.day_of_week} {template.start_time}, "
            f"sede {template.location_id}, entrenador {template.coach_id}"
            f"{' (override)' if template.is_override else ''}"
        )
        return template

    async def get_template(self, db: Session, template_id: int) -> ScheduleTemplate:
        template = schedule_template_repository.get(db, id=template_id)
        if not template:
            raise NotFoundError("Plantilla no encontrada", details={"template_id": template_id})
        return template

    async def update_template(
        self, db: Session, template_id: int, template_in: ScheduleTemplateUpdate
    ) -> ScheduleTemplate:
        """Editar una plantilla. Las instancias ya generadas no se modifican."""
        template = await self.get_template(db, template_id)
        self._validate_refs(db, coach_id=template_in.coach_id, location_id=template_in.location_id)

        update_data = template_in.model_dump(exclude_unset=True)
        if not template.is_override and (
            "override_start_date" in update_data or "override_end_date" in update_data
        ):
            raise ValidationFailedError("Las fechas de override solo aplican a plantillas override")
        start = update_data.get("override_start_date", template.override_start_date)
        end = update_data.get("override_end_date", template.override_end_date)
        if template.is_override and (start is None or end is None or end < start):
            raise ValidationFailedError("Rango de override inválido")

        template = schedule_template_repository.update(db, db_obj=template, obj_in=update_data)
        logger.info(f"Plantilla {template.id} actualizada: {sorted(update_data.keys())}")
        return template

    async def deactivate_template(self, db: Session, template_id: int) -> ScheduleTemplate:
        template = await self.get_template(db, template_id)
        template = schedule_template_repository.update(db, db_obj=template, obj_in={"is_active": False})
        logger.info(f"Plantilla {template.id} desactivada")
        return template

    async def list_templates(self, db: Session, active_only: bool = False) -> List[ScheduleTemplate]:
        return schedule_template_repository.get_filtered(db, active_only=active_only)


class ClassInstanceService:
    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    async def get_class(self, db: Session, class_instance_id: int) -> ClassInstance:
        instance = class_instance_repository.get(db, id=class_instance_id)
        if not instance:
            raise ClassNotFoundError(details={"class_instance_id": class_instance_id})
        return instance

    async def list_classes(
        self,
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        redis_client: Optional[Redis] = None,
    ) -> List[ClassInstanceSchema]:
        """Clases no canceladas en el rango (por defecto, los próximos 7 días) con plazas libres"""
        start = ensure_utc(start) if start else self.clock.now().replace(second=0, microsecond=0)
        end = ensure_utc(end) if end else start + timedelta(days=7)
        if end < start:
            raise ValidationFailedError("end debe ser posterior a start")

        async def db_fetch():
            instances = class_instance_repository.get_by_date_range(db, start_time=start, end_time=end)
            return [ClassInstanceSchema.model_validate(i) for i in instances]

        cache_key = f"{CLASS_LISTING_PREFIX}:{start.isoformat()}:{end.isoformat()}"
        return await CacheService.get_or_set(
            redis_client,
            cache_key,
            db_fetch,
            ClassInstanceSchema,
            expiry_seconds=get_settings().CACHE_TTL_CLASS_LISTING,
            is_list=True,
        )


schedule_template_service = ScheduleTemplateService()
class_instance_service = ClassInstanceService()
