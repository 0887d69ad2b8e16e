from typing import List, Optional, Set, Tuple
from datetime import date, datetime

from pydantic import BaseModel
from sqlalchemy import update as sql_update
from sqlalchemy.orm import Session

from app.models.schedule import ScheduleTemplate, ClassInstance
from app.repositories.base import BaseRepository
from app.schemas.schedule import ScheduleTemplateCreate, ScheduleTemplateUpdate


class ScheduleTemplateRepository(BaseRepository[ScheduleTemplate, ScheduleTemplateCreate, ScheduleTemplateUpdate]):
    def get_active(self, db: Session) -> List[ScheduleTemplate]:
        """Obtener todas las plantillas activas (base y overrides)"""
        return db.query(ScheduleTemplate).filter(
            ScheduleTemplate.is_active.is_(True)
        ).order_by(ScheduleTemplate.id).all()

    def get_filtered(self, db: Session, *, active_only: bool = False) -> List[ScheduleTemplate]:
        query = db.query(ScheduleTemplate)
        if active_only:
            query = query.filter(ScheduleTemplate.is_active.is_(True))
        return query.order_by(ScheduleTemplate.day_of_week, ScheduleTemplate.start_time).all()


class ClassInstanceRepository(BaseRepository[ClassInstance, BaseModel, BaseModel]):
    def get_existing_keys(
        self, db: Session, *, template_ids: List[int], start_date: date, end_date: date
    ) -> Set[Tuple[int, date]]:
        """Pares (template_id, schedule_date) ya generados dentro del rango"""
        if not template_ids:
            return set()
        rows = db.query(ClassInstance.template_id, ClassInstance.schedule_date).filter(
            ClassInstance.template_id.in_(template_ids),
            ClassInstance.schedule_date >= start_date,
            ClassInstance.schedule_date <= end_date
        ).all()
        return {(row[0], row[1]) for row in rows}

    def get_at_location_and_time(
        self, db: Session, *, location_id: int, start_time: datetime
    ) -> List[ClassInstance]:
        """Instancias no canceladas que ocupan la misma sede a la misma hora"""
        return db.query(ClassInstance).filter(
            ClassInstance.location_id == location_id,
            ClassInstance.start_time == start_time,
            ClassInstance.is_cancelled.is_(False)
        ).order_by(ClassInstance.id).all()

    def get_for_update(self, db: Session, *, instance_id: int) -> Optional[ClassInstance]:
        """Obtener la instancia bloqueando la fila hasta el fin de la transacción"""
        return db.query(ClassInstance).filter(
            ClassInstance.id == instance_id
        ).with_for_update().first()

    def reserve_seat(self, db: Session, *, instance_id: int) -> bool:
        """
        Incrementa booked_count solo si queda plaza. Devuelve False si la clase
        está llena o cancelada. La condición se evalúa en la propia sentencia
        UPDATE, así que dos transacciones concurrentes no pueden ocupar la
        misma última plaza.
        """
        result = db.execute(
            sql_update(ClassInstance)
            .where(
                ClassInstance.id == instance_id,
                ClassInstance.is_cancelled.is_(False),
                ClassInstance.booked_count < ClassInstance.capacity
            )
            .values(booked_count=ClassInstance.booked_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release_seat(self, db: Session, *, instance_id: int) -> bool:
        """Libera una plaza (nunca por debajo de cero)"""
        result = db.execute(
            sql_update(ClassInstance)
            .where(
                ClassInstance.id == instance_id,
                ClassInstance.booked_count > 0
            )
            .values(booked_count=ClassInstance.booked_count - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def get_by_date_range(
        self, db: Session, *, start_time: datetime, end_time: datetime,
        include_cancelled: bool = False, skip: int = 0, limit: int = 200
    ) -> List[ClassInstance]:
        """Instancias cuyo inicio cae dentro del rango, ordenadas por hora"""
        query = db.query(ClassInstance).filter(
            ClassInstance.start_time >= start_time,
            ClassInstance.start_time <= end_time
        )
        if not include_cancelled:
            query = query.filter(ClassInstance.is_cancelled.is_(False))
        return query.order_by(ClassInstance.start_time, ClassInstance.id).offset(skip).limit(limit).all()


# Instantiate repositories
schedule_template_repository = ScheduleTemplateRepository(ScheduleTemplate)
class_instance_repository = ClassInstanceRepository(ClassInstance)
