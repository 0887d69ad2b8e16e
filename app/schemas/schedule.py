from typing import Optional, List
from pydantic import BaseModel, Field, model_validator
from datetime import datetime, time, date


# ScheduleTemplate schemas
class ScheduleTemplateBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = lunes ... 6 = domingo")
    start_time: time = Field(..., description="Hora local del gimnasio")
    duration_minutes: Optional[int] = Field(None, gt=0)
    class_type_id: int
    coach_id: int
    location_id: int
    capacity: int = Field(..., ge=1)


class ScheduleTemplateCreate(ScheduleTemplateBase):
    is_override: bool = False
    override_start_date: Optional[date] = None
    override_end_date: Optional[date] = None
    base_template_id: Optional[int] = None

    @model_validator(mode='after')
    def check_override_range(self):
        if self.is_override:
            if self.override_start_date is None or self.override_end_date is None:
                raise ValueError('Un override requiere override_start_date y override_end_date')
            if self.override_end_date < self.override_start_date:
                raise ValueError('override_end_date debe ser posterior o igual a override_start_date')
        elif self.override_start_date or self.override_end_date or self.base_template_id:
            raise ValueError('Las fechas de override solo aplican cuando is_override es True')
        return self


class ScheduleTemplateUpdate(BaseModel):
    start_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    coach_id: Optional[int] = None
    location_id: Optional[int] = None
    capacity: Optional[int] = Field(None, ge=1)
    override_start_date: Optional[date] = None
    override_end_date: Optional[date] = None


class ScheduleTemplate(ScheduleTemplateBase):
    id: int
    duration_minutes: int
    is_active: bool
    is_override: bool
    override_start_date: Optional[date] = None
    override_end_date: Optional[date] = None
    base_template_id: Optional[int] = None

    model_config = {"from_attributes": True}


# ClassInstance schemas
class ClassInstance(BaseModel):
    id: int
    template_id: Optional[int] = None
    schedule_date: date
    start_time: datetime
    end_time: datetime
    class_type_id: int
    coach_id: int
    location_id: int
    capacity: int
    booked_count: int
    available_spots: int
    is_cancelled: bool

    model_config = {"from_attributes": True}


class ClassInstanceCancelResult(BaseModel):
    class_instance_id: int
    cancelled_bookings: int


# Generación
class GenerationRequest(BaseModel):
    months_ahead: int = Field(2, ge=1, le=12)


class GenerationReport(BaseModel):
    created: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
