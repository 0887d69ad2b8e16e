from typing import Optional
from pydantic import BaseModel, field_validator
from datetime import datetime

from app.models.booking import BookingStatus


class BookingCreate(BaseModel):
    class_instance_id: int
    child_id: Optional[int] = None  # None = el propio miembro


class Booking(BaseModel):
    id: int
    class_instance_id: int
    member_id: int
    child_id: Optional[int] = None
    member_package_id: int
    status: BookingStatus
    booked_at: datetime
    cancelled_at: Optional[datetime] = None
    attendance_marked_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AttendanceUpdate(BaseModel):
    status: BookingStatus

    @field_validator("status")
    def only_attendance_statuses(cls, v: BookingStatus) -> BookingStatus:
        if v not in (BookingStatus.ATTENDED, BookingStatus.NO_SHOW):
            raise ValueError("status debe ser 'attended' o 'no_show'")
        return v


class RosterEntry(BaseModel):
    booking_id: int
    member_id: int
    member_name: Optional[str] = None
    child_id: Optional[int] = None
    child_name: Optional[str] = None
    status: BookingStatus
    attendance_marked_at: Optional[datetime] = None
