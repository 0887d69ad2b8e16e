from typing import Any, List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.core.auth import AuthContext
from app.core.deps import get_attendance_service, verify_coach_access
from app.db.session import get_db
from app.schemas.booking import AttendanceUpdate, Booking, RosterEntry
from app.services.attendance import AttendanceService

router = APIRouter()


@router.get("/classes/{class_instance_id}/roster", response_model=List[RosterEntry])
async def get_roster(
    class_instance_id: int = Path(..., description="ID of the class instance"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_coach_access),
    attendance_service: AttendanceService = Depends(get_attendance_service),
) -> Any:
    """
    Procesa la consulta de la lista de reservas de una clase.

    Solo el entrenador asignado a la clase (o un administrador) puede verla.
    """
    return await attendance_service.get_class_roster(
        db, actor_id=current_user.user_id, class_instance_id=class_instance_id, actor_role=current_user.role
    )


@router.post("/bookings/{booking_id}", response_model=Booking)
async def mark_attendance(
    attendance_in: AttendanceUpdate,
    booking_id: int = Path(..., description="ID of the booking"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_coach_access),
    attendance_service: AttendanceService = Depends(get_attendance_service),
) -> Any:
    """
    Marca la asistencia de una reserva confirmada.

    Args:
        attendance_in: Estado final ('attended' o 'no_show')
        booking_id: ID de la reserva
        db: Sesión de base de datos
        current_user: Entrenador o administrador autenticado

    Returns:
        La reserva actualizada

    Raises:
        HTTPException 400: NOT_SAME_DAY si hoy no es el día de la clase
        HTTPException 403: El usuario no es el entrenador de la clase
        HTTPException 409: La reserva no está confirmada
    """
    return await attendance_service.mark_attendance(
        db,
        actor_id=current_user.user_id,
        booking_id=booking_id,
        status=attendance_in.status,
        actor_role=current_user.role,
    )
