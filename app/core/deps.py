"""
Dependencias centrales para la aplicación.

Comprobación de roles en el borde HTTP y proveedores de servicios (los tests
los sustituyen con ``app.dependency_overrides`` para inyectar un reloj fijo).
"""
from typing import Callable

from fastapi import Depends, HTTPException, status

from app.core.auth import AuthContext, get_current_user
from app.models.user import UserRole
from app.services.attendance import AttendanceService, attendance_service
from app.services.booking import BookingService, booking_service
from app.services.credit_ledger import CreditLedgerService, credit_ledger_service
from app.services.schedule import ClassInstanceService, class_instance_service
from app.services.schedule_generator import ScheduleGeneratorService, schedule_generator_service


def require_roles(*roles: UserRole) -> Callable:
    """
    Devuelve una dependencia que exige que el usuario tenga uno de los roles indicados.
    """
    async def _verify(current_user: AuthContext = Depends(get_current_user)) -> AuthContext:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permisos insuficientes para realizar esta acción"
            )
        return current_user
    return _verify


verify_member_access = require_roles(UserRole.MEMBER, UserRole.ADMIN)
verify_coach_access = require_roles(UserRole.COACH, UserRole.ADMIN)
verify_admin_access = require_roles(UserRole.ADMIN)


def get_booking_service() -> BookingService:
    return booking_service


def get_attendance_service() -> AttendanceService:
    return attendance_service


def get_credit_ledger_service() -> CreditLedgerService:
    return credit_ledger_service


def get_schedule_generator_service() -> ScheduleGeneratorService:
    return schedule_generator_service


def get_class_instance_service() -> ClassInstanceService:
    return class_instance_service
