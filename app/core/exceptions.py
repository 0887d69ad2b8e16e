"""
Excepciones de dominio para reservas, créditos y asistencia.

Cada excepción lleva un código estable (``code``) que el cliente usa para
mostrar mensajes amigables, un ``status_code`` HTTP y ``details`` opcionales.
El manejador registrado en ``register_exception_handlers`` las convierte en
respuestas JSON ``{"detail", "code", "details"}``.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingDomainError(Exception):
    """Base de todos los errores de dominio."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"
    default_message: str = "Operación no permitida"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationFailedError(BookingDomainError):
    code = "VALIDATION_ERROR"
    default_message = "Datos inválidos"


class NotFoundError(BookingDomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Recurso no encontrado"


class ClassNotFoundError(NotFoundError):
    code = "CLASS_NOT_FOUND"
    default_message = "Clase no encontrada o cancelada"


class AlreadyBookedError(BookingDomainError):
    code = "ALREADY_BOOKED"
    default_message = "Ya existe una reserva activa para esta clase"


class ClassFullError(BookingDomainError):
    code = "CLASS_FULL"
    default_message = "La clase está completa"


class ClassAlreadyStartedError(BookingDomainError):
    code = "CLASS_ALREADY_STARTED"
    default_message = "No se puede reservar una clase que ya ha comenzado"


class InsufficientCreditsError(BookingDomainError):
    code = "INSUFFICIENT_CREDITS"
    default_message = "No tienes créditos disponibles"


class InvalidCreditOperationError(BookingDomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_CREDIT_OPERATION"
    default_message = "Operación de créditos inválida"


class CancellationWindowPassedError(BookingDomainError):
    code = "CANCELLATION_WINDOW_PASSED"
    default_message = "Ya no es posible cancelar esta reserva"


class ForbiddenError(BookingDomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Permisos insuficientes para esta operación"


class NotSameDayError(BookingDomainError):
    code = "NOT_SAME_DAY"
    default_message = "La asistencia solo puede marcarse el día de la clase"


class InvalidTransitionError(BookingDomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"
    default_message = "Transición de estado no permitida"


class ServerError(BookingDomainError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "SERVER_ERROR"
    default_message = "Error interno, inténtalo de nuevo"


async def booking_domain_error_handler(request: Request, exc: BookingDomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} en {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} en {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "details": jsonable_encoder(exc.details),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingDomainError, booking_domain_error_handler)
