"""
Reloj inyectable para las reglas que dependen de la hora actual
(expiración de paquetes, ventana de cancelación, marcado de asistencia).
"""
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Hora actual como datetime aware en UTC."""
        ...


class SystemClock:
    """Reloj real del sistema."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Reloj congelado para tests. Acepta datetimes naive (se asumen UTC)
    y permite avanzar manualmente.
    """

    def __init__(self, current: datetime):
        self.current = current if current.tzinfo else current.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)

    def set(self, current: datetime) -> None:
        self.current = current if current.tzinfo else current.replace(tzinfo=timezone.utc)


system_clock = SystemClock()
