"""
Utilidades para el manejo de zonas horarias en el sistema.

Las horas de las plantillas se guardan en hora local del gimnasio; las
instancias de clase se guardan en UTC.
"""
from datetime import date, datetime, time, timezone
from typing import Optional
import pytz


def convert_naive_to_gym_timezone(naive_dt: datetime, gym_timezone: str) -> datetime:
    """
    Interpreta un datetime naive como hora local del gimnasio y lo devuelve
    aware en la zona horaria del gimnasio.

    Args:
        naive_dt: Datetime naive que representa la hora local del gimnasio
        gym_timezone: Zona horaria del gimnasio (ej: 'Africa/Cairo')

    Returns:
        Datetime aware en la zona horaria del gimnasio
    """
    if naive_dt.tzinfo is not None:
        raise ValueError("El datetime debe ser naive (sin timezone)")

    tz = pytz.timezone(gym_timezone)
    return tz.localize(naive_dt)


def convert_gym_time_to_utc(naive_dt: datetime, gym_timezone: str) -> datetime:
    """
    Convierte un datetime naive (hora local del gimnasio) a UTC.
    """
    gym_aware = convert_naive_to_gym_timezone(naive_dt, gym_timezone)
    return gym_aware.astimezone(timezone.utc)


def local_slot_to_utc(day: date, start: time, gym_timezone: str) -> datetime:
    """
    Combina una fecha y una hora local del gimnasio y devuelve el instante en UTC.
    """
    return convert_gym_time_to_utc(datetime.combine(day, start), gym_timezone)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Devuelve el datetime en UTC. Los valores naive se asumen ya en UTC
    (así los devuelven algunos drivers, por ejemplo SQLite).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_gym_local(dt: datetime, gym_timezone: str) -> datetime:
    """Convierte un instante a la hora local del gimnasio."""
    tz = pytz.timezone(gym_timezone)
    return ensure_utc(dt).astimezone(tz)


def gym_local_date(dt: datetime, gym_timezone: str) -> date:
    """Fecha de calendario del gimnasio correspondiente a un instante."""
    return to_gym_local(dt, gym_timezone).date()
