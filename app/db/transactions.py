import asyncio
import logging
from functools import wraps

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.core.exceptions import ServerError

logger = logging.getLogger(__name__)


def retry_on_db_error(max_retries: int = 2, delay: float = 0.2):
    """
    Decorator para métodos async de servicio con firma ``(self, db, ...)``.

    Ante un error transitorio de BD (conexión cerrada, bloqueo, timeout) hace
    rollback y reintenta la operación completa. Si el último intento también
    falla se lanza ``ServerError``. Los errores de integridad no se reintentan.

    Args:
        max_retries: Número total de intentos (default: 2, es decir un reintento)
        delay: Espera base entre intentos en segundos
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, db, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return await func(self, db, *args, **kwargs)
                except IntegrityError:
                    raise
                except (OperationalError, DBAPIError) as e:
                    db.rollback()
                    if attempt < max_retries - 1:
                        wait_time = delay * (attempt + 1)
                        logger.warning(
                            f"DB error in {func.__name__}, retry {attempt + 1}/{max_retries - 1} "
                            f"after {wait_time}s: {str(e)}"
                        )
                        await asyncio.sleep(wait_time)
                    else:
                        logger.error(
                            f"Max retries ({max_retries}) reached for {func.__name__}: {str(e)}",
                            exc_info=True
                        )
                        raise ServerError(details={"operation": func.__name__}) from e
        return wrapper
    return decorator
