"""
Cliente Redis con connection pooling (redis.asyncio).

Redis es opcional: si REDIS_URL no está configurada las dependencias
devuelven ``None`` y los servicios trabajan sin caché.

Para usar en endpoints:
```python
@router.get("/classes")
async def list_classes(redis: Optional[Redis] = Depends(get_redis_client)):
    ...
```
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.asyncio import ConnectionPool, Redis

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Declaración global del pool de conexiones
REDIS_POOL: Optional[ConnectionPool] = None


async def initialize_redis_pool() -> None:
    """
    Inicializa el pool de conexiones a Redis.
    Debe llamarse una sola vez al iniciar la aplicación.
    """
    global REDIS_POOL
    if REDIS_POOL is not None:
        return

    settings = get_settings()
    if not settings.REDIS_URL:
        logger.warning("REDIS_URL no configurada: caché deshabilitada")
        return

    try:
        logger.info("Inicializando connection pool para Redis...")
        REDIS_POOL = ConnectionPool.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.REDIS_POOL_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_POOL_SOCKET_TIMEOUT,
            health_check_interval=settings.REDIS_POOL_HEALTH_CHECK_INTERVAL,
        )
        logger.info(f"Connection pool de Redis inicializado (max_connections={settings.REDIS_POOL_MAX_CONNECTIONS}).")
    except Exception as e:
        logger.error(f"Error al inicializar connection pool de Redis: {e}", exc_info=True)
        REDIS_POOL = None
        raise


async def get_redis_client() -> AsyncIterator[Optional[Redis]]:
    """
    Dependencia FastAPI: cliente Redis por request usando el pool compartido,
    o ``None`` si Redis no está disponible.
    """
    if REDIS_POOL is None:
        yield None
        return

    client = Redis(connection_pool=REDIS_POOL)
    try:
        yield client
    finally:
        # Cerrar cliente para devolver la conexión al pool
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error cerrando cliente Redis: {e}")


@asynccontextmanager
async def get_redis_for_jobs() -> AsyncIterator[Optional[Redis]]:
    """
    Context manager para tareas programadas (APScheduler).
    Para endpoints usar get_redis_client() con Depends().
    """
    if REDIS_POOL is None:
        yield None
        return

    client = Redis(connection_pool=REDIS_POOL)
    try:
        yield client
    finally:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error cerrando cliente Redis en background job: {e}")


async def close_redis_client() -> None:
    """
    Cierra el pool de conexiones Redis al finalizar la aplicación.
    """
    global REDIS_POOL

    if REDIS_POOL:
        logger.info("Cerrando connection pool de Redis...")
        await REDIS_POOL.disconnect()
        REDIS_POOL = None
        logger.info("Connection pool de Redis cerrado.")
