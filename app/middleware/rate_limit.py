"""
Rate limiting con slowapi.

El almacenamiento se configura con RATE_LIMIT_STORAGE_URI ("memory://" en
desarrollo, "redis://..." en producción para compartir contadores entre
workers).
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_identifier(request: Request) -> str:
    """Obtener identificador único del cliente para rate limiting.

    - Por defecto usa la IP del socket (ASGI client).
    - Si TRUST_PROXY_HEADERS=True, usa el primer IP de X-Forwarded-For cuando existe.
    """
    if settings.TRUST_PROXY_HEADERS:
        fwd = request.headers.get("X-Forwarded-For")
        if fwd:
            return fwd.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    if request.client and request.client.host:
        return request.client.host
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)
logger.info(f"Rate limiting configurado (storage={settings.RATE_LIMIT_STORAGE_URI.split('://')[0]})")


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handler para rate limit exceeded con el mismo formato que los errores de dominio"""
    logger.warning(
        f"Rate limit exceeded para {get_client_identifier(request)} "
        f"en {request.url.path} - Límite: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Demasiadas solicitudes. Intenta nuevamente más tarde.",
            "code": "RATE_LIMITED",
            "details": {"limit": exc.detail},
        },
    )
