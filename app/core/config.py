import os
from typing import Any, List, Optional, Union
from functools import lru_cache
import logging

from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Configurar el logger
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Permitir campos extra en .env
    )

    # Configuración básica
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Información del proyecto
    PROJECT_NAME: str = "JabClub API"
    PROJECT_DESCRIPTION: str = "API con FastAPI para reservas de clases y créditos de sesiones"
    VERSION: str = "0.1.0"

    # Debug mode
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "False").lower() in ("true", "1", "t")

    # Logging (LOG_DIR vacío = solo consola)
    LOG_DIR: str = "logs"
    LOG_RETENTION_DAYS: int = 14

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    DATABASE_URL: str = "sqlite:///./jabclub.db"

    @field_validator("DATABASE_URL", mode="before")
    def ensure_proper_url_format(cls, v: Optional[str]) -> str:
        """Asegura que DATABASE_URL esté en el formato correcto."""
        if not v:
            logger.warning("DATABASE_URL vacía, usando SQLite local")
            return "sqlite:///./jabclub.db"
        if v.startswith('postgres://'):
            logger.info("Corrigiendo formato de postgres:// a postgresql://")
            return 'postgresql://' + v[len('postgres://'):]
        return v

    # Configuración de Redis (vacío = caché deshabilitada)
    REDIS_URL: Optional[str] = None
    REDIS_POOL_MAX_CONNECTIONS: int = 50
    REDIS_POOL_SOCKET_TIMEOUT: int = 5
    REDIS_POOL_HEALTH_CHECK_INTERVAL: int = 30

    @field_validator("REDIS_URL", mode="before")
    def clean_redis_url(cls, v: Optional[str]) -> Any:
        if isinstance(v, str):
            # Eliminar comentarios y espacios
            v = v.split('#')[0].strip()
            return v or None
        return v

    # Caché
    CACHE_TTL_CLASS_LISTING: int = 120

    # Reglas de negocio del gimnasio
    GYM_TIMEZONE: str = "Africa/Cairo"
    CANCELLATION_WINDOW_MINUTES: int = 60
    GENERATION_MONTHS_AHEAD: int = 2

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    GENERATION_CRON_HOUR: int = 0
    EXPIRY_CRON_HOUR: int = 1

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True
    TRUST_PROXY_HEADERS: bool = False
    BOOKING_RATE_LIMIT: str = "30 per minute"

# Usar una función con caché para obtener la configuración
@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    logger.info("Configuración cargada correctamente")
    return settings
