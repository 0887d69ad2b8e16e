import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

# Importar la función de configuración de logging
from app.core.logging_config import setup_logging

# Llamar a la configuración de logging ANTES de importar/crear otros elementos
setup_logging()

# Ahora importar el resto
from app.api.v1.api import api_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.scheduler import init_scheduler, shutdown_scheduler
from app.db.redis_client import initialize_redis_pool, close_redis_client
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

# Obtener la instancia de configuración al inicio del módulo
settings_instance = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Startup iniciado...")

    # Iniciar el scheduler
    if settings_instance.SCHEDULER_ENABLED:
        try:
            app.state.scheduler = init_scheduler()
            logger.info("Lifespan: Scheduler inicializado.")
        except Exception as e:
            logger.error(f"Lifespan: Error al inicializar scheduler: {e}", exc_info=True)
    else:
        logger.info("Lifespan: Scheduler deshabilitado (SCHEDULER_ENABLED=False).")

    # Inicializar el pool de conexiones Redis
    try:
        await initialize_redis_pool()
    except Exception as e:
        # Sin Redis la API funciona sin caché
        logger.error(f"Lifespan: Error al inicializar Redis connection pool: {e}", exc_info=True)

    yield  # Aplicación en ejecución

    logger.info("Lifespan: Shutdown iniciado...")
    shutdown_scheduler()

    try:
        await close_redis_client()
    except Exception as e:
        logger.error(f"Lifespan: Error cerrando Redis connection pool: {e}", exc_info=True)


app = FastAPI(
    title=settings_instance.PROJECT_NAME,
    description=settings_instance.PROJECT_DESCRIPTION,
    version=settings_instance.VERSION,
    openapi_url=f"{settings_instance.API_V1_STR}/openapi.json",
    docs_url=f"{settings_instance.API_V1_STR}/docs",
    redoc_url=f"{settings_instance.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Configurar rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Errores de dominio -> {"detail", "code", "details"}
register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    logger.info(f"Middleware: Recibida petición: {request.method} {request.url.path}")

    if settings_instance.DEBUG_MODE:
        # Nunca loguear el token completo
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            logger.debug("TOKEN PREVIEW: ****%s", token[-6:] if len(token) > 6 else "")
        else:
            logger.debug("NO AUTH HEADER Bearer presente")

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
    logger.info(f"Middleware: Enviando respuesta: {response.status_code} ({process_time:.2f}ms)")
    return response


# Lista de orígenes permitidos para CORS
origins = [str(origin).rstrip("/") for origin in settings_instance.BACKEND_CORS_ORIGINS]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,  # 24 horas en segundos
)

# Incluir routers
app.include_router(api_router, prefix=settings_instance.API_V1_STR)


# Ruta raíz
@app.get("/")
def root():
    return {
        "message": f"Bienvenido a {settings_instance.PROJECT_NAME}",
        "docs": f"{settings_instance.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings_instance.DEBUG_MODE)
