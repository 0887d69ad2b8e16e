from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from datetime import timezone
import logging

from app.core.config import get_settings
from app.db.redis_client import get_redis_for_jobs
from app.db.session import SessionLocal
from app.services.credit_ledger import credit_ledger_service
from app.services.schedule_generator import schedule_generator_service

logger = logging.getLogger(__name__)

# Variable global para mantener referencia al scheduler
_scheduler = None


async def generate_class_instances_job():
    """
    Materializa las instancias de clase de la ventana configurada.
    Es idempotente: re-ejecutarla no crea duplicados.
    """
    logger.info("Running scheduled task: generate_class_instances")
    db = SessionLocal()
    try:
        async with get_redis_for_jobs() as redis_client:
            report = await schedule_generator_service.generate_instances(db, redis_client=redis_client)
        if report.errors:
            logger.warning(f"generate_class_instances terminó con {len(report.errors)} errores: {report.errors[:5]}")
    except Exception as e:
        logger.error(f"Error in generate_class_instances task: {str(e)}", exc_info=True)
        db.rollback()
    finally:
        db.close()


async def expire_packages_job():
    """
    Marca como expirados los paquetes con fecha de caducidad vencida.
    """
    logger.info("Running scheduled task: expire_packages")
    db = SessionLocal()
    try:
        expired = await credit_ledger_service.expire_packages(db)
        logger.info(f"expire_packages: {expired} paquetes marcados como expirados")
    except Exception as e:
        logger.error(f"Error in expire_packages task: {str(e)}", exc_info=True)
        db.rollback()
    finally:
        db.close()


def init_scheduler():
    """
    Inicializa el programador de tareas
    """
    global _scheduler
    settings = get_settings()

    logger.info("Initializing scheduler with UTC timezone")
    _scheduler = AsyncIOScheduler(timezone=timezone.utc)

    # Generación diaria de instancias de clase
    _scheduler.add_job(
        generate_class_instances_job,
        trigger=CronTrigger(hour=settings.GENERATION_CRON_HOUR, minute=0),
        id='generate_class_instances',
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    # Expiración diaria de paquetes
    _scheduler.add_job(
        expire_packages_job,
        trigger=CronTrigger(hour=settings.EXPIRY_CRON_HOUR, minute=0),
        id='expire_packages',
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    _scheduler.start()
    logger.info(f"Scheduler started with {len(_scheduler.get_jobs())} jobs")
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None


# Función para obtener el scheduler (útil para pruebas y otros módulos)
def get_scheduler():
    global _scheduler
    return _scheduler
