import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(filename)s:%(lineno)d | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Niveles fijos para librerías que no deben seguir a DEBUG_MODE
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "apscheduler": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def setup_logging() -> None:
    """
    Logging de JabClub: consola y fichero en LOG_DIR que rota a medianoche
    (se guardan LOG_RETENTION_DAYS días). DEBUG solo con DEBUG_MODE.
    """
    settings = get_settings()
    level = logging.DEBUG if settings.DEBUG_MODE else logging.INFO
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers.append(TimedRotatingFileHandler(
            os.path.join(settings.LOG_DIR, "jabclub.log"),
            when="midnight",
            backupCount=settings.LOG_RETENTION_DAYS,
            encoding="utf-8",
        ))

    root = logging.getLogger()
    root.setLevel(level)
    # Uvicorn puede haber instalado sus propios handlers
    root.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name, logger_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(logger_level)

    root.info("Logging configurado: nivel %s, directorio %s", logging.getLevelName(level), settings.LOG_DIR or "-")
