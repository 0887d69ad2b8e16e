from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings_instance = get_settings()
db_url = settings_instance.DATABASE_URL


def _display_url(url: str) -> str:
    # Ocultar credenciales en el log
    if '@' in url:
        scheme = url.split('://')[0]
        return f"{scheme}://***@{url.split('@', 1)[1]}"
    return url


def build_engine(url: str):
    """
    Crea el engine síncrono. SQLite se usa en desarrollo y tests;
    PostgreSQL (psycopg2) en producción.
    """
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(sqlite_engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):
            # pysqlite no debe emitir BEGIN por su cuenta (rompe los SAVEPOINT)
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(sqlite_engine, "begin")
        def _begin_immediate(conn):
            # Toma el bloqueo de escritura al inicio: las transacciones se serializan
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return sqlite_engine

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=180,
        connect_args={
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000",
        },
        execution_options={
            "isolation_level": "READ COMMITTED",
        }
    )


try:
    engine = build_engine(db_url)
    logger.info(f"Engine creado correctamente: {_display_url(db_url)}")
except Exception as e:
    logger.critical(f"Fallo crítico al crear engine con URL {_display_url(db_url)}: {e}", exc_info=True)
    raise

# Crear clase de sesión
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia para obtener la sesión de DB
def get_db():
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Error de SQLAlchemy en la sesión: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
