"""
Database engine, session factory and transaction helper
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hamexam.config import settings
from hamexam.exceptions import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str):
    """
    Create an engine for the given URL

    SQLite gets explicit BEGIN handling so SAVEPOINTs behave, and in-memory
    databases share one connection.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    """FastAPI dependency yielding one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables"""
    import hamexam.models  # noqa: F401  (register mappers)

    Base.metadata.create_all(bind=engine)


def check_database() -> bool:
    """True when a trivial query succeeds"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


@contextmanager
def atomic(db: Session):
    """
    Run a block in one transaction

    Nested blocks join the outermost one; only the outermost commits or
    rolls back. Store errors are translated into domain errors.
    """
    depth = db.info.get("atomic_depth", 0)
    db.info["atomic_depth"] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except IntegrityError as e:
        if depth == 0:
            db.rollback()
        logger.warning(f"Integrity violation: {e.orig}")
        raise ConflictError("Record conflicts with an existing one") from e
    except OperationalError as e:
        if depth == 0:
            db.rollback()
        logger.error(f"Store unavailable: {str(e)}")
        raise TransientStoreError("Database temporarily unavailable") from e
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info["atomic_depth"] = depth
