"""
Database Session Management

Provides database connection pooling and session management.
"""
import time
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event, exc, pool, text
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


# Create database engine with connection pooling
engine = create_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_timeout=settings.database_pool_timeout,
    pool_recycle=settings.database_pool_recycle,
    pool_pre_ping=True,
    echo=settings.database_echo,
)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    logger.debug("database_connection_established")


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """Log when a connection is marked as invalid and removed from pool."""
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


# Create session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)


@contextmanager
def get_db_session(session_factory: Optional[Callable[[], Session]] = None) -> Generator[Session, None, None]:
    """
    Get database session with automatic commit/rollback and cleanup.

    Usage:
        with get_db_session() as session:
            hubzones = session.query(Hubzone).all()

    Args:
        session_factory: Override SessionLocal (tests inject an SQLite factory)

    Yields:
        Database session

    Raises:
        Exception: Re-raises any exception after rollback
    """
    session = (session_factory or SessionLocal)()
    try:
        logger.debug("database_session_created")
        yield session
        session.commit()
        logger.debug("database_session_committed")
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_error",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()
        logger.debug("database_session_closed")


def health_check(session_factory: Optional[Callable[[], Session]] = None) -> bool:
    """
    Check database connection health.

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        with get_db_session(session_factory) as session:
            session.execute(text("SELECT 1"))
            logger.info("database_health_check_success")
            return True
    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        return False


def create_all_tables():
    """
    Create all database tables defined in models.

    WARNING: Use Alembic migrations instead in production.
    """
    from src.hubzone.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_created")


def with_retry(max_retries: int = 3, retry_delay: float = 1):
    """
    Decorator to retry database operations on transient failures.

    Args:
        max_retries: Maximum number of attempts
        retry_delay: Base delay between attempts in seconds

    Usage:
        @with_retry(max_retries=3)
        def create_run(session_factory):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (exc.OperationalError, exc.DisconnectionError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            "database_operation_retry",
                            attempt=attempt + 1,
                            max_retries=max_retries,
                            error=str(e)
                        )
                        time.sleep(retry_delay * (attempt + 1))
                    else:
                        logger.error(
                            "database_operation_failed_after_retries",
                            max_retries=max_retries,
                            error=str(e)
                        )

            raise last_exception

        return wrapper
    return decorator
