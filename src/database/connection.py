"""Relational connection pool management with SQLAlchemy 2.0.

Provides synchronous database sessions with connection pooling,
transaction scoping and schema lifecycle helpers.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from src.database.models import Base
from src.settings import settings

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages the connection pool shared by the application.

    This class implements the Singleton pattern to ensure a single
    connection pool is shared across the application.

    Attributes:
        _instance: Singleton instance.
        _engine: SQLAlchemy engine.
        _session_factory: Session factory.

    Example:
        ```python
        db = DatabaseConnection()
        with db.session() as session:
            result = session.execute(text("SELECT 1"))
        ```
    """

    _instance: "DatabaseConnection | None" = None
    _initialized: bool = False

    def __new__(cls) -> "DatabaseConnection":
        """Create singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Initialize connection pool if not already done."""
        if DatabaseConnection._initialized:
            return

        self._engine = self._create_engine()
        self._session_factory = self._create_session_factory()
        DatabaseConnection._initialized = True

    @staticmethod
    def _create_engine() -> Engine:
        """Create SQLAlchemy engine with connection pooling.

        SQLite URLs (local runs, tests) get a single shared connection.

        Returns:
            SQLAlchemy Engine.
        """
        db = settings.database
        if db.is_sqlite:
            return create_engine(
                db.sync_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=settings.debug,
            )
        return create_engine(
            db.sync_url,
            poolclass=QueuePool,
            pool_size=db.pool_size,
            max_overflow=db.pool_overflow,
            pool_timeout=db.pool_timeout,
            pool_pre_ping=True,
            echo=settings.debug,
        )

    def _create_session_factory(self) -> sessionmaker[Session]:
        """Create session factory.

        Returns:
            Configured sessionmaker.
        """
        return sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional session scope.

        Automatically commits on success, rolls back on exception,
        and closes the session when done.

        Yields:
            SQLAlchemy Session instance.

        Raises:
            Exception: Re-raises any exception after rollback.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """Test database connectivity with a simple query.

        Returns:
            True if connection successful, False otherwise.
        """
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database connectivity check failed: %s", e)
            return False

    def create_schema(self, drop: bool = False) -> None:
        """Create every table known to the ORM metadata.

        Args:
            drop: Drop existing tables first.
        """
        if drop:
            Base.metadata.drop_all(self._engine)
            logger.warning("Dropped all tables")
        Base.metadata.create_all(self._engine)
        logger.info("Schema ready (%d tables)", len(Base.metadata.tables))

    def dispose(self) -> None:
        """Dispose the connection pool and release resources.

        Should be called during application shutdown.
        """
        self._engine.dispose()

    @property
    def engine(self) -> Engine:
        """Get the underlying engine.

        Returns:
            SQLAlchemy Engine instance.
        """
        return self._engine

    @classmethod
    def reset(cls) -> None:
        """Forget the singleton so the next access rebuilds the pool."""
        if cls._instance is not None and cls._initialized:
            cls._instance.dispose()
        cls._instance = None
        cls._initialized = False


# =============================================================================
# MODULE-LEVEL CONVENIENCE FUNCTIONS
# =============================================================================

_db: DatabaseConnection | None = None


def get_database() -> DatabaseConnection:
    """Get the singleton DatabaseConnection instance.

    Creates the instance on first call (lazy initialization).

    Returns:
        DatabaseConnection singleton instance.
    """
    global _db  # noqa: PLW0603
    if _db is None:
        _db = DatabaseConnection()
    return _db


def get_session() -> Generator[Session, None, None]:
    """Yield a session with automatic transaction management.

    Yields:
        SQLAlchemy Session.
    """
    db = get_database()
    with db.session() as session:
        yield session


def init_database(create_schema: bool = False, drop: bool = False) -> bool:
    """Initialize database connection pool and check connectivity.

    Args:
        create_schema: Create missing tables.
        drop: Drop existing tables before creating them.

    Returns:
        True if the database answered.
    """
    db = get_database()
    if create_schema:
        db.create_schema(drop=drop)
    connected = db.check_connection()
    if connected:
        logger.info("Database connection established")
    else:
        logger.error("Database connection failed")
    return connected


def close_database() -> None:
    """Close database connection pool.

    Call during application shutdown to release resources.
    """
    global _db  # noqa: PLW0603
    if _db is not None:
        DatabaseConnection.reset()
        _db = None
        logger.info("Database connections closed")
