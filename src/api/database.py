"""Database session dependency for FastAPI.

One request runs in one transaction on the shared connection pool.
"""

from collections.abc import Generator

from sqlalchemy.orm import Session

from src.database.connection import get_session


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    Yields:
        Database session, committed after a successful request and
        rolled back when the endpoint raises.

    Example:
        @router.get("/recipients")
        def list_recipients(db: Session = Depends(get_db)):
            ...
    """
    yield from get_session()
