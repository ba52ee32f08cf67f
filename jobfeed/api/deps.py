from __future__ import annotations

from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session

from jobfeed.config import Settings
from jobfeed.db.session import get_session


def db_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy :class:`Session`.

    Usage in route handlers:
        def handler(session: Session = Depends(db_session)):
            ...
    """
    with get_session() as session:
        yield session


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


__all__ = ["db_session", "get_settings"]
