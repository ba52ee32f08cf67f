"""Shared SQLAlchemy engine/session setup.

Configure the database URL via `JOBFEED_DATABASE_URL` (preferred) or
`DATABASE_URL`; falls back to a local SQLite file. Variables from `.env`
(path override: `JOBFEED_DOTENV`) are loaded on import so the CLI and the
API point at the same store.

JOBFEED_DB_POOL_SIZE (int, default 5)
JOBFEED_DB_MAX_OVERFLOW (int, default 10)
JOBFEED_DB_ECHO ("1" to enable SQL echo)
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from jobfeed.config import DEFAULT_DATABASE_URL, load_env

load_env()


def _coalesce_url() -> str:
    url = (
        os.getenv("JOBFEED_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or DEFAULT_DATABASE_URL
    )
    # legacy PostgreSQL scheme; prefer the psycopg v3 driver
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def make_engine(url: str | None = None) -> Engine:
    url = url or _coalesce_url()
    echo = os.getenv("JOBFEED_DB_ECHO", "0") == "1"
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=int(os.getenv("JOBFEED_DB_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("JOBFEED_DB_MAX_OVERFLOW", "10")),
    )


ENGINE: Engine = make_engine()
SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield a session and close it afterwards; callers commit explicitly."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def current_engine_url() -> str:
    return ENGINE.url.render_as_string(hide_password=True)


def test_connection() -> bool:
    try:
        with ENGINE.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
