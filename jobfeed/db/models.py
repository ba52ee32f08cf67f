from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from jobfeed.core.date_parse import utcnow

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    """Declarative base for all models."""
    pass


# --- Enums -------------------------------------------------------------------

TIERS = ("free", "premium")
STOP_REASONS = ("completed", "quota", "error")


# --- Models ------------------------------------------------------------------

class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_posted_at", "posted_at"),
        Index("ix_jobs_last_seen_at", "last_seen_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # identity across sources; conflict key for upserts
    fingerprint: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    source: Mapped[str] = mapped_column(String(40), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    company: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(300))
    city: Mapped[Optional[str]] = mapped_column(String(120), index=True)
    country: Mapped[Optional[str]] = mapped_column(String(120))
    is_remote: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Derived signals
    career_path: Mapped[str] = mapped_column(String(40), default="unknown", nullable=False, index=True)
    experience_level: Mapped[Optional[str]] = mapped_column(String(20))
    languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Bookkeeping
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Job id={self.id} source={self.source} title={self.title!r}>"


class Subscriber(Base):
    __tablename__ = "subscribers"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    target_cities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    entry_level_preference: Mapped[Optional[str]] = mapped_column(String(40))
    career_keywords: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    career_paths: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    subscription_tier: Mapped[str] = mapped_column(
        Enum(*TIERS, name="tier_enum", native_enum=False), default="free", nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Subscriber id={self.id} tier={self.subscription_tier}>"


class AcquisitionRun(Base):
    """One acquisition cycle against one provider."""

    __tablename__ = "acquisition_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    units_attempted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    requests_made: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    raw_results: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    new_jobs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inserted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failures: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stopped_reason: Mapped[str] = mapped_column(
        Enum(*STOP_REASONS, name="stop_reason_enum", native_enum=False), default="completed", nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<AcquisitionRun id={self.id} provider={self.provider} new={self.new_jobs}>"


__all__ = [
    "Base",
    "Job",
    "Subscriber",
    "AcquisitionRun",
    "TIERS",
    "STOP_REASONS",
]
