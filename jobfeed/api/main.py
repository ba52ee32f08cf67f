from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from jobfeed import __version__
from jobfeed.api.deps import db_session, get_settings
from jobfeed.config import Settings
from jobfeed.core.errors import ProfileNotFound, StoreUnavailable
from jobfeed.core.taxonomy import resolve_career_path
from jobfeed.db.crud import get_profile, prune_jobs, recent_jobs, recent_runs
from jobfeed.filters.prefilter import shortlist

# -------------------------
# FastAPI setup
# -------------------------
app = FastAPI(title="Job Feed API", version=__version__)
LOGGER = logging.getLogger(__name__)


def require_admin(x_token: str | None, settings: Settings) -> None:
    if not settings.admin_token or x_token != settings.admin_token:
        raise HTTPException(status_code=401, detail="Unauthorized")


# -------------------------
# Pydantic response models
# -------------------------
class ShortlistItem(BaseModel):
    fingerprint: str
    title: str
    company: str
    location: str
    source: str
    url: str
    career_path: str
    prefilter_score: int


class ShortlistResponse(BaseModel):
    match_level: str
    items: List[ShortlistItem]
    source_distribution: Dict[str, int]


class TaxonomyResponse(BaseModel):
    career_path: str
    matches: List[str]
    ambiguous: bool
    diagnostic: Optional[str] = None


# -------------------------
# Routes
# -------------------------
@app.get("/", tags=["meta"])
async def root():
    return {"message": "Job Feed API is running"}


@app.get("/healthz", tags=["meta"])
async def healthz():
    return {"status": "ok"}


@app.get("/subscribers/{subscriber_id}/shortlist", response_model=ShortlistResponse, tags=["data"])
def subscriber_shortlist(
    subscriber_id: int,
    session: Session = Depends(db_session),
    settings: Settings = Depends(get_settings),
):
    """Ranked, source-diverse shortlist for one subscriber over the recent window."""
    try:
        profile = get_profile(session, subscriber_id)
        pool = recent_jobs(
            session,
            settings.window_days,
            ultra_fresh_hours=settings.ultra_fresh_hours,
            fresh_hours=settings.fresh_hours,
        )
    except ProfileNotFound:
        raise HTTPException(status_code=404, detail="Subscriber not found")
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Job store unavailable")

    result = shortlist(
        pool,
        profile,
        per_source=settings.diversity_cap,
        total=settings.shortlist_cap,
        broad_pool=settings.broad_pool,
        free_max_age_days=settings.free_max_age_days,
    )
    items = [
        ShortlistItem(
            fingerprint=s.job.fingerprint,
            title=s.job.title,
            company=s.job.company,
            location=s.job.location,
            source=s.job.source,
            url=s.job.url,
            career_path=s.job.career_path,
            prefilter_score=s.prefilter_score,
        )
        for s in result.jobs
    ]
    return ShortlistResponse(
        match_level=result.match_level.value,
        items=items,
        source_distribution=result.source_distribution(),
    )


@app.get("/taxonomy/normalize", response_model=TaxonomyResponse, tags=["data"])
async def taxonomy_normalize(path: List[str] = Query(default=[])):
    res = resolve_career_path(path)
    return TaxonomyResponse(
        career_path=res.career_path,
        matches=list(res.matches),
        ambiguous=res.ambiguous,
        diagnostic=res.diagnostic,
    )


@app.post("/admin/prune", tags=["admin"])
def admin_prune(
    days: int = Query(30, ge=1),
    hard_delete: bool = Query(False),
    x_token: str | None = Header(default=None, alias="X-Token"),
    session: Session = Depends(db_session),
    settings: Settings = Depends(get_settings),
):
    require_admin(x_token, settings)
    try:
        affected = prune_jobs(session, days, hard_delete=hard_delete)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Job store unavailable")
    return {"days": days, "hard_delete": hard_delete, "affected": affected}


@app.get("/admin/runs", tags=["admin"])
def admin_runs(
    limit: int = Query(20, ge=1, le=200),
    x_token: str | None = Header(default=None, alias="X-Token"),
    session: Session = Depends(db_session),
    settings: Settings = Depends(get_settings),
):
    require_admin(x_token, settings)
    try:
        runs = recent_runs(session, limit)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Job store unavailable")
    return [
        {
            "id": run.id,
            "provider": run.provider,
            "started_at": run.started_at,
            "finished_at": run.finished_at,
            "requests_made": run.requests_made,
            "new_jobs": run.new_jobs,
            "inserted": run.inserted,
            "failures": run.failures,
            "stopped_reason": run.stopped_reason,
        }
        for run in runs
    ]
