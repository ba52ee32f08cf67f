import unittest
from datetime import datetime, timedelta
from unittest import mock

from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from jobfeed.core.acquisition import CycleMetrics
from jobfeed.core.errors import ProfileNotFound, StoreUnavailable
from jobfeed.core.normalize import FreshnessTier, build_candidate
from jobfeed.db.crud import (
    create_subscriber,
    get_profile,
    prune_jobs,
    recent_jobs,
    record_run,
    upsert_jobs,
)
from jobfeed.db.models import AcquisitionRun, Base, Job
from jobfeed.filters.prefilter import SubscriberProfile

NOW = datetime(2025, 9, 18, 12, 0)


def candidate(title="Graduate Analyst", source="serpapi", posted_at=None, **kw):
    job = build_candidate(
        title=title,
        company=kw.get("company", "Acme"),
        url=f"https://example.com/{source}/{title}",
        source=source,
        location=kw.get("location", "London, UK"),
        description="English speaking analyst",
        posted_at=posted_at,
        now=NOW,
    )
    job.career_path = kw.get("career_path", "data-analytics")
    return job


class UpsertJobsTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)

    def test_same_listing_twice_yields_one_row(self):
        with self.Session() as session:
            self.assertEqual(upsert_jobs(session, [candidate()], now=NOW), 1)
            later = NOW + timedelta(hours=6)
            self.assertEqual(upsert_jobs(session, [candidate(source="adzuna")], now=later), 0)

            rows = session.execute(select(Job)).scalars().all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].source, "serpapi")
            self.assertEqual(rows[0].first_seen_at, NOW)
            self.assertEqual(rows[0].last_seen_at, later)

    def test_duplicate_inside_batch_inserted_once(self):
        with self.Session() as session:
            self.assertEqual(upsert_jobs(session, [candidate(), candidate(source="jsearch")], now=NOW), 1)

    def test_only_fills_missing_posted_at(self):
        with self.Session() as session:
            upsert_jobs(session, [candidate()], now=NOW)
            upsert_jobs(session, [candidate(posted_at=datetime(2025, 9, 15))], now=NOW)
            upsert_jobs(session, [candidate(posted_at=datetime(2025, 9, 17))], now=NOW)
            job = session.execute(select(Job)).scalar_one()
            self.assertEqual(job.posted_at, datetime(2025, 9, 15))

    def test_recent_jobs_round_trip(self):
        with self.Session() as session:
            upsert_jobs(session, [candidate(posted_at=NOW - timedelta(hours=3))], now=NOW)
            upsert_jobs(session, [candidate("Old Role")], now=NOW - timedelta(days=45))
            jobs = recent_jobs(session, 30, now=NOW)
            self.assertEqual([j.title for j in jobs], ["Graduate Analyst"])
            job = jobs[0]
            self.assertEqual(job.freshness_tier, FreshnessTier.ULTRA_FRESH)
            self.assertEqual(job.city, "london")
            self.assertEqual(job.languages, ["English"])
            self.assertEqual(job.career_path, "data-analytics")

    def test_prune_deactivates_then_deletes(self):
        with self.Session() as session:
            upsert_jobs(session, [candidate("Stale")], now=NOW - timedelta(days=40))
            upsert_jobs(session, [candidate("Live")], now=NOW)
            self.assertEqual(prune_jobs(session, 30, now=NOW), 1)
            self.assertEqual([j.title for j in recent_jobs(session, 60, now=NOW)], ["Live"])
            self.assertEqual(prune_jobs(session, 30, hard_delete=True, now=NOW), 1)
            self.assertEqual(len(session.execute(select(Job)).scalars().all()), 1)

    def test_store_errors_surface_as_unavailable(self):
        with self.Session() as session:
            err = OperationalError("SELECT 1", {}, Exception("database is locked"))
            with mock.patch.object(session, "execute", side_effect=err):
                with self.assertRaises(StoreUnavailable):
                    upsert_jobs(session, [candidate()], now=NOW)


class ProfileStoreTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)

    def test_profile_round_trip(self):
        profile = SubscriberProfile(
            target_cities=["London", "Dublin"],
            languages=["English"],
            entry_level_preference="entry-level",
            career_keywords=["sql"],
            career_paths=["data-analytics"],
            subscription_tier="premium",
        )
        with self.Session() as session:
            sub = create_subscriber(session, "Someone@Example.com", profile)
            self.assertEqual(sub.email, "someone@example.com")
            self.assertEqual(get_profile(session, sub.id), profile)

    def test_missing_profile(self):
        with self.Session() as session:
            with self.assertRaises(ProfileNotFound):
                get_profile(session, 999)

    def test_record_run(self):
        metrics = CycleMetrics(provider="serpapi", units_attempted=3, requests_made=4, new_jobs=5,
                               stopped_reason="quota", started_at=NOW, finished_at=NOW)
        with self.Session() as session:
            run = record_run(session, metrics, inserted=2)
            stored = session.get(AcquisitionRun, run.id)
            self.assertEqual((stored.provider, stored.inserted, stored.stopped_reason), ("serpapi", 2, "quota"))


if __name__ == "__main__":
    unittest.main()
