import os
import unittest
from unittest import mock
from datetime import timedelta

os.environ.setdefault("JOBFEED_DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jobfeed.api.deps import db_session, get_settings
from jobfeed.api.main import app
from jobfeed.config import Settings
from jobfeed.core.acquisition import CycleMetrics
from jobfeed.core.date_parse import utcnow
from jobfeed.core.errors import StoreUnavailable
from jobfeed.core.normalize import build_candidate
from jobfeed.db.crud import create_subscriber, record_run, upsert_jobs
from jobfeed.db.models import Base
from jobfeed.filters.prefilter import SubscriberProfile


class ShortlistEndpointTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.SessionLocal = sessionmaker(bind=engine)

        now = utcnow()
        jobs = []
        for source in ("serpapi", "jsearch"):
            for i in range(6):
                jobs.append(
                    build_candidate(
                        title=f"Graduate Analyst {source} {i}",
                        company="Acme",
                        url=f"https://example.com/{source}/{i}",
                        source=source,
                        location="London, UK",
                        description="SQL and Excel for a graduate analyst",
                        posted_at=now - timedelta(hours=5),
                        now=now,
                    )
                )
        with self.SessionLocal() as session:
            upsert_jobs(session, jobs, now=now)
            sub = create_subscriber(
                session,
                "reader@example.com",
                SubscriberProfile(target_cities=["London"], career_keywords=["sql"], entry_level_preference="entry-level"),
            )
            self.subscriber_id = sub.id

        def override_db():
            with self.SessionLocal() as session:
                yield session

        app.dependency_overrides[db_session] = override_db
        app.dependency_overrides[get_settings] = lambda: Settings(admin_token="secret")
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_shortlist_shape_and_diversity(self):
        resp = self.client.get(f"/subscribers/{self.subscriber_id}/shortlist")
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["match_level"], "exact")
        self.assertEqual(body["source_distribution"], {"serpapi": 3, "jsearch": 3})
        self.assertEqual(len(body["items"]), 6)
        item = body["items"][0]
        self.assertEqual(
            set(item),
            {"fingerprint", "title", "company", "location", "source", "url", "career_path", "prefilter_score"},
        )
        # exact 20 + ultra-fresh 15 + graduate fits entry-level 15 + one keyword 5
        self.assertEqual(item["prefilter_score"], 100)

    def test_unknown_subscriber_is_404(self):
        resp = self.client.get("/subscribers/424242/shortlist")
        self.assertEqual(resp.status_code, 404)

    def test_store_unavailable_is_503(self):
        with mock.patch("jobfeed.api.main.get_profile", side_effect=StoreUnavailable("down")):
            resp = self.client.get(f"/subscribers/{self.subscriber_id}/shortlist")
        self.assertEqual(resp.status_code, 503)

    def test_taxonomy_endpoint(self):
        resp = self.client.get("/taxonomy/normalize", params=[("path", "strategy"), ("path", "tech")])
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["career_path"], "strategy")
        self.assertEqual(body["matches"], ["strategy", "tech"])
        self.assertTrue(body["ambiguous"])

        resp = self.client.get("/taxonomy/normalize")
        self.assertEqual(resp.json()["career_path"], "unsure")

    def test_prune_requires_token(self):
        self.assertEqual(self.client.post("/admin/prune").status_code, 401)
        resp = self.client.post("/admin/prune", params={"days": 30}, headers={"X-Token": "secret"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["affected"], 0)

    def test_runs_listing(self):
        with self.SessionLocal() as session:
            record_run(session, CycleMetrics(provider="jsearch", requests_made=2, new_jobs=4), inserted=3)
        self.assertEqual(self.client.get("/admin/runs").status_code, 401)
        resp = self.client.get("/admin/runs", headers={"X-Token": "secret"})
        self.assertEqual(resp.status_code, 200)
        runs = resp.json()
        self.assertEqual(len(runs), 1)
        self.assertEqual((runs[0]["provider"], runs[0]["inserted"]), ("jsearch", 3))

    def test_runs_store_unavailable_is_503(self):
        err = OperationalError("SELECT 1", {}, Exception("database is locked"))
        with mock.patch.object(Session, "execute", side_effect=err):
            resp = self.client.get("/admin/runs", headers={"X-Token": "secret"})
        self.assertEqual(resp.status_code, 503)

    def test_healthz(self):
        self.assertEqual(self.client.get("/healthz").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
