# jobfeed/cli.py
"""Command line entry point: `job-feed <command>` or `python -m jobfeed.cli`."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import timedelta

from jobfeed.config import Settings, load_search_plan
from jobfeed.core.acquisition import AcquisitionEngine
from jobfeed.core.dedupe import DedupCache
from jobfeed.core.errors import JobFeedError, StoreUnavailable
from jobfeed import providers

LOGGER = logging.getLogger("jobfeed.cli")


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def cmd_init_db(args, settings: Settings) -> int:
    from jobfeed.db.models import Base
    from jobfeed.db.session import ENGINE, current_engine_url, test_connection

    if not test_connection():
        raise StoreUnavailable(f"cannot connect to {current_engine_url()}")
    Base.metadata.create_all(ENGINE)
    print(f"Initialized tables at {current_engine_url()}")
    return 0


def _persist(results) -> int:
    from jobfeed.db.crud import record_run, upsert_jobs
    from jobfeed.db.session import get_session

    saved = 0
    with get_session() as session:
        for jobs, metrics in results:
            inserted = upsert_jobs(session, jobs)
            record_run(session, metrics, inserted=inserted)
            saved += inserted
    return saved


def _run_cycle(engines, plan, dry_run: bool) -> None:
    results = []
    for name, (engine, adapter) in engines.items():
        jobs, metrics = engine.run_cycle(adapter, plan)
        results.append((jobs, metrics))
        print(
            f"{name}: units={metrics.units_attempted}/{metrics.units_planned} "
            f"requests={metrics.requests_made} new={metrics.new_jobs} duplicates={metrics.duplicates} "
            f"failures={metrics.failures} stop={metrics.stopped_reason} "
            f"remaining(daily/hourly)={metrics.daily_remaining}/{metrics.hourly_remaining}"
        )

    if dry_run:
        total = sum(len(jobs) for jobs, _ in results)
        print(f"Dry run: {total} new jobs not persisted.")
        return
    print(f"Persisted {_persist(results)} new jobs to the database.")


def cmd_acquire(args, settings: Settings) -> int:
    plan = load_search_plan(args.plan)
    names = _split(args.providers) or sorted(providers.REGISTRY)
    unknown = [n for n in names if n not in providers.REGISTRY]
    if unknown:
        print("Unknown providers: " + ", ".join(unknown))
        print("Available providers: " + ", ".join(sorted(providers.REGISTRY)))
        return 2

    # Budgets and the seen cache carry across cycles.
    cache = DedupCache(timedelta(days=settings.seen_ttl_days))
    engines = {}
    for name in names:
        adapter = providers.get(name, timeout=settings.provider_timeout)
        if not adapter.configured:
            print(f"Skipping provider '{name}': credentials not configured")
            continue
        engines[name] = (AcquisitionEngine.from_settings(settings, name, cache=cache), adapter)

    if not args.every:
        _run_cycle(engines, plan, args.dry_run)
        return 0

    cache.start_sweeper(settings.sweep_interval_hours * 3600)
    cycle = 0
    try:
        while True:
            cycle += 1
            LOGGER.info("acquire-cycle number=%s providers=%s", cycle, ",".join(engines))
            _run_cycle(engines, plan, args.dry_run)
            if args.cycles and cycle >= args.cycles:
                break
            time.sleep(args.every * 3600)
    except KeyboardInterrupt:
        print("Interrupted, stopping.")
    finally:
        cache.stop_sweeper()
    return 0


def cmd_shortlist(args, settings: Settings) -> int:
    from jobfeed.db.crud import get_profile, recent_jobs
    from jobfeed.db.session import get_session
    from jobfeed.filters.prefilter import shortlist

    with get_session() as session:
        profile = get_profile(session, args.subscriber)
        pool = recent_jobs(
            session,
            settings.window_days,
            ultra_fresh_hours=settings.ultra_fresh_hours,
            fresh_hours=settings.fresh_hours,
        )
    result = shortlist(
        pool,
        profile,
        per_source=settings.diversity_cap,
        total=settings.shortlist_cap,
        broad_pool=settings.broad_pool,
        free_max_age_days=settings.free_max_age_days,
    )
    if args.json:
        payload = {
            "match_level": result.match_level.value,
            "items": [
                {"score": s.prefilter_score, **s.job.model_dump(mode="json", exclude={"description"})}
                for s in result.jobs
            ],
            "source_distribution": result.source_distribution(),
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(f"Match level: {result.match_level.value}  pool={len(pool)}  shortlisted={len(result.jobs)}")
    for s in result.jobs[: args.limit]:
        print(f"  [{s.prefilter_score:3d}] {s.job.title} @ {s.job.company} ({s.job.location or 'n/a'}) via {s.job.source}")
    dist = ", ".join(f"{k}={v}" for k, v in sorted(result.source_distribution().items()))
    print(f"Sources: {dist or '(none)'}")
    return 0


def cmd_add_subscriber(args, settings: Settings) -> int:
    from jobfeed.db.crud import create_subscriber
    from jobfeed.db.session import get_session
    from jobfeed.filters.prefilter import SubscriberProfile

    profile = SubscriberProfile(
        target_cities=_split(args.cities),
        languages=_split(args.languages),
        entry_level_preference=args.experience,
        career_keywords=_split(args.keywords),
        career_paths=_split(args.career_paths),
        subscription_tier=args.tier,
    )
    with get_session() as session:
        sub = create_subscriber(session, args.email, profile)
    print(f"Created subscriber id={sub.id}")
    return 0


def cmd_prune(args, settings: Settings) -> int:
    from jobfeed.db.crud import prune_jobs
    from jobfeed.db.session import get_session

    with get_session() as session:
        affected = prune_jobs(session, args.days, hard_delete=args.hard)
    verb = "Deleted" if args.hard else "Deactivated"
    print(f"{verb} {affected} jobs not seen in {args.days} days.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-feed", description="Job Feed acquisition and matching")
    parser.add_argument("--log-level", default=None, help="Override JOBFEED_LOG_LEVEL (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create database tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("acquire", help="Run one acquisition cycle per provider and persist new jobs")
    p.add_argument("--plan", default="config/search_plan.yaml", help="Search plan (YAML or JSON)")
    p.add_argument("--providers", default="", help="Comma-separated provider names (default: all registered)")
    p.add_argument("--dry-run", action="store_true", help="Do not write to the database")
    p.add_argument("--every", type=float, default=0, help="Repeat every N hours (dedup sweeper runs in the background)")
    p.add_argument("--cycles", type=int, default=0, help="Stop after N cycles when repeating (0 = until interrupted)")
    p.set_defaults(func=cmd_acquire)

    p = sub.add_parser("shortlist", help="Print the shortlist for one subscriber")
    p.add_argument("subscriber", type=int, help="Subscriber id")
    p.add_argument("--limit", type=int, default=20, help="Rows to print (text output)")
    p.add_argument("--json", action="store_true", help="Emit JSON")
    p.set_defaults(func=cmd_shortlist)

    p = sub.add_parser("add-subscriber", help="Create a subscriber profile")
    p.add_argument("email")
    p.add_argument("--cities", default="", help="Comma-separated target cities, in order")
    p.add_argument("--languages", default="", help="Comma-separated spoken languages")
    p.add_argument("--experience", default=None, help="entry-level | mid-level | senior | ...")
    p.add_argument("--keywords", default="", help="Comma-separated career keywords")
    p.add_argument("--career-paths", default="", help="Comma-separated career paths")
    p.add_argument("--tier", choices=["free", "premium"], default="free")
    p.set_defaults(func=cmd_add_subscriber)

    p = sub.add_parser("prune", help="Deactivate or delete jobs not seen recently")
    p.add_argument("--days", type=int, default=30)
    p.add_argument("--hard", action="store_true", help="Delete rows instead of deactivating")
    p.set_defaults(func=cmd_prune)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args, settings)
    except StoreUnavailable as exc:
        print(f"Database unavailable: {exc}", file=sys.stderr)
        return 3
    except JobFeedError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
