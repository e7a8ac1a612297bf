"""CLI entry point.

Reads raw scraped jobs (a JSON file or a JSON feed URL), annotates them,
loads them into an in-memory store and writes the annotated jobs to disk,
optionally printing market statistics and trending technologies.

Examples:
    python run_annotate.py --input raw_jobs.json --out jobs.json --market HK
    python run_annotate.py --feed-url http://localhost:8080/jobs --stats --trending
    python run_annotate.py --input raw_jobs.json --search python --district Central
    python run_annotate.py --feed-url http://localhost:8080/jobs --state store.json --sweep

The output is a list of dicts (serialized Pydantic models). With `--state`,
the whole store is loaded before and saved after the run, so re-ingestion,
freshness and retention sweeps carry over between runs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from job_annotator.aggregate import market_stats, trending
from job_annotator.config import configure_logging, load_settings
from job_annotator.ingest import ingest_batch, purge_expired, refresh_stale
from job_annotator.models import FilterSpec, Job
from job_annotator.normalize import merge_jobs
from job_annotator.sources.feed import JsonFeedSource, to_raw_job
from job_annotator.store import InMemoryJobStore

logger = logging.getLogger("run_annotate")


def load_state(path: Path) -> List[Job]:
    if not path.exists():
        return []
    return [Job.model_validate(d) for d in json.loads(path.read_text(encoding="utf-8"))]


def write_jobs(path: Path, jobs: List[Job]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [j.model_dump(mode="json") for j in jobs]
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Annotate scraped job postings and summarise the market.")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", type=str, help="JSON file holding a list of raw job records.")
    src.add_argument("--feed-url", type=str, help="Paginated JSON feed serving raw job records.")
    p.add_argument("--out", type=str, default="jobs.json", help="Output JSON file path.")
    p.add_argument("--market", type=str, default=None, help="Market overlay, e.g. HK (default from env).")
    p.add_argument("--source", type=str, default=None, help="Source identifier stored on each job.")
    p.add_argument("--limit", type=int, default=200, help="Max jobs to read from a feed.")
    p.add_argument("--search", type=str, default=None, help="Only write jobs matching this text.")
    p.add_argument("--district", type=str, default=None, help="Only write jobs in this district.")
    p.add_argument("--stats", action="store_true", help="Print market statistics.")
    p.add_argument("--trending", action="store_true", help="Print trending technologies.")
    p.add_argument("--state", type=str, default=None, help="JSON store file loaded before and saved after the run.")
    p.add_argument("--sweep", action="store_true", help="Run freshness (feed only) and retention sweeps.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    market = args.market or settings.market
    source = args.source or settings.source
    now = datetime.now(timezone.utc)

    state_path = Path(args.state).expanduser().resolve() if args.state else None
    feed = JsonFeedSource(args.feed_url, timeout_s=settings.feed_timeout_s) if args.feed_url else None
    store = InMemoryJobStore()

    try:
        if state_path is not None:
            for job in load_state(state_path):
                store.upsert(job, merge_jobs)
        if args.input:
            records = json.loads(Path(args.input).expanduser().read_text(encoding="utf-8"))
            if not isinstance(records, list):
                raise ValueError(f"{args.input} does not contain a JSON list")
            raw_jobs = [to_raw_job(r) for r in records if isinstance(r, dict)]
        else:
            raw_jobs = feed.fetch(limit=args.limit)
    except Exception as exc:
        logger.error("Could not read jobs: %s", exc)
        return 1

    ingest_batch(raw_jobs, store, source=source, market=market, now=now)

    if args.sweep:
        if feed is not None:
            refresh_stale(
                store,
                feed.fetch_detail,
                now=now,
                stale_after=timedelta(hours=settings.stale_after_hours),
                limit=settings.stale_limit,
            )
        purge_expired(
            store,
            now=now,
            created_days=settings.retention_created_days,
            updated_days=settings.retention_updated_days,
        )

    spec = FilterSpec(search=args.search, district=args.district, limit=max(len(store), 1))
    jobs, total = store.find(spec)

    out_path = Path(args.out).expanduser().resolve()
    write_jobs(out_path, jobs)
    print(f"Wrote {total} jobs to: {out_path}")

    if state_path is not None:
        write_jobs(state_path, store.all())
        logger.info("Saved %d jobs to %s", len(store), state_path)

    if args.stats:
        stats = market_stats(store.all(), now, window_days=settings.stats_window_days, source=source)
        print(json.dumps(stats.model_dump(mode="json"), indent=2, ensure_ascii=False))

    if args.trending:
        rows = trending(store.all(), now, current_days=settings.trending_days, top_n=settings.trending_top_n, source=source)
        print(json.dumps([r.model_dump() for r in rows], indent=2, ensure_ascii=False))

    return 0


if __name__ == "__main__":
    sys.exit(main())
