"""Batch ingestion and lifecycle sweeps.

`ingest_batch` annotates, normalizes and upserts scraped tuples. A failure on
one tuple is logged and counted; it never stops the rest of the batch.

The sweeps keep the store honest over time:

- `refresh_stale` re-checks live jobs that have not been seen for a while and marks
  the ones the source no longer serves as expired;
- `purge_expired` physically deletes jobs past the retention grace period.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Dict, Iterable, Optional, Union

from .annotate import compose
from .models import RawJob
from .normalize import build_job, merge_jobs
from .store import JobStore

logger = logging.getLogger(__name__)

DetailFetcher = Callable[[str], Optional[Dict[str, Any]]]


@dataclass
class IngestReport:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.inserted + self.updated


def ingest_one(
    raw: Union[RawJob, Dict[str, Any]],
    store: JobStore,
    source: str,
    market: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Annotate and upsert one tuple. Returns "inserted", "updated" or None (skipped)."""
    now = now or datetime.now(timezone.utc)
    if not isinstance(raw, RawJob):
        raw = RawJob.model_validate(raw)
    annotation = compose(raw.description, market)
    job = build_job(raw, annotation, source, now=now, market=market)
    if job is None:
        return None
    return store.upsert(job, partial(merge_jobs, now=now))


def ingest_batch(
    raw_jobs: Iterable[Union[RawJob, Dict[str, Any]]],
    store: JobStore,
    source: str,
    market: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IngestReport:
    report = IngestReport()
    now = now or datetime.now(timezone.utc)
    for i, raw in enumerate(raw_jobs):
        try:
            outcome = ingest_one(raw, store, source, market=market, now=now)
        except Exception:
            logger.exception("Failed to ingest %s job #%d", source, i)
            report.failed += 1
            continue
        if outcome == "inserted":
            report.inserted += 1
        elif outcome == "updated":
            report.updated += 1
        else:
            report.skipped += 1

    logger.info(
        "Ingested %s batch: %d inserted, %d updated, %d skipped, %d failed",
        source, report.inserted, report.updated, report.skipped, report.failed,
    )
    return report


def refresh_stale(
    store: JobStore,
    fetch_detail: DetailFetcher,
    now: Optional[datetime] = None,
    stale_after: timedelta = timedelta(hours=24),
    limit: int = 100,
) -> Dict[str, int]:
    """Re-check the oldest unexpired jobs not updated within `stale_after`.

    `fetch_detail(url)` returns the job's detail payload, or an empty value when
    the source no longer serves it. Errors from the fetcher are logged and the
    job is left untouched for the next sweep.
    """
    now = now or datetime.now(timezone.utc)
    counts = {"refreshed": 0, "expired": 0, "errors": 0}
    for job in store.stale(now - stale_after, limit):
        if not job.source_url:
            continue
        try:
            detail = fetch_detail(job.source_url)
        except Exception:
            logger.exception("Freshness check failed for %s job %s", job.source, job.source_id)
            counts["errors"] += 1
            continue
        if detail:
            store.touch(job.key, now)
            counts["refreshed"] += 1
        else:
            store.mark_expired(job.key, now)
            counts["expired"] += 1

    logger.info(
        "Freshness sweep: %d refreshed, %d expired, %d errors",
        counts["refreshed"], counts["expired"], counts["errors"],
    )
    return counts


def purge_expired(
    store: JobStore,
    now: Optional[datetime] = None,
    created_days: int = 60,
    updated_days: int = 45,
) -> int:
    """Delete jobs created over `created_days` ago and not updated in `updated_days`."""
    now = now or datetime.now(timezone.utc)
    removed = store.purge(now - timedelta(days=created_days), now - timedelta(days=updated_days))
    logger.info("Retention sweep removed %d jobs", removed)
    return removed
