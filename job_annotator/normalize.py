"""Job normalization.

Turns a scraped `RawJob` plus its `Annotation` into the canonical `Job`, and
owns the policy for re-ingesting a job already in the store:

- the natural key is `(source_id, source)`;
- scrape fields are refreshed when the new scrape has them;
- annotation fields prefer known over unknown and never overwrite a known
  value with an unknown one.

Missing title/company is a data-quality warning, not a failure.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from .models import Annotation, Job, RawJob, Sponsorship
from .utils import stable_id

logger = logging.getLogger(__name__)

_JOB_ID_RE = re.compile(r"/job/(\d+)")
_RELATIVE_RE = re.compile(r"^(\d+)\s*\+?\s*(m|min|mins|minutes?|h|hr|hrs|hours?|d|days?|w|wks?|weeks?)\s*ago$", re.I)
_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_UNITS = {"m": "minutes", "h": "hours", "d": "days", "w": "weeks"}


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_posted_date(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """Best-effort parse of a scraped posting date into an aware UTC datetime.

    Accepts ISO-8601 strings, epoch seconds or milliseconds, JobsDB relative
    forms ("3d ago", "5 hours ago", "just now", "today", "yesterday") and
    dd/mm/yyyy. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    now = _utc(now or datetime.now(timezone.utc))

    if isinstance(value, datetime):
        return _utc(value)

    if isinstance(value, (int, float)):
        ts = float(value)
        # Some feeds return epoch in ms; convert if so.
        if ts > 1e12:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None

    low = s.lower()
    if low in ("just now", "today", "new"):
        return now
    if low == "yesterday":
        return now - timedelta(days=1)

    m = _RELATIVE_RE.match(s)
    if m:
        unit = _UNITS[m.group(2)[0].lower()]
        return now - timedelta(**{unit: int(m.group(1))})

    m = _DMY_RE.match(s)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None

    try:
        return _utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        return None


def job_id_from_url(url: str) -> Optional[str]:
    """Numeric job id from a `/job/<digits>` URL segment."""
    m = _JOB_ID_RE.search(url or "")
    return m.group(1) if m else None


def natural_source_id(raw: RawJob, source: str) -> Optional[str]:
    """Explicit id, else the id embedded in the URL, else a hash of source+URL."""
    sid = raw.source_id.strip()
    if sid:
        return sid
    url = raw.source_url.strip()
    if not url:
        return None
    return job_id_from_url(url) or stable_id(source, url)


def build_job(
    raw: Union[RawJob, Dict[str, Any]],
    annotation: Annotation,
    source: str,
    now: Optional[datetime] = None,
    market: Optional[str] = None,
) -> Optional[Job]:
    """Build the canonical Job. Returns None when no natural key can be formed."""
    if not isinstance(raw, RawJob):
        raw = RawJob.model_validate(raw)
    now = _utc(now or datetime.now(timezone.utc))

    source_id = natural_source_id(raw, source)
    if source_id is None:
        logger.warning("Skipping %s job without id or URL (title=%r)", source, raw.title)
        return None

    title = raw.title.strip() or None
    company = raw.company.strip() or None
    if title is None or company is None:
        logger.warning(
            "Data quality: %s job %s is missing %s",
            source,
            source_id,
            " and ".join(f for f, v in (("title", title), ("company", company)) if v is None),
        )

    posted = parse_posted_date(raw.posted_date, now)
    if posted is None and raw.posted_date not in (None, ""):
        logger.warning("Data quality: unparseable posted date %r for %s job %s", raw.posted_date, source, source_id)

    return Job(
        source_id=source_id,
        source=source,
        title=title,
        company=company,
        raw_location_text=raw.raw_location.strip(),
        description=raw.description.strip(),
        posted_date=posted,
        source_url=raw.source_url.strip() or None,
        market=market,
        search_keyword=raw.search_keyword,
        annotation=annotation,
        created_at=now,
        updated_at=now,
    )


def _is_unknown(value: Any) -> bool:
    return value is None or value == "" or value == () or value is Sponsorship.UNKNOWN or value == "Other"


def merge_annotations(existing: Annotation, incoming: Annotation) -> Annotation:
    """Field by field: take the incoming value unless it is unknown."""
    merged = {}
    for name in Annotation.model_fields:
        new = getattr(incoming, name)
        merged[name] = getattr(existing, name) if _is_unknown(new) else new
    return Annotation.model_validate(merged)


def merge_jobs(existing: Job, incoming: Job, now: Optional[datetime] = None) -> Job:
    """Re-ingestion of a stored job: refresh `updated_at`, keep `created_at`,
    take richer scrape fields and merge annotations. A job served again is no
    longer expired."""
    now = _utc(now or incoming.updated_at)
    return existing.model_copy(
        update={
            "title": incoming.title or existing.title,
            "company": incoming.company or existing.company,
            "raw_location_text": incoming.raw_location_text or existing.raw_location_text,
            "description": incoming.description or existing.description,
            "posted_date": incoming.posted_date or existing.posted_date,
            "source_url": incoming.source_url or existing.source_url,
            "market": incoming.market or existing.market,
            "search_keyword": incoming.search_keyword or existing.search_keyword,
            "annotation": merge_annotations(existing.annotation, incoming.annotation),
            "expired": False,
            "updated_at": now,
        }
    )
