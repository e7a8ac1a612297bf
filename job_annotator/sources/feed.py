"""JSON feed source.

Pages through a JSON endpoint that serves scraped postings (for example the
output of the JobsDB browser scraper exposed over HTTP) and maps each record
onto a `RawJob`. Field names vary between scraper versions, so several
spellings are accepted for each field.

HTTP 429 is retried with exponential backoff; any other HTTP error
propagates as `httpx.HTTPStatusError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ..models import RawJob
from .base import JobSource

logger = logging.getLogger(__name__)

_FIELD_ALIASES = {
    "source_id": ("jobId", "job_id", "source_id", "id"),
    "title": ("title", "job_title"),
    "company": ("company", "company_name"),
    "raw_location": ("location", "raw_location"),
    "description": ("fullDescription", "description", "briefDescription"),
    "posted_date": ("postedDate", "posted_date", "created_at"),
    "source_url": ("url", "source_url", "job_url"),
}


def _pick(payload: Dict[str, Any], names) -> Any:
    for name in names:
        val = payload.get(name)
        if val not in (None, ""):
            return val
    return None


def to_raw_job(payload: Dict[str, Any], search_keyword: Optional[str] = None) -> RawJob:
    """Map one feed record to a RawJob; missing fields become empty."""
    fields = {name: _pick(payload, aliases) for name, aliases in _FIELD_ALIASES.items()}
    fields["search_keyword"] = search_keyword or payload.get("searchKeyword")
    return RawJob.model_validate(fields)


class JsonFeedSource(JobSource):
    """Fetch raw postings from a paginated JSON feed."""

    name = "feed"

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 20.0,
        max_retries: int = 3,
        backoff_s: float = 2.0,
        max_pages: int = 50,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self._timeout = timeout_s
        self._max_retries = max_retries
        self._backoff_s = backoff_s
        self._max_pages = max_pages
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, follow_redirects=True, transport=self._transport)

    def _get(self, client: httpx.Client, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        retries = 0
        while True:
            try:
                resp = client.get(url, params=params)
                resp.raise_for_status()
                return resp
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 429 and retries < self._max_retries:
                    sleep_s = self._backoff_s * (2**retries)
                    logger.warning("Rate limited by %s; retrying in %.1fs", url, sleep_s)
                    time.sleep(sleep_s)
                    retries += 1
                    continue
                raise

    def fetch(self, query: Optional[str] = None, limit: int = 200) -> List[RawJob]:
        """Fetch up to `limit` postings, optionally keeping only those mentioning `query`."""
        out: List[RawJob] = []
        page = 1
        q = (query or "").strip().lower()

        with self._client() as client:
            while len(out) < max(limit, 0) and page <= self._max_pages:
                payload = self._get(client, self.base_url, params={"page": page}).json()
                if isinstance(payload, dict):
                    records = payload.get("data") or payload.get("jobs") or []
                else:
                    records = payload
                if not records:
                    break

                for record in records:
                    if not isinstance(record, dict):
                        continue
                    raw = to_raw_job(record, search_keyword=query)
                    if not (raw.title or raw.source_url):
                        continue
                    if q and q not in f"{raw.title.lower()} {raw.description.lower()}":
                        continue
                    out.append(raw)
                    if len(out) >= limit:
                        break
                page += 1

        return out

    def fetch_detail(self, url: str) -> Optional[Dict[str, Any]]:
        """Detail payload for one posting, or None if the source no longer serves it."""
        with self._client() as client:
            try:
                resp = self._get(client, url)
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code in (404, 410):
                    return None
                raise
        try:
            data = resp.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) and data else None
