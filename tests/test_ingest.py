"""
Unit tests for ingest.py
"""

import logging
from datetime import timedelta

import pytest

from job_annotator.ingest import ingest_batch, ingest_one, purge_expired, refresh_stale
from job_annotator.models import Sponsorship
from job_annotator.store import InMemoryJobStore


def _raw(source_id, description="Python developer. Visa sponsorship available.", **extra):
    data = {
        "source_id": source_id,
        "title": "Developer",
        "company": "Acme Ltd",
        "description": description,
        "source_url": f"https://hk.jobsdb.com/job/{source_id}",
    }
    data.update(extra)
    return data


class TestIngest:
    def test_annotates_and_stores(self, now):
        store = InMemoryJobStore()
        assert ingest_one(_raw("1"), store, "JobsDB", market="HK", now=now) == "inserted"
        job = store.get(("1", "JobsDB"))
        assert job.annotation.tech_stack == ("Python",)
        assert job.annotation.visa_sponsorship is Sponsorship.YES
        assert job.market == "HK"

    def test_report_counts(self, now):
        store = InMemoryJobStore()
        batch = [_raw("1"), _raw("2"), _raw("1"), {"title": "No id or url"}]
        report = ingest_batch(batch, store, "JobsDB", now=now)
        assert (report.inserted, report.updated, report.skipped, report.failed) == (2, 1, 1, 0)
        assert report.processed == 3
        assert len(store) == 2

    def test_bad_item_does_not_stop_batch(self, now, caplog):
        store = InMemoryJobStore()
        with caplog.at_level(logging.ERROR):
            report = ingest_batch([_raw("1"), 42, _raw("2")], store, "JobsDB", now=now)
        assert report.failed == 1
        assert report.inserted == 2
        assert "Failed to ingest" in caplog.text

    @pytest.mark.parametrize("posted", [["x"], {"$date": "2026-01-01"}, True])
    def test_malformed_posted_date_still_stored(self, now, posted):
        store = InMemoryJobStore()
        batch = [_raw("1", posted_date=posted, search_keyword={"q": 1}), _raw("2")]
        report = ingest_batch(batch, store, "JobsDB", now=now)
        assert (report.inserted, report.failed) == (2, 0)
        job = store.get(("1", "JobsDB"))
        assert job.posted_date is None
        assert job.search_keyword is None

    def test_reingest_keeps_known_annotation(self, now):
        store = InMemoryJobStore()
        ingest_one(_raw("1"), store, "JobsDB", now=now - timedelta(days=1))
        ingest_one(_raw("1", description="Short blurb"), store, "JobsDB", now=now)
        job = store.get(("1", "JobsDB"))
        assert job.annotation.visa_sponsorship is Sponsorship.YES
        assert job.annotation.tech_stack == ("Python",)
        assert job.created_at == now - timedelta(days=1)
        assert job.updated_at == now


class TestRefreshStale:
    def _store(self, now):
        store = InMemoryJobStore()
        ingest_batch([_raw("alive"), _raw("gone"), _raw("flaky")], store, "JobsDB", now=now - timedelta(days=2))
        ingest_batch([_raw("fresh")], store, "JobsDB", now=now)
        return store

    def test_refresh_expire_and_errors(self, now):
        store = self._store(now)
        checked = []

        def fetch_detail(url):
            checked.append(url)
            if url.endswith("alive"):
                return {"title": "Developer"}
            if url.endswith("flaky"):
                raise RuntimeError("timeout")
            return {}

        counts = refresh_stale(store, fetch_detail, now=now)
        assert counts == {"refreshed": 1, "expired": 1, "errors": 1}
        assert not any(u.endswith("fresh") for u in checked)

        assert store.get(("alive", "JobsDB")).updated_at == now
        assert store.get(("gone", "JobsDB")).expired
        flaky = store.get(("flaky", "JobsDB"))
        assert not flaky.expired
        assert flaky.updated_at == now - timedelta(days=2)

    def test_expired_jobs_are_not_rechecked(self, now):
        store = self._store(now)
        refresh_stale(store, lambda url: None, now=now)
        checked = []
        refresh_stale(store, lambda url: checked.append(url) or None, now=now + timedelta(days=2))
        assert checked == [store.get(("fresh", "JobsDB")).source_url]
        assert store.get(("gone", "JobsDB")).updated_at == now

    def test_limit(self, now):
        store = self._store(now)
        counts = refresh_stale(store, lambda url: None, now=now, limit=2)
        assert counts["expired"] == 2


class TestPurgeExpired:
    def test_removes_only_old_and_unseen(self, now):
        store = InMemoryJobStore()
        ingest_batch([_raw("ancient")], store, "JobsDB", now=now - timedelta(days=61))
        ingest_batch([_raw("revived")], store, "JobsDB", now=now - timedelta(days=61))
        ingest_batch([_raw("revived")], store, "JobsDB", now=now - timedelta(days=10))
        ingest_batch([_raw("recent")], store, "JobsDB", now=now - timedelta(days=50))

        assert purge_expired(store, now=now) == 1
        assert {j.source_id for j in store.all()} == {"revived", "recent"}

    def test_daily_sweeps_eventually_purge_a_vanished_job(self, now):
        store = InMemoryJobStore()
        start = now - timedelta(days=100)
        ingest_batch([_raw("vanished")], store, "JobsDB", now=start)

        purged_on = None
        for day in range(1, 101):
            t = start + timedelta(days=day)
            refresh_stale(store, lambda url: None, now=t)
            if purge_expired(store, now=t) and purged_on is None:
                purged_on = day

        assert store.get(("vanished", "JobsDB")) is None
        assert purged_on == 61
