"""
Unit tests for normalize.py

Covers canonical Job construction, natural-key derivation, posted-date
parsing and the re-ingestion merge policy.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from job_annotator.models import Annotation, RawJob, Salary, Sponsorship
from job_annotator.normalize import (
    build_job,
    job_id_from_url,
    merge_annotations,
    merge_jobs,
    parse_posted_date,
)
from job_annotator.utils import stable_id


def _raw(**overrides):
    data = {
        "source_id": "123",
        "title": "  Backend Engineer ",
        "company": "Acme Ltd",
        "raw_location": "Central",
        "description": "Build services.",
        "posted_date": "2026-09-30T08:00:00Z",
        "source_url": "https://hk.jobsdb.com/job/123",
    }
    data.update(overrides)
    return data


class TestBuildJob:
    def test_canonical_fields(self, now):
        job = build_job(_raw(), Annotation(), "JobsDB", now=now, market="HK")
        assert job.key == ("123", "JobsDB")
        assert job.title == "Backend Engineer"
        assert job.posted_date == datetime(2026, 9, 30, 8, 0, tzinfo=timezone.utc)
        assert job.created_at == job.updated_at == now
        assert job.market == "HK"
        assert not job.expired

    def test_missing_title_is_a_warning_not_a_failure(self, now, caplog):
        with caplog.at_level(logging.WARNING):
            job = build_job(_raw(title=None, company="  "), Annotation(), "JobsDB", now=now)
        assert job is not None
        assert job.title is None and job.company is None
        assert "missing title and company" in caplog.text

    def test_id_from_url(self, now):
        job = build_job(_raw(source_id="", source_url="https://hk.jobsdb.com/hk/en/job/98765?src=x"), Annotation(), "JobsDB", now=now)
        assert job.source_id == "98765"

    def test_id_hashed_from_url_without_job_segment(self, now):
        url = "https://example.com/careers/backend"
        job = build_job(_raw(source_id=None, source_url=url), Annotation(), "JobsDB", now=now)
        assert job.source_id == stable_id("JobsDB", url)

    def test_no_key_returns_none(self, now):
        assert build_job(_raw(source_id="", source_url=""), Annotation(), "JobsDB", now=now) is None

    def test_unparseable_date_kept_as_none(self, now, caplog):
        with caplog.at_level(logging.WARNING):
            job = build_job(_raw(posted_date="sometime"), Annotation(), "JobsDB", now=now)
        assert job.posted_date is None
        assert "unparseable posted date" in caplog.text

    def test_accepts_raw_job_and_bytes(self, now):
        raw = RawJob(source_id=b"7", title=b"Dev\xff", description=None)
        job = build_job(raw, Annotation(), "JobsDB", now=now)
        assert job.source_id == "7"
        assert job.title.startswith("Dev")
        assert job.description == ""


class TestParsePostedDate:
    def test_iso(self):
        assert parse_posted_date("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert parse_posted_date("2024-01-02") == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_epoch_seconds_and_millis(self):
        expected = datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert parse_posted_date(1700000000) == expected
        assert parse_posted_date(1700000000000) == expected

    @pytest.mark.parametrize("text,delta", [
        ("3d ago", timedelta(days=3)),
        ("5h ago", timedelta(hours=5)),
        ("30m ago", timedelta(minutes=30)),
        ("2 days ago", timedelta(days=2)),
        ("30+ days ago", timedelta(days=30)),
        ("1 week ago", timedelta(weeks=1)),
        ("yesterday", timedelta(days=1)),
        ("just now", timedelta(0)),
    ])
    def test_relative(self, now, text, delta):
        assert parse_posted_date(text, now) == now - delta

    def test_day_month_year(self):
        assert parse_posted_date("15/08/2026") == datetime(2026, 8, 15, tzinfo=timezone.utc)
        assert parse_posted_date("31/02/2026") is None

    @pytest.mark.parametrize("value", [None, "", "garbage", True, [], "next month"])
    def test_unparseable(self, value):
        assert parse_posted_date(value) is None


class TestJobIdFromUrl:
    def test_extracts_digits(self):
        assert job_id_from_url("https://hk.jobsdb.com/job/555") == "555"

    def test_no_match(self):
        assert job_id_from_url("https://hk.jobsdb.com/jobs") is None
        assert job_id_from_url(None) is None


class TestMergeAnnotations:
    def test_known_never_replaced_by_unknown(self):
        existing = Annotation(
            years_of_experience=5,
            industry="Technology",
            visa_sponsorship=Sponsorship.YES,
            tech_stack=["Python"],
            summary="Build things",
        )
        merged = merge_annotations(existing, Annotation())
        assert merged.years_of_experience == 5
        assert merged.industry == "Technology"
        assert merged.visa_sponsorship is Sponsorship.YES
        assert merged.tech_stack == ("Python",)
        assert merged.summary == "Build things"

    def test_known_incoming_wins(self):
        existing = Annotation(visa_sponsorship=Sponsorship.YES, salary=Salary(min=1, max=2))
        incoming = Annotation(visa_sponsorship=Sponsorship.NO, salary=Salary(min=3, max=4))
        merged = merge_annotations(existing, incoming)
        assert merged.visa_sponsorship is Sponsorship.NO
        assert merged.salary == Salary(min=3, max=4)

    def test_closed_world_fields_always_refresh(self):
        merged = merge_annotations(Annotation(location_type="Remote"), Annotation(location_type="On-site"))
        assert merged.location_type == "On-site"


class TestMergeJobs:
    def test_refresh(self, make_job, now):
        old = make_job(source_id="1", created_at=now - timedelta(days=3), expired=True, description="old", years_of_experience=4)
        new = make_job(source_id="1", created_at=now, description="", title="New title")
        merged = merge_jobs(old, new, now=now)
        assert merged.created_at == now - timedelta(days=3)
        assert merged.updated_at == now
        assert merged.title == "New title"
        assert merged.description == "old"
        assert merged.annotation.years_of_experience == 4
        assert not merged.expired
