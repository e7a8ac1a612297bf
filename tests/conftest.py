import itertools
from datetime import datetime, timezone

import pytest

from job_annotator.models import Annotation, Job


@pytest.fixture
def now():
    return datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_job(now):
    """Factory for stored jobs; extra keyword arguments become annotation fields."""
    ids = itertools.count(1)

    def _make(
        source_id=None,
        source="JobsDB",
        title="Software Engineer",
        company="Acme Ltd",
        description="",
        posted_date=None,
        created_at=None,
        updated_at=None,
        expired=False,
        **annotation,
    ):
        created = created_at or now
        return Job(
            source_id=source_id or str(next(ids)),
            source=source,
            title=title,
            company=company,
            description=description,
            posted_date=posted_date,
            annotation=Annotation(**annotation),
            expired=expired,
            created_at=created,
            updated_at=updated_at or created,
        )

    return _make
