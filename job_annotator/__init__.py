"""Job annotation engine.

The package is laid out by pipeline stage:
- `patterns.py` holds the static keyword/regex registries (generic + market overlays).
- `extractors.py` turns description text into one typed value per dimension.
- `annotate.py` composes those values into an `Annotation`.
- `normalize.py` builds the canonical `Job` and owns the re-ingestion merge policy.
- `filters.py` and `aggregate.py` consume stored jobs for search and statistics.
- `models.py` defines the stable schema everything above shares.
"""

from .annotate import compose
from .models import Annotation, FilterSpec, Job, RawJob, Sponsorship

__all__ = ["Annotation", "FilterSpec", "Job", "RawJob", "Sponsorship", "compose"]
