"""Base classes for raw job sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import RawJob


class JobSource(ABC):
    """Abstract base class for a scraper/feed handing over raw job tuples."""

    name: str

    @abstractmethod
    def fetch(self, query: Optional[str] = None, limit: int = 200) -> List[RawJob]:
        """Fetch postings and return them as raw tuples (not yet annotated)."""
        raise NotImplementedError
