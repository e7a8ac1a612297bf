"""Raw job sources. Scraping itself lives outside this package; sources only
hand over `RawJob` tuples."""

from .base import JobSource
from .feed import JsonFeedSource

__all__ = ["JobSource", "JsonFeedSource"]
