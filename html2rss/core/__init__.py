"""
Core data types and date handling.

This package contains the data passed between pipeline stages and is
independent of any specific stage.
"""

from .dates import now_utc, parse_feed_date, to_rfc2822
from .types import ContentFragment, FeedItem, ResolvedUrl, RunResult, RunState

__all__ = [
    "ContentFragment",
    "FeedItem",
    "ResolvedUrl",
    "RunResult",
    "RunState",
    "now_utc",
    "parse_feed_date",
    "to_rfc2822",
]
