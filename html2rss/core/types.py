"""
Core data types for html2rss.

This module defines the data structures passed between pipeline stages:
- ContentFragment: The HTML subtree selected for conversion
- ResolvedUrl: An attribute value and its absolute form
- FeedItem: The synthesized feed item
- RunState: Where a pipeline run currently stands
- RunResult: What a finished run produced
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from bs4 import Tag

from .dates import to_rfc2822


@dataclass
class ContentFragment:
    """The element subtree selected from the source document.

    Attributes:
        root: The matched element; its descendants are the content
        selector: The CSS selector that matched it
    """
    root: Tag
    selector: str


@dataclass(frozen=True)
class ResolvedUrl:
    """Pairing of an attribute value and its absolute form.

    Attributes:
        original: The value as found in the fragment
        absolute: The rewritten value, or the original when left untouched
    """
    original: str
    absolute: str

    @property
    def changed(self) -> bool:
        return self.original != self.absolute


@dataclass(frozen=True)
class FeedItem:
    """A single feed item, immutable once synthesized.

    Attributes:
        title: Item title, unescaped
        link: Absolute URL of the item's web page
        guid: Unique identifier, fresh for every run
        published_at: Timezone-aware publication timestamp
        description: CDATA-safe HTML of the item body
    """
    title: str
    link: str
    guid: str
    published_at: datetime
    description: str

    @property
    def pub_date(self) -> str:
        """Publication date in RFC 2822 form, e.g. ``Sun, 18 Oct 2026 09:05:00 +0000``."""
        return to_rfc2822(self.published_at)


class RunState(str, Enum):
    """Pipeline states, in the order a run passes through them."""

    LOADED = "loaded"
    SELECTED = "selected"
    TITLE_RESOLVED = "title_resolved"
    URLS_RESOLVED = "urls_resolved"
    NORMALIZED = "normalized"
    SYNTHESIZED = "synthesized"
    INSERTED = "inserted"
    PREVIEWED_ONLY = "previewed_only"


@dataclass
class RunResult:
    """Outcome of a completed pipeline run.

    Attributes:
        state: Final state, INSERTED or PREVIEWED_ONLY
        item: The synthesized feed item
        item_xml: The item as rendered for insertion or preview
        rewritten_urls: Attribute values that were made absolute
        feed_path: The feed document written, None in dry-run mode
        items_before: Item count in the feed before insertion
        items_after: Item count in the feed after insertion
    """
    state: RunState
    item: FeedItem
    item_xml: str
    rewritten_urls: list[ResolvedUrl]
    feed_path: str | None = None
    items_before: int | None = None
    items_after: int | None = None
