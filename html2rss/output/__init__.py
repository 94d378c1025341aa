"""
Output generation.

This package builds the feed item and merges it into the feed document.
"""

from .item import build_item_link, render_item, synthesize_item
from .merger import check_item_renders, merge_into_feed, scan_feed

__all__ = [
    "build_item_link",
    "check_item_renders",
    "merge_into_feed",
    "render_item",
    "scan_feed",
    "synthesize_item",
]
