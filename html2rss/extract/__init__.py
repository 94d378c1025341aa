"""
Fragment extraction and cleanup.

This package selects the content fragment, resolves the title, makes
URLs absolute and normalizes the fragment into feed-safe text.
"""

from .normalizer import cdata_safe, escape_xml, normalize_fragment
from .selector import parse_html, resolve_title, select_fragment
from .urls import absolutize_fragment, resolve_srcset, resolve_url, validate_base_url

__all__ = [
    "absolutize_fragment",
    "cdata_safe",
    "escape_xml",
    "normalize_fragment",
    "parse_html",
    "resolve_srcset",
    "resolve_title",
    "resolve_url",
    "select_fragment",
    "validate_base_url",
]
