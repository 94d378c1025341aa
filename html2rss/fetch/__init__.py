"""
Source loading.

This package reads HTML from local files or fetches it over HTTP.
"""

from .loader import LoadResult, is_remote, load_source

__all__ = [
    "LoadResult",
    "is_remote",
    "load_source",
]
