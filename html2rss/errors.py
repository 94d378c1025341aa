"""Error taxonomy for the html2rss pipeline.

Every failure that ends a run is an ``Html2RssError``. Each subclass keeps
the offending input (selector, URL, file path) in ``context`` so the CLI can
report it, and the pipeline records the state reached before the failure in
``state``.

Example:
    >>> err = SelectorNotFound("no element matches", selector="article.post")
    >>> str(err)
    'no element matches (selector=article.post)'
    >>> isinstance(err, Html2RssError)
    True
"""

from __future__ import annotations

from typing import Any


class Html2RssError(Exception):
    """Base exception for html2rss."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}
        self.state: str | None = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class SourceUnavailable(Html2RssError):
    """The HTML source could not be read or fetched."""


class SelectorNotFound(Html2RssError):
    """No element in the document matches the selector."""


class TitleNotFound(Html2RssError):
    """No title override was given and the document has no usable <h1>."""


class InvalidBaseUrl(Html2RssError):
    """The base URL is not an absolute http(s) URL."""


class InvalidDateTime(Html2RssError):
    """The publication date could not be parsed."""


class FeedParseError(Html2RssError):
    """The feed document is not well-formed or lacks its item container."""


class FeedWriteFailure(Html2RssError):
    """The updated feed document could not be written back."""


class ConfigError(Html2RssError):
    """The configuration file is invalid."""
