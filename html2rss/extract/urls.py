"""
Rewriting of relative resource references to absolute URLs.

Only ``href``, ``src`` and ``srcset`` are touched. A value is rewritten
when it is a relative reference (path-absolute like ``/img/a.png`` or
path-relative like ``../a.png``). Values carrying a scheme, protocol-relative
values, same-document ``#fragment`` references and empty values are kept
as they are, so running the rewrite twice changes nothing the second time.

Example:
    >>> resolve_url("https://ex.com/blog", "../img/a.png?w=1#top").absolute
    'https://ex.com/img/a.png?w=1#top'
    >>> resolve_url("https://ex.com/blog", "mailto:me@ex.com").absolute
    'mailto:me@ex.com'
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlsplit

from ..core.types import ContentFragment, ResolvedUrl
from ..errors import InvalidBaseUrl
from ..logging_utils import log_event

logger = logging.getLogger("html2rss.urls")

URL_ATTRIBUTES = ("href", "src")
SRCSET_ATTRIBUTE = "srcset"

_WS_RE = re.compile(r"\s+")


def validate_base_url(base_url: str | None) -> str:
    """Check the base URL and return it as a directory URL (trailing slash).

    A base without a trailing slash is taken to name a directory, so
    ``https://ex.com/blog`` and ``https://ex.com/blog/`` resolve the same way.

    Raises:
        InvalidBaseUrl: if the URL is not an absolute http(s) URL with a host
    """
    if not base_url or not base_url.strip():
        raise InvalidBaseUrl("A base URL is required", base_url=base_url)
    candidate = base_url.strip()
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
    except ValueError as exc:
        raise InvalidBaseUrl(f"Malformed base URL: {exc}", base_url=base_url) from exc
    if parts.scheme.lower() not in ("http", "https") or not host:
        raise InvalidBaseUrl("Base URL must be an absolute http(s) URL", base_url=base_url)
    if not parts.path.endswith("/"):
        candidate = parts._replace(path=parts.path + "/", query="", fragment="").geturl()
    return candidate


def is_relative_reference(value: str) -> bool:
    """True for references that need a base URL to become absolute."""
    stripped = value.strip()
    if not stripped or stripped.startswith(("#", "//")):
        return False
    return not urlsplit(stripped).scheme


def resolve_url(base_url: str, value: str) -> ResolvedUrl:
    """Resolve a single attribute value against a base URL.

    Malformed values are logged and returned unchanged.
    """
    try:
        if not is_relative_reference(value):
            return ResolvedUrl(original=value, absolute=value)
        absolute = urljoin(validate_base_url(base_url), value.strip())
    except ValueError as exc:
        log_event(
            logger,
            "Leaving malformed URL unchanged",
            event="url_skipped",
            value=value,
            error=str(exc),
            level=logging.WARNING,
        )
        return ResolvedUrl(original=value, absolute=value)
    return ResolvedUrl(original=value, absolute=absolute)


def parse_srcset(value: str) -> list[tuple[str, str]]:
    """Split a srcset value into ``(url, descriptor)`` candidates.

    Follows the HTML candidate parsing rules: a URL runs up to the next
    whitespace, so commas inside it (``data:`` URIs, ``w_400,h_300`` paths)
    stay part of the URL. A URL ending in commas ends its candidate.
    Otherwise the descriptor runs up to the next comma outside parentheses.
    """
    candidates = []
    pos, end = 0, len(value)
    while True:
        while pos < end and (value[pos].isspace() or value[pos] == ","):
            pos += 1
        if pos >= end:
            return candidates
        start = pos
        while pos < end and not value[pos].isspace():
            pos += 1
        url = value[start:pos]
        if url.endswith(","):
            candidates.append((url.rstrip(","), ""))
            continue
        start = pos
        depth = 0
        while pos < end:
            char = value[pos]
            if char == "(":
                depth += 1
            elif char == ")" and depth:
                depth -= 1
            elif char == "," and not depth:
                break
            pos += 1
        candidates.append((url, _WS_RE.sub(" ", value[start:pos]).strip()))


def resolve_srcset(base_url: str, value: str) -> str:
    """Resolve every candidate of a srcset value, keeping its descriptor.

    ``"a.png 1x, /b.png 480w"`` becomes
    ``"https://ex.com/blog/a.png 1x, https://ex.com/b.png 480w"``.
    A value with nothing to resolve is returned untouched.
    """
    candidates = []
    changed = False
    for url, descriptor in parse_srcset(value):
        resolved = resolve_url(base_url, url)
        changed = changed or resolved.changed
        candidates.append(f"{resolved.absolute} {descriptor}" if descriptor else resolved.absolute)
    if not changed:
        return value
    return ", ".join(candidates)


def absolutize_fragment(fragment: ContentFragment, base_url: str) -> list[ResolvedUrl]:
    """Rewrite relative href/src/srcset values in place.

    The fragment root and all of its descendant elements are visited.

    Returns:
        The rewrites that changed a value, in document order

    Raises:
        InvalidBaseUrl: if base_url is not usable
    """
    base = validate_base_url(base_url)
    rewritten: list[ResolvedUrl] = []

    for element in [fragment.root, *fragment.root.find_all(True)]:
        for attr in URL_ATTRIBUTES:
            value = element.get(attr)
            if not isinstance(value, str):
                continue
            resolved = resolve_url(base, value)
            if resolved.changed:
                element[attr] = resolved.absolute
                rewritten.append(resolved)

        srcset = element.get(SRCSET_ATTRIBUTE)
        if isinstance(srcset, str):
            resolved_srcset = resolve_srcset(base, srcset)
            if resolved_srcset != srcset:
                element[SRCSET_ATTRIBUTE] = resolved_srcset
                rewritten.append(ResolvedUrl(original=srcset, absolute=resolved_srcset))

    return rewritten
