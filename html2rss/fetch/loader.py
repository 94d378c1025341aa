"""
Source loading for local HTML files and remote pages.

A source starting with ``http://`` or ``https://`` is fetched with httpx;
anything else is read from the local filesystem. Both paths return raw
bytes and leave decoding to the HTML parser.

There is no retry: a failed load ends the run, and callers who want
another attempt re-invoke the tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from ..config import FetchConfig
from ..errors import SourceUnavailable


@dataclass
class LoadResult:
    """Raw HTML and where it came from.

    Attributes:
        source: The path or URL as given
        content: Undecoded HTML bytes
        remote: True when the source was fetched over HTTP
        status_code: HTTP status code for remote sources, None for local files
    """
    source: str
    content: bytes
    remote: bool
    status_code: int | None = None


def is_remote(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def load_source(source: str, cfg: FetchConfig, client: httpx.Client | None = None) -> LoadResult:
    """Load HTML bytes from a local path or a URL.

    Args:
        source: Relative or absolute file path, or an http(s) URL
        cfg: Fetch settings used for remote sources
        client: Optional preconfigured httpx client (used by tests)

    Returns:
        LoadResult with the raw bytes

    Raises:
        SourceUnavailable: if the file cannot be read or the fetch fails
    """
    if is_remote(source):
        return fetch_url(source, cfg, client=client)
    return read_file(source)


def read_file(path: str) -> LoadResult:
    try:
        content = Path(path).read_bytes()
    except OSError as exc:
        raise SourceUnavailable(f"Cannot read HTML file: {exc.strerror or exc}", path=path) from exc
    return LoadResult(source=path, content=content, remote=False)


def fetch_url(url: str, cfg: FetchConfig, client: httpx.Client | None = None) -> LoadResult:
    """Fetch a URL using httpx.

    Uses a synchronous HTTP client that follows redirects and respects
    system proxy settings when trust_env is enabled. Any transport error
    or a 4xx/5xx response is reported as SourceUnavailable.
    """
    headers = {"User-Agent": cfg.user_agent}
    try:
        if client is None:
            with httpx.Client(
                timeout=cfg.timeout_seconds,
                headers=headers,
                follow_redirects=True,
                trust_env=cfg.trust_env,
            ) as own_client:
                resp = own_client.get(url)
        else:
            resp = client.get(url, headers=headers)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SourceUnavailable(
            f"HTTP {exc.response.status_code} fetching page", url=url
        ) from exc
    except httpx.HTTPError as exc:
        raise SourceUnavailable(f"{type(exc).__name__}: {exc}", url=url) from exc

    return LoadResult(source=url, content=resp.content, remote=True, status_code=resp.status_code)
