"""Tests for loading HTML from files and URLs."""

import httpx
import pytest

from html2rss.config import FetchConfig
from html2rss.errors import SourceUnavailable
from html2rss.fetch.loader import is_remote, load_source


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_is_remote():
    assert is_remote("https://ex.com/a.html")
    assert is_remote("HTTP://ex.com/a.html")
    assert not is_remote("blog/a.html")
    assert not is_remote("httpdocs/a.html")


def test_local_file_is_read_as_bytes(tmp_path):
    page = tmp_path / "page.html"
    page.write_bytes("<main>café</main>".encode("utf-8"))

    result = load_source(str(page), FetchConfig())

    assert result.content == "<main>café</main>".encode("utf-8")
    assert not result.remote
    assert result.status_code is None


def test_missing_local_file_raises(tmp_path):
    missing = str(tmp_path / "nope.html")

    with pytest.raises(SourceUnavailable) as excinfo:
        load_source(missing, FetchConfig())

    assert excinfo.value.context["path"] == missing


def test_remote_page_is_fetched_with_user_agent():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, content=b"<main>remote</main>")

    cfg = FetchConfig(user_agent="html2rss-test")
    result = load_source("https://ex.com/p.html", cfg, client=_client(handler))

    assert result.content == b"<main>remote</main>"
    assert result.remote
    assert result.status_code == 200
    assert seen["ua"] == "html2rss-test"


def test_http_error_status_raises():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(SourceUnavailable) as excinfo:
        load_source("https://ex.com/missing", FetchConfig(), client=_client(handler))

    assert "404" in str(excinfo.value)
    assert excinfo.value.context["url"] == "https://ex.com/missing"


def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SourceUnavailable):
        load_source("https://ex.com/p.html", FetchConfig(), client=_client(handler))
