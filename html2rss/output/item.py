"""
Feed item synthesis and rendering.

An item gets a fresh random guid on every run: each insertion is its own
feed event, even when the source page is unchanged.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path, PureWindowsPath
from urllib.parse import quote, urljoin, urlsplit
import uuid

from jinja2 import Environment, FileSystemLoader

from ..core.dates import now_utc
from ..core.types import FeedItem
from ..extract.normalizer import escape_xml
from ..extract.urls import validate_base_url
from ..fetch.loader import is_remote

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=False,
    keep_trailing_newline=False,
)
_env.filters["xml_escape"] = escape_xml


def synthesize_item(
    title: str,
    link: str,
    description: str,
    published_at: datetime | None = None,
) -> FeedItem:
    """Assemble a FeedItem, stamping it with a new guid and the current time."""
    return FeedItem(
        title=title,
        link=link,
        guid=str(uuid.uuid4()),
        published_at=published_at or now_utc(),
        description=description,
    )


def build_item_link(source: str, base_url: str) -> str:
    """Absolute URL of the page the item points at.

    A remote source is its own link. A local path is resolved against the
    base URL minus its last path segment, so ``https://site/blog`` and
    ``blog/page.html`` give ``https://site/blog/page.html`` rather than
    ``https://site/blog/blog/page.html``.
    """
    if is_remote(source):
        return source
    parent = remove_last_segment(validate_base_url(base_url))
    path = PureWindowsPath(source).as_posix() if "\\" in source else source
    return urljoin(parent, quote(path, safe="/%:@&=+$,;~!*'()"))


def remove_last_segment(url: str) -> str:
    """Drop the final file or directory from a URL's path.

    >>> remove_last_segment("http://www.xxx.com/blog/temp/")
    'http://www.xxx.com/blog/'
    >>> remove_last_segment("http://www.xxx.com/blog/file.htm")
    'http://www.xxx.com/blog/'
    """
    parts = urlsplit(url)
    path = parts.path
    if not path or path == "/":
        return parts._replace(path="/").geturl()
    trimmed = path[:-1] if path.endswith("/") else path
    new_path = trimmed[: trimmed.rfind("/") + 1] or "/"
    return parts._replace(path=new_path, query="", fragment="").geturl()


def render_item(
    item: FeedItem,
    indent: str = "",
    unit: str = "  ",
    newline: str = "\n",
) -> str:
    """Render an item as an XML fragment.

    Args:
        item: The item to render
        indent: Whitespace placed before the <item> tag and every child line
        unit: Extra indentation of the child elements
        newline: Line ending; an empty string renders the item on one line

    Returns:
        The <item> element without a trailing line ending
    """
    if not newline:
        indent = unit = ""
    template = _env.get_template("item.xml")
    rendered = template.render(item=item, indent=indent, unit=unit)
    if newline != "\n":
        rendered = rendered.replace("\n", newline)
    return rendered
