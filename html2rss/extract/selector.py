"""
Fragment selection and title lookup on the parsed source document.

Both lookups walk the tree in document order (pre-order, depth-first),
so the same input always yields the same fragment and title.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from ..core.types import ContentFragment
from ..errors import SelectorNotFound, TitleNotFound

_WS_RE = re.compile(r"\s+")


def parse_html(data: bytes | str) -> BeautifulSoup:
    """Parse HTML bytes or text; bytes are decoded by BeautifulSoup's detection."""
    return BeautifulSoup(data, "html.parser")


def select_fragment(document: BeautifulSoup, selector: str) -> ContentFragment:
    """Return the first element matching a CSS selector.

    Raises:
        SelectorNotFound: if the selector is invalid or matches nothing
    """
    try:
        element = document.select_one(selector)
    except SelectorSyntaxError as exc:
        raise SelectorNotFound(f"Invalid CSS selector: {exc}", selector=selector) from exc
    if element is None:
        raise SelectorNotFound("Selector not found in HTML", selector=selector)
    return ContentFragment(root=element, selector=selector)


def resolve_title(document: BeautifulSoup, override: str | None = None) -> str:
    """Pick the item title.

    An override is returned verbatim. Otherwise the flattened text of the
    first <h1> in the whole document with any text is used.

    Raises:
        TitleNotFound: if there is no override and no <h1> with text
    """
    if override is not None:
        return override
    for heading in document.find_all("h1"):
        text = _WS_RE.sub(" ", heading.get_text(" ")).strip()
        if text:
            return text
    raise TitleNotFound("No title given and no <h1> element with text in the document")
