"""
Insertion of a rendered item into an existing feed document.

The feed is never re-serialized from a tree. It is parsed once with expat
to check that it is well-formed and to find the byte offsets of the item
container (``<channel>``), then the new item is spliced into the raw
bytes right after the container's last child. Everything else in the
file, including the XML declaration, namespaces, comments and the exact
formatting of older items, stays byte-for-byte the same.

The indentation of the new item is read from the document: it copies the
indentation of the container's last child, or indents one step deeper
than the container's closing tag when the container is empty. A feed
written on a single line gets a single-line item.

Writing is atomic: the new content goes to a temporary file in the same
directory which then replaces the feed. If the feed changed on disk after
it was read (another run appended first), the write is refused.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
import logging
import os
import re
from pathlib import Path
import shutil
import tempfile
from xml.parsers import expat

from ..core.types import FeedItem
from ..errors import FeedParseError, FeedWriteFailure
from ..logging_utils import log_event
from .item import render_item

logger = logging.getLogger("html2rss.merger")

ITEM_TAG = "item"

_WHITESPACE = b" \t\r\n"


@dataclass
class ContainerLayout:
    """Where and how a new item goes into the feed document.

    Attributes:
        insert_at: Byte offset right after the container's last content,
            before the whitespace that leads up to the closing tag
        close_at: Byte offset of the container's closing tag
        child_indent: Indentation for the new item's opening line
        indent_unit: Extra indentation for the item's own children
        newline: Line ending to use, or "" for a single-line layout
        encoding: Declared document encoding
        item_count: Number of item elements directly inside the container
    """
    insert_at: int
    close_at: int
    child_indent: str
    indent_unit: str
    newline: str
    encoding: str
    item_count: int


@dataclass
class MergeResult:
    """Outcome of merging an item into a feed file.

    Attributes:
        path: The feed file that was rewritten
        item_xml: The item exactly as inserted (without the leading line ending)
        items_before: Item count before insertion
        items_after: Item count after insertion
    """
    path: Path
    item_xml: str
    items_before: int
    items_after: int


class _ContainerScanner:
    """Expat handlers that record the first container's byte positions."""

    def __init__(self, container: str) -> None:
        self.container = container
        self.depth = 0
        self.container_depth: int | None = None
        self.close_at: int | None = None
        self.last_child_at: int | None = None
        self.item_count = 0
        self.encoding: str | None = None
        self.parser = expat.ParserCreate()
        self.parser.StartElementHandler = self._start
        self.parser.EndElementHandler = self._end
        self.parser.XmlDeclHandler = self._xml_decl

    def scan(self, data: bytes) -> None:
        self.parser.Parse(data, True)

    def _start(self, name: str, attrs: dict[str, str]) -> None:
        if self.close_at is None:
            if self.container_depth is None and name == self.container:
                self.container_depth = self.depth
            elif self.container_depth is not None and self.depth == self.container_depth + 1:
                self.last_child_at = self.parser.CurrentByteIndex
                if name == ITEM_TAG:
                    self.item_count += 1
        self.depth += 1

    def _end(self, name: str) -> None:
        self.depth -= 1
        if self.close_at is None and self.depth == self.container_depth:
            self.close_at = self.parser.CurrentByteIndex

    def _xml_decl(self, version: str | None, encoding: str | None, standalone: int) -> None:
        self.encoding = encoding


def scan_feed(
    data: bytes,
    container: str = "channel",
    indent_unit: str = "  ",
    path: str | None = None,
) -> ContainerLayout:
    """Parse a feed document and describe its item container.

    Args:
        data: Raw bytes of the feed document
        container: Tag name of the item container
        indent_unit: Indentation step used when the document does not show one
        path: File name, only used in error messages

    Raises:
        FeedParseError: if the document is not well-formed XML, has no
            container element, or the container has no closing tag
    """
    scanner = _ContainerScanner(container)
    try:
        scanner.scan(data)
    except expat.ExpatError as exc:
        raise FeedParseError(f"Feed document is not well-formed XML: {exc}", path=path) from exc

    if scanner.close_at is None:
        raise FeedParseError(f"Feed document has no <{container}> element", path=path)
    encoding = (scanner.encoding or "utf-8").lower()
    if encoding.startswith(("utf-16", "utf-32")):
        raise FeedParseError(f"Unsupported feed encoding: {encoding}", path=path)

    close_at = scanner.close_at
    # for <channel/> expat reports the end event after the tag, not on a closing tag
    end_tag = re.compile(rb"</" + re.escape(container.encode("utf-8")) + rb"\s*>")
    if not end_tag.match(data, close_at):
        raise FeedParseError(f"<{container}> is self-closing; nowhere to insert items", path=path)

    insert_at = close_at
    while insert_at > 0 and data[insert_at - 1] in _WHITESPACE:
        insert_at -= 1

    newline = "\r\n" if b"\r\n" in data else "\n"
    close_indent = _line_indent(data, close_at)

    if scanner.last_child_at is not None:
        child_indent = _line_indent(data, scanner.last_child_at)
    elif b"\n" in data[insert_at:close_at] and close_indent is not None:
        child_indent = close_indent + indent_unit
    else:
        child_indent = None

    if child_indent is None:
        return ContainerLayout(
            insert_at=insert_at,
            close_at=close_at,
            child_indent="",
            indent_unit="",
            newline="",
            encoding=encoding,
            item_count=scanner.item_count,
        )

    unit = indent_unit
    if close_indent is not None and len(child_indent) > len(close_indent) and child_indent.startswith(close_indent):
        unit = child_indent[len(close_indent):]

    return ContainerLayout(
        insert_at=insert_at,
        close_at=close_at,
        child_indent=child_indent,
        indent_unit=unit,
        newline=newline,
        encoding=encoding,
        item_count=scanner.item_count,
    )


def insert_item(
    data: bytes,
    item: FeedItem,
    layout: ContainerLayout,
    path: str | None = None,
) -> tuple[bytes, str]:
    """Splice a rendered item into the feed bytes as the container's last child.

    Returns:
        The new document bytes and the item XML that was inserted

    Raises:
        FeedParseError: if the result would not be well-formed XML
    """
    item_xml = render_item(
        item,
        indent=layout.child_indent,
        unit=layout.indent_unit,
        newline=layout.newline,
    )
    insertion = (layout.newline + item_xml).encode(layout.encoding, errors="xmlcharrefreplace")
    updated = data[: layout.insert_at] + insertion + data[layout.insert_at :]

    try:
        expat.ParserCreate().Parse(updated, True)
    except expat.ExpatError as exc:
        raise FeedParseError(f"Inserted item does not render as valid XML: {exc}", path=path) from exc
    return updated, item_xml


def merge_into_feed(
    path: str | Path,
    item: FeedItem,
    container: str = "channel",
    indent_unit: str = "  ",
) -> MergeResult:
    """Insert an item into the feed file at ``path`` and write it back.

    The file is either left untouched or replaced with a complete, valid
    document containing exactly one more item.

    Raises:
        FeedParseError: if the feed cannot be read or parsed
        FeedWriteFailure: if the updated feed cannot be written, or the file
            changed on disk while the item was being inserted
    """
    feed_path = Path(path).resolve()
    try:
        original = feed_path.read_bytes()
    except OSError as exc:
        raise FeedParseError(f"Cannot read feed document: {exc.strerror or exc}", path=str(path)) from exc

    layout = scan_feed(original, container=container, indent_unit=indent_unit, path=str(path))
    updated, item_xml = insert_item(original, item, layout, path=str(path))
    after = scan_feed(updated, container=container, indent_unit=indent_unit, path=str(path))

    _write_atomic(feed_path, original, updated)
    log_event(
        logger,
        "Feed document written",
        event="feed_written",
        path=str(feed_path),
        bytes_written=len(updated),
        items_before=layout.item_count,
        items_after=after.item_count,
    )
    return MergeResult(
        path=feed_path,
        item_xml=item_xml,
        items_before=layout.item_count,
        items_after=after.item_count,
    )


def _line_indent(data: bytes, offset: int) -> str | None:
    """Whitespace between the previous line break and ``offset``.

    Returns None when something other than whitespace precedes ``offset`` on
    its line, or when there is no earlier line break.
    """
    line_start = data.rfind(b"\n", 0, offset)
    if line_start == -1:
        return None
    prefix = data[line_start + 1 : offset]
    if prefix.strip(_WHITESPACE):
        return None
    return prefix.decode("ascii")


def _write_atomic(path: Path, original: bytes, content: bytes) -> None:
    try:
        current = path.read_bytes()
    except OSError as exc:
        raise FeedWriteFailure(f"Cannot re-read feed document: {exc.strerror or exc}", path=str(path)) from exc
    if current != original:
        raise FeedWriteFailure("Feed document changed on disk during the run", path=str(path))

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as exc:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise FeedWriteFailure(f"Cannot write feed document: {exc.strerror or exc}", path=str(path)) from exc


def check_item_renders(item: FeedItem, indent_unit: str = "  ") -> str:
    """Render an item on its own and confirm it is well-formed XML.

    Used in dry-run mode, where no feed document is opened.

    Raises:
        FeedParseError: if the rendered item is not well-formed
    """
    item_xml = render_item(item, unit=indent_unit)
    try:
        expat.ParserCreate().Parse(item_xml.encode("utf-8"), True)
    except expat.ExpatError as exc:
        raise FeedParseError(f"Item does not render as valid XML: {exc}") from exc
    return item_xml
