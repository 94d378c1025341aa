"""
Turning the selected fragment into text that can sit inside a feed item.

The description is wrapped in a CDATA section, so markup characters can
stay as they are; the only sequence that needs care is ``]]>``, which
would end the section early. Titles and links are not CDATA-wrapped and
get full XML entity escaping instead.
"""

from __future__ import annotations

import re

from ..core.types import ContentFragment

CDATA_END = "]]>"
CDATA_END_SPLIT = "]]]]><![CDATA[>"

_WS_RE = re.compile(r"\s+")

_XML_ENTITIES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def serialize_fragment(fragment: ContentFragment) -> str:
    """Inner HTML of the fragment root, keeping the source's line breaks."""
    return fragment.root.decode_contents()


def cut_lines(text: str, lines_to_cut: int) -> str:
    """Drop the first ``lines_to_cut`` lines of ``text``.

    Lines are split on ``\\n`` only, so counts match line numbers in the
    source file; other Unicode line separators stay inside their line.
    Cutting as many lines as the text has, or more, leaves an empty string.
    """
    if lines_to_cut < 0:
        raise ValueError(f"lines_to_cut must be >= 0, got {lines_to_cut}")
    if lines_to_cut == 0:
        return text
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    return "\n".join(lines[lines_to_cut:])


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def cdata_safe(text: str) -> str:
    """Split every ``]]>`` so the text cannot close its CDATA wrapper."""
    return text.replace(CDATA_END, CDATA_END_SPLIT)


def escape_xml(text: str) -> str:
    # "&" goes first so the other entities are not double-escaped
    for char, entity in _XML_ENTITIES:
        text = text.replace(char, entity)
    return text


def normalize_fragment(fragment: ContentFragment, lines_to_cut: int = 0) -> str:
    """Serialize, cut leading lines, collapse whitespace and make CDATA-safe.

    Lines are counted on the serialized HTML before whitespace is
    collapsed, so they match line positions in the source file.

    Args:
        fragment: The (already URL-rewritten) fragment
        lines_to_cut: Number of leading lines to remove, 0 for none

    Returns:
        Single-line HTML ready to be embedded in a CDATA section
    """
    text = serialize_fragment(fragment)
    text = cut_lines(text, lines_to_cut)
    text = collapse_whitespace(text)
    return cdata_safe(text)
