"""Tests for inserting items into feed documents."""

from datetime import datetime, timezone
import os
import stat
import xml.etree.ElementTree as ET

import pytest

from html2rss.errors import FeedParseError, FeedWriteFailure
from html2rss.output import merger
from html2rss.output.item import synthesize_item
from html2rss.output.merger import check_item_renders, insert_item, merge_into_feed, scan_feed

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>Example</title>
    <link>https://ex.com/</link>
    <atom:link href="https://ex.com/rss.xml" rel="self" type="application/rss+xml"/>
    <description>Posts</description>
    <item>
      <title>Old</title>
      <guid isPermaLink="false">old-1</guid>
    </item>
  </channel>
</rss>
"""


def _item(title="New post", description="<p>Hello</p>"):
    return synthesize_item(
        title=title,
        link="https://ex.com/new.html",
        description=description,
        published_at=datetime(2024, 6, 2, 9, 5, tzinfo=timezone.utc),
    )


def _items(data: bytes):
    return ET.fromstring(data).find("channel").findall("item")


def test_scan_feed_reads_layout():
    layout = scan_feed(FEED.encode())

    assert layout.item_count == 1
    assert layout.child_indent == "    "
    assert layout.indent_unit == "  "
    assert layout.newline == "\n"
    assert layout.encoding == "utf-8"
    assert FEED.encode()[layout.close_at:].startswith(b"</channel>")
    assert FEED.encode()[: layout.insert_at].endswith(b"</item>")


def test_insert_item_adds_one_item_and_keeps_other_bytes():
    data = FEED.encode()
    layout = scan_feed(data)

    updated, item_xml = insert_item(data, _item(), layout)

    assert updated[: layout.insert_at] == data[: layout.insert_at]
    assert updated.endswith(data[layout.insert_at :])
    assert len(_items(updated)) == 2
    assert _items(updated)[-1].findtext("title") == "New post"
    assert item_xml.startswith("    <item>\n      <title>New post</title>")


def test_inserted_item_matches_existing_indentation():
    data = FEED.encode()
    updated, _ = insert_item(data, _item(), scan_feed(data))
    text = updated.decode()

    assert "    </item>\n    <item>\n      <title>New post</title>\n" in text
    assert text.endswith("    </item>\n  </channel>\n</rss>\n")


def test_inserting_twice_grows_by_one_each_time():
    data = FEED.encode()
    once, _ = insert_item(data, _item("one"), scan_feed(data))
    twice, _ = insert_item(once, _item("two"), scan_feed(once))

    assert scan_feed(once).item_count == 2
    assert scan_feed(twice).item_count == 3
    assert twice.startswith(once[: scan_feed(once).insert_at])
    assert [i.findtext("title") for i in _items(twice)] == ["Old", "one", "two"]


def test_declaration_and_namespaces_survive():
    data = FEED.encode()
    updated, _ = insert_item(data, _item(), scan_feed(data))

    assert updated.startswith(b'<?xml version="1.0" encoding="UTF-8"?>\n<rss version="2.0" xmlns:atom=')
    assert b'<atom:link href="https://ex.com/rss.xml" rel="self" type="application/rss+xml"/>' in updated


def test_crlf_feed_gets_crlf_item():
    data = FEED.replace("\n", "\r\n").encode()

    updated, _ = insert_item(data, _item(), scan_feed(data))

    assert b"\r\n    <item>\r\n      <title>New post</title>\r\n" in updated
    assert b"\n" not in updated.replace(b"\r\n", b"")


def test_tab_indented_feed_uses_tabs():
    data = b'<rss version="2.0">\n\t<channel>\n\t\t<title>T</title>\n\t</channel>\n</rss>\n'

    updated, _ = insert_item(data, _item(), scan_feed(data))

    assert b"\t\t<title>T</title>\n\t\t<item>\n\t\t\t<title>New post</title>" in updated
    assert updated.endswith(b"\t\t</item>\n\t</channel>\n</rss>\n")


def test_single_line_feed_gets_single_line_item():
    data = b'<rss version="2.0"><channel><title>T</title><item><title>a</title></item></channel></rss>'

    updated, _ = insert_item(data, _item(), scan_feed(data))

    assert b"\n" not in updated
    assert b"<title>a</title></item><item><title>New post</title>" in updated
    assert updated.endswith(b"</item></channel></rss>")


def test_empty_container_indents_one_step_deeper_than_closing_tag():
    data = b"<rss>\n  <channel>\n  </channel>\n</rss>\n"

    updated, _ = insert_item(data, _item(), scan_feed(data))

    assert updated.startswith(b"<rss>\n  <channel>\n    <item>\n      <title>New post</title>")
    assert updated.endswith(b"    </item>\n  </channel>\n</rss>\n")


def test_cdata_terminator_and_entities_survive_insertion():
    description = "<p>a ]]> b</p>".replace("]]>", "]]]]><![CDATA[>")
    data = FEED.encode()

    updated, _ = insert_item(data, _item(title="R&D <2024>", description=description), scan_feed(data))
    new = _items(updated)[-1]

    assert new.findtext("title") == "R&D <2024>"
    assert new.findtext("description") == "<p>a ]]> b</p>"


def test_declared_latin1_encoding_is_kept():
    data = (
        '<?xml version="1.0" encoding="ISO-8859-1"?>\n'
        "<rss>\n  <channel>\n    <title>Café</title>\n  </channel>\n</rss>\n"
    ).encode("latin-1")

    updated, _ = insert_item(data, _item(title="Crème"), scan_feed(data))

    assert "Crème".encode("latin-1") in updated
    assert _items(updated)[-1].findtext("title") == "Crème"


def test_only_first_container_is_used():
    data = (
        b"<root>\n  <channel>\n    <item/>\n  </channel>\n"
        b"  <channel>\n    <item/>\n    <item/>\n  </channel>\n</root>\n"
    )

    layout = scan_feed(data)
    updated, _ = insert_item(data, _item(), layout)

    assert layout.item_count == 1
    first = ET.fromstring(updated).findall("channel")[0]
    assert len(first.findall("item")) == 2


@pytest.mark.parametrize(
    "data",
    [
        b"<rss><channel><item></channel></rss>",
        b"not xml at all",
        b"",
    ],
)
def test_malformed_feed_raises(data):
    with pytest.raises(FeedParseError):
        scan_feed(data)


def test_missing_container_raises():
    with pytest.raises(FeedParseError) as excinfo:
        scan_feed(b'<?xml version="1.0"?><rss><items/></rss>', path="rss.xml")

    assert "channel" in str(excinfo.value)
    assert excinfo.value.context == {"path": "rss.xml"}


def test_self_closing_container_raises():
    with pytest.raises(FeedParseError):
        scan_feed(b"<rss><channel/></rss>")


def test_custom_container_name():
    data = b"<feed>\n  <entries>\n    <x/>\n  </entries>\n</feed>\n"

    layout = scan_feed(data, container="entries")

    assert layout.child_indent == "    "
    assert data[layout.close_at :].startswith(b"</entries>")


def test_merge_into_feed_writes_file(tmp_path):
    feed = tmp_path / "rss.xml"
    feed.write_bytes(FEED.encode())
    os.chmod(feed, 0o640)

    result = merge_into_feed(feed, _item())

    assert result.items_before == 1
    assert result.items_after == 2
    assert len(_items(feed.read_bytes())) == 2
    assert stat.S_IMODE(feed.stat().st_mode) == 0o640
    assert [p.name for p in tmp_path.iterdir()] == ["rss.xml"]


def test_merge_into_feed_missing_file_raises(tmp_path):
    with pytest.raises(FeedParseError):
        merge_into_feed(tmp_path / "missing.xml", _item())


def test_merge_into_feed_leaves_file_untouched_when_write_fails(tmp_path, monkeypatch):
    feed = tmp_path / "rss.xml"
    feed.write_bytes(FEED.encode())

    def fail_replace(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(merger.os, "replace", fail_replace)

    with pytest.raises(FeedWriteFailure):
        merge_into_feed(feed, _item())

    assert feed.read_bytes() == FEED.encode()
    assert [p.name for p in tmp_path.iterdir()] == ["rss.xml"]


def test_merge_into_feed_refuses_when_file_changed_meanwhile(tmp_path, monkeypatch):
    feed = tmp_path / "rss.xml"
    feed.write_bytes(FEED.encode())
    concurrent = FEED.replace("<title>Old</title>", "<title>Other writer</title>").encode()
    real_insert = merger.insert_item

    def insert_then_race(*args, **kwargs):
        result = real_insert(*args, **kwargs)
        feed.write_bytes(concurrent)
        return result

    monkeypatch.setattr(merger, "insert_item", insert_then_race)

    with pytest.raises(FeedWriteFailure):
        merge_into_feed(feed, _item())

    assert feed.read_bytes() == concurrent


def test_check_item_renders_returns_xml():
    item = _item(title="A & B")

    xml = check_item_renders(item)

    assert ET.fromstring(xml).findtext("title") == "A & B"
