from __future__ import annotations

import logging
import re
from typing import Any, Optional, TYPE_CHECKING, Literal

from lxml import etree

from .mediarss import (
    DEFAULT_MAX_DEPTH,
    MEDIA_NAMESPACES,
    handle_media_element,
    handle_media_group,
    is_media_element,
)
from .model import MediaObject

if TYPE_CHECKING:
    from lxml.etree import _Element

_FeedType = Literal["rss", "atom", "rdf"]

logger = logging.getLogger(__name__)

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)

_RDF_NS = "{http://www.w3.org/1999/02/22-rdf-syntax-ns#}"
_RDF_ABOUT_ATTR = _RDF_NS + "about"
_RSS10_ITEM_TAG = "{http://purl.org/rss/1.0/}item"
_ATOM_NAMESPACES = frozenset(
    {
        "http://www.w3.org/2005/Atom",
        "https://www.w3.org/2005/Atom",
        "http://purl.org/atom/ns#",
    }
)
_MEDIA_NS_MARKER = b"search.yahoo.com/mrss"


class FastFeedParserDict(dict):
    """A dictionary that allows access to its keys as attributes."""

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                f"'FastFeedParserDict' object has no attribute '{name}'"
            )

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Ensure the XML declaration's encoding matches the UTF-8 bytes we emit."""
    if not content.lstrip().startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _clean_feed_bytes(content: bytes) -> bytes:
    """Extract the XML document when it is preceded by junk."""
    stripped_content = content.lstrip()
    preview_lower = stripped_content[:2000].lower()

    # Skip UTF-8 BOM when doing ASCII prefix checks
    if preview_lower.startswith(b"\xef\xbb\xbf"):
        preview_lower = preview_lower[3:]
        stripped_content = stripped_content[3:]

    if preview_lower.startswith((b"<?xml", b"<rss", b"<feed", b"<rdf")):
        return stripped_content

    if preview_lower.startswith((b"<!doctype html", b"<html")):
        raise ValueError("Content appears to be HTML, not a valid RSS/Atom feed")

    search_chunk = content[:8192].lower()
    earliest = -1
    for pattern in (b"<?xml", b"<rss", b"<feed", b"<rdf:rdf"):
        idx = search_chunk.find(pattern)
        if idx != -1 and (earliest == -1 or idx < earliest):
            earliest = idx
    if earliest != -1:
        return content[earliest:]

    return content


def _prepare_xml_bytes(xml_content: str | bytes) -> bytes:
    if isinstance(xml_content, str):
        xml_content = _ensure_utf8_xml_declaration(xml_content).encode(
            "utf-8", errors="replace"
        )

    cleaned = _clean_feed_bytes(xml_content)
    if not cleaned.strip():
        raise ValueError("Empty content")

    # LINE SEPARATOR and PARAGRAPH SEPARATOR are invalid in XML 1.0
    if b"\xe2\x80\xa8" in cleaned or b"\xe2\x80\xa9" in cleaned:
        cleaned = cleaned.replace(b"\xe2\x80\xa8", b"\n").replace(
            b"\xe2\x80\xa9", b"\n"
        )
    return cleaned


_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
)


def _parse_xml_root(xml_content: bytes) -> _Element:
    try:
        root = etree.fromstring(xml_content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError as e:
        logger.debug("Strict XML parse failed, retrying in recover mode: %s", e)
        try:
            root = etree.fromstring(xml_content, parser=_RECOVER_XML_PARSER)
        except etree.XMLSyntaxError as e:
            raise ValueError(f"Failed to parse XML content: {str(e)}")

    if root is None:
        raise ValueError("Failed to parse XML: received empty content")
    return root


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower() if "}" in tag else tag.lower()


def _detect_feed_structure(
    root: _Element,
) -> tuple[_FeedType, _Element, list[_Element], Optional[str]]:
    root_tag_local = _local_name(root.tag)

    if root_tag_local == "rss":
        channel = root.find("channel")
        if channel is None:
            channel = next(
                (
                    child
                    for child in root
                    if isinstance(child.tag, str)
                    and _local_name(child.tag) == "channel"
                ),
                None,
            )
        if channel is None:
            raise ValueError("Invalid RSS feed: missing channel element")
        items = channel.findall("item") or root.findall("item")
        return "rss", channel, items, None

    if root_tag_local == "feed":
        atom_namespace = etree.QName(root).namespace
        if atom_namespace not in _ATOM_NAMESPACES:
            raise ValueError(f"Unknown Atom namespace in feed type: {root.tag}")
        items = root.findall(f"{{{atom_namespace}}}entry")
        return "atom", root, items, atom_namespace

    if root.tag == _RDF_NS + "RDF":
        items = root.findall(_RSS10_ITEM_TAG) or root.findall("item")
        channel = root.find("{http://purl.org/rss/1.0/}channel")
        return "rdf", channel if channel is not None else root, items, None

    raise ValueError(f"Unknown feed type: {root.tag}")


def parse_media_scope(
    element: _Element, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[MediaObject]:
    """Decode the MediaRSS children of one item or channel.

    Every ``media:group`` yields its own object, in document order. Loose
    media elements are collected into one trailing object, kept only when it
    ended up holding something.
    """
    media: list[MediaObject] = []
    loose = MediaObject()
    for child in element:
        if not is_media_element(child):
            continue
        if etree.QName(child).localname == "group":
            media.append(handle_media_group(child, max_depth=max_depth))
        else:
            handle_media_element(child, loose, max_depth=max_depth)

    if loose.has_content():
        media.append(loose)
    return media


def _child_text(element: _Element, *tags: str) -> Optional[str]:
    for tag in tags:
        found = element.find(tag)
        if found is not None and found.text and found.text.strip():
            return found.text.strip()
    return None


def _parse_entry(
    item: _Element,
    feed_type: _FeedType,
    atom_namespace: Optional[str],
    has_media_ns: bool,
    max_depth: int,
) -> FastFeedParserDict:
    entry = FastFeedParserDict()

    if feed_type == "atom":
        ns = f"{{{atom_namespace}}}"
        entry_id = _child_text(item, ns + "id")
        link = None
        for link_el in item.findall(ns + "link"):
            if link_el.get("rel", "alternate") == "alternate" and link_el.get("href"):
                link = link_el.get("href").strip()
                break
    elif feed_type == "rdf":
        link = _child_text(item, "{http://purl.org/rss/1.0/}link", "link")
        entry_id = item.get(_RDF_ABOUT_ATTR)
    else:
        link = _child_text(item, "link")
        entry_id = _child_text(item, "guid")

    if entry_id:
        entry["id"] = entry_id.strip()
    if link:
        entry["link"] = link
    if "id" not in entry and "link" in entry:
        entry["id"] = entry["link"]

    entry["media"] = (
        parse_media_scope(item, max_depth=max_depth) if has_media_ns else []
    )
    return entry


def parse(
    source: str | bytes, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> FastFeedParserDict:
    """Decode the MediaRSS metadata of a feed document.

    Args:
        source: XML content string/bytes (RSS 2.0, RSS 1.0/RDF or Atom)
        max_depth: Maximum nesting of media:content elements

    Returns:
        FastFeedParserDict with ``feed`` (type and channel-level media) and
        ``entries`` (id, link and media per item)

    Raises:
        ValueError: If content is empty or not a feed
        MediaRSSError: If a media title/description is malformed, or
            media:content nesting exceeds ``max_depth``
    """
    xml_content = _prepare_xml_bytes(source)
    root = _parse_xml_root(xml_content)
    feed_type, channel, items, atom_namespace = _detect_feed_structure(root)

    # Documents that never mention the namespace cannot hold media elements
    has_media_ns = _MEDIA_NS_MARKER in xml_content or any(
        ns in MEDIA_NAMESPACES for ns in root.nsmap.values()
    )

    feed_info = FastFeedParserDict(type=feed_type)
    feed_info["media"] = (
        parse_media_scope(channel, max_depth=max_depth) if has_media_ns else []
    )

    entries = [
        _parse_entry(item, feed_type, atom_namespace, has_media_ns, max_depth)
        for item in items
    ]
    return FastFeedParserDict(feed=feed_info, entries=entries)
