"""Decoder for the MediaRSS extension namespace.

Handlers take lxml elements. Titles and descriptions are strict and raise a
:class:`~fastmediarss.errors.MediaRSSError` when malformed; every other
element degrades quietly, dropping the record or leaving a field unset.

Priority merging across scopes (content > group > item > channel) is not done
here: each call only sees the scope it is given.
"""

from __future__ import annotations

import copy
import datetime
import enum
import logging
import re
from typing import Callable, Optional, TYPE_CHECKING

from lxml import etree

from .errors import MissingContentError, NestingTooDeepError, UnknownMimeTypeError
from .model import (
    TEXT_HTML,
    TEXT_PLAIN,
    Image,
    MediaCommunity,
    MediaContent,
    MediaCredit,
    MediaObject,
    MediaText,
    MediaThumbnail,
    Text,
)
from .npt import parse_npt

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger(__name__)

MEDIA_NAMESPACES = frozenset(
    {
        "http://search.yahoo.com/mrss/",
        # Old namespace (no trailing slash)
        "http://search.yahoo.com/mrss",
    }
)

DEFAULT_MAX_DEPTH = 32

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_MAX_TIMEDELTA_SECONDS = int(datetime.timedelta.max.total_seconds())

_RE_UNSIGNED = re.compile(r"\+?[0-9]+")
_RE_FLOAT = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.IGNORECASE,
)
_RE_MIME = re.compile(
    r"\s*([A-Za-z0-9!#$&^_.+-]+)/([A-Za-z0-9!#$&^_.+-]+)\s*(?:;.*)?", re.DOTALL
)

_TEXT_MIME_TYPES: dict[str, str] = {
    "plain": TEXT_PLAIN,
    "html": TEXT_HTML,
}


class MediaTag(enum.Enum):
    TITLE = "title"
    CONTENT = "content"
    THUMBNAIL = "thumbnail"
    DESCRIPTION = "description"
    COMMUNITY = "community"
    CREDIT = "credit"
    TEXT = "text"


_MEDIA_TAGS: dict[str, MediaTag] = {tag.value: tag for tag in MediaTag}


def _media_local_name(element: _Element) -> Optional[str]:
    """Local tag name of a MediaRSS element, None for anything else."""
    if not isinstance(element.tag, str):
        return None
    qname = etree.QName(element)
    if qname.namespace not in MEDIA_NAMESPACES:
        return None
    return qname.localname


def media_tag(element: _Element) -> Optional[MediaTag]:
    local = _media_local_name(element)
    if local is None:
        return None
    return _MEDIA_TAGS.get(local)


def is_media_element(element: _Element) -> bool:
    return _media_local_name(element) is not None


def _media_children(element: _Element) -> list[_Element]:
    return [child for child in element if is_media_element(child)]


def _parse_unsigned(value: Optional[str], maximum: int = _U64_MAX) -> Optional[int]:
    if value is None or not _RE_UNSIGNED.fullmatch(value):
        return None
    number = int(value)
    if number > maximum:
        return None
    return number


def _parse_float(value: Optional[str]) -> Optional[float]:
    # float() alone would also take "4_5" and surrounding whitespace
    if value is None or not _RE_FLOAT.fullmatch(value):
        return None
    return float(value)


def _parse_mime(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    match = _RE_MIME.fullmatch(value)
    if not match:
        return None
    return f"{match.group(1)}/{match.group(2)}".lower()


def _npt_attribute(element: _Element, name: str) -> Optional[datetime.timedelta]:
    value = element.get(name)
    if value is None:
        return None
    parsed = parse_npt(value)
    if parsed is None:
        logger.debug("Ignoring unparsable NPT %s=%r", name, value)
    return parsed


def _duration_attribute(element: _Element, name: str) -> Optional[datetime.timedelta]:
    seconds = _parse_unsigned(element.get(name))
    if seconds is None or seconds > _MAX_TIMEDELTA_SECONDS:
        return None
    return datetime.timedelta(seconds=seconds)


def _serialize_child(child: _Element) -> str:
    # Detached copy so only the namespaces the markup itself uses are declared
    detached = copy.deepcopy(child)
    etree.cleanup_namespaces(detached)
    return etree.tostring(detached, encoding="unicode", with_tail=True)


def _child_as_text(element: _Element) -> Optional[str]:
    text = "".join(element.itertext()).strip()
    return text or None


def _children_as_string(element: _Element) -> Optional[str]:
    parts = [element.text or ""]
    for child in element:
        parts.append(_serialize_child(child))
    content = "".join(parts).strip()
    return content or None


def handle_text(element: _Element) -> Text:
    """Handle a ``media:title`` or ``media:description`` element.

    The ``type`` attribute defaults to "plain"; anything other than "plain" or
    "html" raises UnknownMimeTypeError. The serialized inner content, markup
    included, is required and its absence raises MissingContentError.
    """
    type_attr = element.get("type", "plain")
    content_type = _TEXT_MIME_TYPES.get(type_attr)
    if content_type is None:
        raise UnknownMimeTypeError(type_attr)

    content = _children_as_string(element)
    if content is None:
        raise MissingContentError("text")
    return Text(content, content_type=content_type)


def handle_media_community(element: _Element) -> MediaCommunity:
    community = MediaCommunity()

    for child in element:
        local = _media_local_name(child)
        if local == "starRating":
            average = _parse_float(child.get("average"))
            if average is not None:
                community.stars_avg = average
            count = _parse_unsigned(child.get("count"))
            if count is not None:
                community.stars_count = count
            minimum = _parse_unsigned(child.get("min"))
            if minimum is not None:
                community.stars_min = minimum
            maximum = _parse_unsigned(child.get("max"))
            if maximum is not None:
                community.stars_max = maximum
        elif local == "statistics":
            views = _parse_unsigned(child.get("views"))
            if views is not None:
                community.stats_views = views
            favorites = _parse_unsigned(child.get("favorites"))
            if favorites is not None:
                community.stats_favorites = favorites

    return community


def handle_media_content(element: _Element) -> Optional[MediaContent]:
    """Read the attributes of a ``media:content`` element.

    Nested media elements are left to :func:`handle_media_element`. Returns
    None when there is no ``url``.
    """
    url = element.get("url")
    if url is None:
        logger.debug("Dropping media:content without url")
        return None

    return MediaContent(
        url=url,
        content_type=_parse_mime(element.get("type")),
        width=_parse_unsigned(element.get("width"), _U32_MAX),
        height=_parse_unsigned(element.get("height"), _U32_MAX),
        medium=element.get("medium"),
        size=_parse_unsigned(element.get("fileSize")),
        duration=_duration_attribute(element, "duration"),
    )


def handle_media_credit(element: _Element) -> Optional[MediaCredit]:
    text = _child_as_text(element)
    if text is None:
        logger.debug("Dropping empty media:credit")
        return None
    return MediaCredit(text, role=element.get("role"), scheme=element.get("scheme"))


def handle_media_text(element: _Element) -> Optional[MediaText]:
    # Unlike titles, an unknown type silently falls back to plain text
    content_type = _TEXT_MIME_TYPES.get(element.get("type", ""), TEXT_PLAIN)
    start_time = _npt_attribute(element, "start")
    end_time = _npt_attribute(element, "end")

    text = _child_as_text(element)
    if text is None:
        logger.debug("Dropping empty media:text")
        return None
    return MediaText(
        Text(text, content_type=content_type),
        start_time=start_time,
        end_time=end_time,
    )


def handle_media_thumbnail(element: _Element) -> Optional[MediaThumbnail]:
    url = element.get("url")
    if url is None:
        logger.debug("Dropping media:thumbnail without url")
        return None

    image = Image(
        url,
        width=_parse_unsigned(element.get("width"), _U32_MAX),
        height=_parse_unsigned(element.get("height"), _U32_MAX),
    )
    return MediaThumbnail(image, time=_npt_attribute(element, "time"))


def _set_title(element: _Element, media_obj: MediaObject) -> None:
    media_obj.title = handle_text(element)


def _set_description(element: _Element, media_obj: MediaObject) -> None:
    media_obj.description = handle_text(element)


def _set_community(element: _Element, media_obj: MediaObject) -> None:
    media_obj.community = handle_media_community(element)


def _add_thumbnail(element: _Element, media_obj: MediaObject) -> None:
    thumbnail = handle_media_thumbnail(element)
    if thumbnail is not None:
        media_obj.thumbnails.append(thumbnail)


def _add_credit(element: _Element, media_obj: MediaObject) -> None:
    credit = handle_media_credit(element)
    if credit is not None:
        media_obj.credits.append(credit)


def _add_text(element: _Element, media_obj: MediaObject) -> None:
    text = handle_media_text(element)
    if text is not None:
        media_obj.texts.append(text)


# media:content is absent: it is expanded by the work loop in handle_media_element
_LEAF_HANDLERS: dict[MediaTag, Callable[[_Element, MediaObject], None]] = {
    MediaTag.TITLE: _set_title,
    MediaTag.THUMBNAIL: _add_thumbnail,
    MediaTag.DESCRIPTION: _set_description,
    MediaTag.COMMUNITY: _set_community,
    MediaTag.CREDIT: _add_credit,
    MediaTag.TEXT: _add_text,
}


def handle_media_element(
    element: _Element,
    media_obj: MediaObject,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """Decode one MediaRSS element into ``media_obj``.

    ``media:content`` may itself hold further media elements; those are
    decoded into the same object before the content record is stored. The
    nesting is walked with an explicit stack and is limited to ``max_depth``
    levels of ``media:content``.
    """
    pending: list[tuple[int, _Element | MediaContent]] = [(0, element)]
    while pending:
        depth, item = pending.pop()
        if isinstance(item, MediaContent):
            media_obj.content = item
            continue

        tag = media_tag(item)
        if tag is None:
            continue
        if tag is not MediaTag.CONTENT:
            _LEAF_HANDLERS[tag](item, media_obj)
            continue

        content = handle_media_content(item)
        if content is None:
            continue
        children = _media_children(item)
        if children and depth >= max_depth:
            raise NestingTooDeepError(max_depth)
        # Committed after its children have been handled
        pending.append((depth, content))
        pending.extend((depth + 1, child) for child in reversed(children))


def handle_media_group(
    element: _Element, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> MediaObject:
    """Decode a ``media:group`` into a fresh MediaObject."""
    media_obj = MediaObject()
    for child in _media_children(element):
        handle_media_element(child, media_obj, max_depth=max_depth)
    return media_obj
