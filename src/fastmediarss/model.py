from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

TEXT_PLAIN = "text/plain"
TEXT_HTML = "text/html"


@dataclass
class Text:
    content: str
    content_type: str = TEXT_PLAIN


@dataclass
class Image:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class MediaThumbnail:
    """A ``media:thumbnail``; ``time`` is the offset into the media it was taken at."""

    image: Image
    time: Optional[datetime.timedelta] = None


@dataclass
class MediaContent:
    url: Optional[str] = None
    content_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    medium: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[datetime.timedelta] = None


@dataclass
class MediaCommunity:
    """Aggregate of ``media:starRating`` and ``media:statistics``."""

    stars_avg: float = 0.0
    stars_count: int = 0
    stars_min: int = 0
    stars_max: int = 0
    stats_views: int = 0
    stats_favorites: int = 0


@dataclass
class MediaCredit:
    text: str
    role: Optional[str] = None
    scheme: Optional[str] = None


@dataclass
class MediaText:
    """A caption or transcript line, optionally bounded by start/end offsets."""

    text: Text
    start_time: Optional[datetime.timedelta] = None
    end_time: Optional[datetime.timedelta] = None


@dataclass
class MediaObject:
    """Media metadata collected from one scope (a group, or an item's loose elements).

    Title, description, content and community hold the last value seen;
    thumbnails, credits and texts keep every record in document order.
    """

    title: Optional[Text] = None
    description: Optional[Text] = None
    content: Optional[MediaContent] = None
    thumbnails: list[MediaThumbnail] = field(default_factory=list)
    community: Optional[MediaCommunity] = None
    credits: list[MediaCredit] = field(default_factory=list)
    texts: list[MediaText] = field(default_factory=list)

    def has_content(self) -> bool:
        return (
            self.title is not None
            or self.description is not None
            or self.content is not None
            or self.community is not None
            or bool(self.thumbnails)
            or bool(self.credits)
            or bool(self.texts)
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form with None values dropped and durations in seconds."""
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    return value
