from .errors import (
    MediaRSSError,
    MissingContentError,
    NestingTooDeepError,
    UnknownMimeTypeError,
)
from .main import FastFeedParserDict, parse, parse_media_scope
from .mediarss import (
    DEFAULT_MAX_DEPTH,
    MediaTag,
    handle_media_community,
    handle_media_content,
    handle_media_credit,
    handle_media_element,
    handle_media_group,
    handle_media_text,
    handle_media_thumbnail,
    handle_text,
    media_tag,
)
from .model import (
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

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "FastFeedParserDict",
    "Image",
    "MediaCommunity",
    "MediaContent",
    "MediaCredit",
    "MediaObject",
    "MediaRSSError",
    "MediaTag",
    "MediaText",
    "MediaThumbnail",
    "MissingContentError",
    "NestingTooDeepError",
    "Text",
    "UnknownMimeTypeError",
    "handle_media_community",
    "handle_media_content",
    "handle_media_credit",
    "handle_media_element",
    "handle_media_group",
    "handle_media_text",
    "handle_media_thumbnail",
    "handle_text",
    "media_tag",
    "parse",
    "parse_media_scope",
    "parse_npt",
]
