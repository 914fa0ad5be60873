class MediaRSSError(ValueError):
    """Base class for faults that abort decoding of a MediaRSS fragment."""


class UnknownMimeTypeError(MediaRSSError):
    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unknown MIME type for media text element: {mime_type!r}")
        self.mime_type = mime_type


class MissingContentError(MediaRSSError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing content for media {field} element")
        self.field = field


class NestingTooDeepError(MediaRSSError):
    def __init__(self, max_depth: int) -> None:
        super().__init__(
            f"media:content elements nested deeper than {max_depth} levels"
        )
        self.max_depth = max_depth
