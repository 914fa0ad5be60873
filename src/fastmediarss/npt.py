from __future__ import annotations

import datetime
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

# Normal Play Time, RFC 2326 section 3.6
_RE_NPT_HHMMSS = re.compile(
    r"(?P<h>\d+):(?P<m>\d{2}):(?P<s>\d{2})(?:\.(?P<f>\d+))?", re.ASCII
)
_RE_NPT_SEC = re.compile(r"(?P<s>\d+)(?:\.(?P<f>\d+))?", re.ASCII)


def _fraction_millis(fraction: Optional[str]) -> int:
    if not fraction:
        return 0
    return 1000 * int(fraction) // 10 ** len(fraction)


def parse_npt(text: str) -> Optional[datetime.timedelta]:
    """Parse a normal play time value into a timedelta.

    Looks for ``H:MM:SS[.f]`` (npt-hhmmss) anywhere in the value, then for
    ``S[.f]`` (npt-sec), so ``npt=12:05:35`` or the start of ``10-20`` decode.
    Returns None when neither form occurs.
    """
    if not text:
        return None

    match = _RE_NPT_HHMMSS.search(text)
    if match:
        seconds = (
            int(match.group("h")) * 3600
            + int(match.group("m")) * 60
            + int(match.group("s"))
        )
    else:
        match = _RE_NPT_SEC.search(text)
        if not match:
            return None
        seconds = int(match.group("s"))

    try:
        return datetime.timedelta(
            seconds=seconds, milliseconds=_fraction_millis(match.group("f"))
        )
    except OverflowError:
        logger.debug("NPT value out of range: %r", text)
        return None
