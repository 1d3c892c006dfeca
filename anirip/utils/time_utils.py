"""Time utility functions for ASS subtitle timestamps."""

import logging
import re

logger = logging.getLogger(__name__)

ASS_TIME_PATTERN = re.compile(r'^(\d+):(\d{2}):(\d{2})\.(\d{1,3})$')


def parse_ass_time(time_str):
    """Convert an ``H:MM:SS.cc`` timestamp into milliseconds.

    Raises:
        ValueError: the string is not an ASS timestamp
    """
    match = ASS_TIME_PATTERN.match(time_str.strip())
    if not match:
        raise ValueError(f"Invalid ASS timestamp: {time_str!r}")
    hours, minutes, seconds, fraction = match.groups()
    # "5" is half a second, "50" too, "500" as well
    milliseconds = int(fraction.ljust(3, '0'))
    return ((int(hours) * 60 + int(minutes)) * 60 + int(seconds)) * 1000 + milliseconds


def format_ass_time(milliseconds, hour_width=1):
    """Convert milliseconds into ``H:MM:SS.cc``, truncating below centiseconds."""
    if milliseconds < 0:
        raise ValueError(f"Negative timestamp: {milliseconds}ms")
    hours = milliseconds // 3600000
    minutes = (milliseconds % 3600000) // 60000
    seconds = (milliseconds % 60000) // 1000
    centiseconds = (milliseconds % 1000) // 10
    return f"{hours:0{hour_width}d}:{minutes:02d}:{seconds:02d}.{centiseconds:02d}"


def shift_ass_time(time_str, offset_ms):
    """Move an ASS timestamp forward by ``offset_ms``.

    A zero offset returns the timestamp untouched; otherwise the result keeps
    the hour width of the input.
    """
    if not offset_ms:
        return time_str
    hour_width = len(time_str.strip().split(':', 1)[0])
    return format_ass_time(parse_ass_time(time_str) + offset_ms, hour_width)
