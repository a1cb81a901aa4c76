"""
Conversions between wall-clock strings, minutes and calendar dates.

Strict parsers (``parse_minutes``, ``parse_date``) raise ``ParseError``
subclasses. The remaining helpers are fail-soft: malformed input is logged
and a conservative default is returned, so a single bad record never breaks
a compliance screen.
"""
import datetime
import logging
import math
import re
from typing import Optional

from .errors import DateParseError, TimeParseError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY: int = 24 * 60

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_minutes(time: str) -> int:
    """Parse a strict ``HH:MM`` (00:00-23:59) into minutes after midnight."""
    if not isinstance(time, str):
        raise TimeParseError(time)
    match = TIME_PATTERN.match(time)
    if not match:
        raise TimeParseError(time)
    return int(match.group(1)) * 60 + int(match.group(2))


def time_to_minutes(time: str) -> int:
    """
    Minutes after midnight for ``HH:MM``.

    Malformed input yields 0 (legacy behaviour kept for display callers);
    use ``parse_minutes`` when the error matters.
    """
    try:
        return parse_minutes(time)
    except TimeParseError as e:
        logger.error("Invalid time, treating as 00:00: %s", e)
        return 0


def minutes_to_time(minutes: float) -> str:
    """Format minutes as ``HH:MM``, wrapping hours modulo 24."""
    if not isinstance(minutes, (int, float)) or math.isnan(minutes) or minutes < 0:
        logger.error("Invalid minutes value: %r", minutes)
        return "00:00"
    hours = int(minutes // 60) % 24
    mins = int(minutes % 60)
    return f"{hours:02d}:{mins:02d}"


def parse_time_input(value: str) -> Optional[str]:
    """
    Normalise flexible user input to ``HH:MM``.

    Accepted forms::

        "7"     -> "07:00"   (1-2 digits: hour only)
        "130"   -> "01:30"   (3 digits: H:MM)
        "1330"  -> "13:30"   (4 digits: HH:MM)
        "13:30" -> "13:30"

    Returns None for anything out of range or ambiguous.
    """
    if not isinstance(value, str):
        return None

    clean = re.sub(r"[^\d:]", "", value)
    if not clean:
        return None

    if ":" in clean:
        parts = clean.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None
        hours, minutes = int(parts[0]), int(parts[1])
    elif len(clean) in (1, 2):
        hours, minutes = int(clean), 0
    elif len(clean) == 3:
        hours, minutes = int(clean[:1]), int(clean[1:])
    elif len(clean) == 4:
        hours, minutes = int(clean[:2]), int(clean[2:])
    else:
        return None

    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def calculate_duration(start_time: str, end_time: str) -> int:
    """Minutes from start to end; an end before the start runs past midnight."""
    try:
        start = parse_minutes(start_time)
        end = parse_minutes(end_time)
    except TimeParseError as e:
        logger.error("Invalid time format for duration calculation: %s", e)
        return 0

    if end < start:
        end += MINUTES_PER_DAY
    return end - start


def is_overnight(start_time: str, end_time: str) -> bool:
    """True when the end clock time is earlier than the start."""
    try:
        return parse_minutes(end_time) < parse_minutes(start_time)
    except TimeParseError:
        return False


def format_duration(minutes: float) -> str:
    """Format minutes as ``"Xh Ym"``."""
    if not isinstance(minutes, (int, float)) or math.isnan(minutes) or minutes < 0:
        logger.error("Invalid minutes for formatting: %r", minutes)
        return "0h 0m"
    return f"{int(minutes // 60)}h {int(minutes % 60)}m"


def parse_date(value: datetime.date | str) -> datetime.date:
    """Coerce a ``date``/``datetime`` or strict ``YYYY-MM-DD`` string to a date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise DateParseError(value)
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise DateParseError(value)


def safe_parse_date(value: datetime.date | str) -> Optional[datetime.date]:
    """``parse_date`` that logs and returns None instead of raising."""
    try:
        return parse_date(value)
    except DateParseError as e:
        logger.error("%s", e)
        return None
