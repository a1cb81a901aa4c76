"""
iCalendar export and import of the activity log.

Events span the briefed activity (pre-briefing to post-briefing) so they
show the whole block in a calendar. Times are written as floating local
times. The DESCRIPTION carries ``Key: value`` lines that let an import
rebuild the original activity.
"""
import datetime
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from icalendar import Calendar

from ..engine.errors import ParseError
from ..engine.spans import activity_interval
from ..models import Activity, ActivityType
from .errors import ImportFormatError

logger = logging.getLogger(__name__)

UID_PREFIX = "safehours-"
SUMMARY_PATTERN = re.compile(r"^SafeHours: (.+) Activity$")


def format_ics_datetime(value: datetime.datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%S")


def escape_text(text: str) -> str:
    """Escape TEXT values per RFC 5545."""
    return (text.replace("\\", "\\\\")
                .replace(";", "\\;")
                .replace(",", "\\,")
                .replace("\n", "\\n"))


def fold_line(line: str, limit: int = 75) -> str:
    """Fold a content line into continuation lines of at most ``limit`` characters."""
    if len(line) <= limit:
        return line
    parts = [line[:limit]]
    rest = line[limit:]
    while rest:
        parts.append(" " + rest[:limit - 1])
        rest = rest[limit - 1:]
    return "\r\n".join(parts)


def _hours(value: float) -> str:
    return f"{value:g} hours"


def activity_description(activity: Activity) -> str:
    pre, post = activity.briefing_hours()
    lines = [f"Type: {activity.type.value}"]
    if pre + post > 0:
        lines.append(f"Pre Value: {_hours(pre)}")
        lines.append(f"Post Value: {_hours(post)}")
        lines.append(f"Pre/Post Value: {_hours(pre + post)}")
    # Notes go last: they may span several lines
    if activity.notes:
        lines.append(f"Notes: {activity.notes}")
    return "\n".join(lines)


def activity_to_vevent(activity: Activity, stamp: datetime.datetime) -> List[str]:
    """VEVENT lines for one activity. Raises ParseError for malformed records."""
    start, end = activity_interval(activity, adjusted=True)
    return [
        "BEGIN:VEVENT",
        f"UID:{UID_PREFIX}{activity.id}",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
        f"DTSTART:{format_ics_datetime(start)}",
        f"DTEND:{format_ics_datetime(end)}",
        f"SUMMARY:{escape_text(f'SafeHours: {activity.type.value} Activity')}",
        f"DESCRIPTION:{escape_text(activity_description(activity))}",
        "END:VEVENT",
    ]


def activities_to_ics(activities: Iterable[Activity],
                      now: Optional[datetime.datetime] = None) -> str:
    """Serialize activities to an iCalendar document; malformed records are skipped."""
    stamp = now or datetime.datetime.now()
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//SafeHours//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:SafeHours Activities",
    ]
    for activity in activities:
        try:
            lines.extend(activity_to_vevent(activity, stamp))
        except ParseError as e:
            logger.warning("Skipping activity %s in iCalendar export: %s", activity.id, e)
    lines.append("END:VCALENDAR")
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"


def parse_description(description: str) -> Dict[str, str]:
    """Read ``Key: value`` lines; ``Notes`` takes the rest of the text."""
    fields: Dict[str, str] = {}
    remaining = description
    while remaining:
        line, _, rest = remaining.partition("\n")
        key, sep, value = line.partition(": ")
        if sep and key.strip() == "Notes":
            fields["Notes"] = remaining[len(line) - len(value):]
            break
        if sep:
            fields[key.strip()] = value.strip()
        remaining = rest
    return fields


def _parse_hours(value: Optional[str]) -> float:
    if not value:
        return 0.0
    try:
        return float(value.split()[0])
    except (ValueError, IndexError):
        return 0.0


def _briefing_from(fields: Dict[str, str]) -> Tuple[float, float]:
    if "Pre Value" in fields or "Post Value" in fields:
        return (_parse_hours(fields.get("Pre Value")), _parse_hours(fields.get("Post Value")))
    combined = _parse_hours(fields.get("Pre/Post Value"))
    return (combined / 2, combined / 2)


def _event_datetime(event: Any, name: str) -> Optional[datetime.datetime]:
    """Local wall-clock value of DTSTART/DTEND; None if missing or all-day."""
    if name not in event:
        return None
    value = event.decoded(name)
    if not isinstance(value, datetime.datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def parse_ics(text: str) -> List[Activity]:
    """
    Rebuild activities from an iCalendar document written by ``activities_to_ics``.

    Events without a SafeHours type (in the description or summary) are
    ignored. Raises ImportFormatError when the document cannot be parsed.
    """
    try:
        calendar = Calendar.from_ical(text)
    except Exception as e:
        raise ImportFormatError(f"Invalid iCalendar content: {e}") from e

    activities: List[Activity] = []
    for index, event in enumerate(calendar.walk("VEVENT"), start=1):
        summary = str(event.get("SUMMARY", ""))
        fields = parse_description(str(event.get("DESCRIPTION", "")))
        type_name = fields.get("Type")
        if not type_name:
            match = SUMMARY_PATTERN.match(summary)
            type_name = match.group(1) if match else None
        if not type_name:
            logger.debug("Ignoring non-SafeHours event %r", summary)
            continue

        try:
            activity_type = ActivityType(type_name)
        except ValueError:
            logger.warning("Ignoring event with unknown activity type %r", type_name)
            continue

        start = _event_datetime(event, "DTSTART")
        end = _event_datetime(event, "DTEND")
        if start is None or end is None:
            logger.warning("Ignoring event %r without start or end time", summary)
            continue

        pre, post = _briefing_from(fields)
        if activity_type.is_briefed:
            start += datetime.timedelta(hours=pre)
            end -= datetime.timedelta(hours=post)

        uid = str(event.get("UID", ""))
        activities.append(Activity(
            id=uid[len(UID_PREFIX):] if uid.startswith(UID_PREFIX) else f"ics-{index}",
            type=activity_type,
            date=start.date().isoformat(),
            start_time=start.strftime("%H:%M"),
            end_time=end.strftime("%H:%M"),
            pre_value=pre,
            post_value=post,
            pre_post_value=pre + post,
            notes=fields.get("Notes", ""),
        ))

    activities.sort(key=lambda a: (a.date, a.start_time))
    logger.info("Parsed %d activities from iCalendar", len(activities))
    return activities
