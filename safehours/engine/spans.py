"""
Per-activity effective spans and overlap detection.

The effective span of an activity is its clock span widened backward by
pre-briefing and forward by post-briefing minutes. Briefing only applies
to flight and simulator activities.
"""
import datetime
import logging
from typing import Iterable, Optional, Tuple

from ..models import Activity
from .timeconv import MINUTES_PER_DAY, parse_date, parse_minutes, time_to_minutes

logger = logging.getLogger(__name__)


def briefing_minutes(activity: Activity) -> Tuple[float, float]:
    """(pre, post) briefing minutes that apply to this activity."""
    if not activity.type.is_briefed:
        return (0.0, 0.0)
    pre, post = activity.briefing_hours()
    return (pre * 60, post * 60)


def effective_minutes(activity: Activity) -> Tuple[float, float]:
    """
    Effective (start, end) in minutes relative to the activity's own date.

    No day-wrap handling: the end is the clock end plus post-briefing even
    for overnight activities. Used for same-date comparisons only.
    """
    pre, post = briefing_minutes(activity)
    return (time_to_minutes(activity.start_time) - pre,
            time_to_minutes(activity.end_time) + post)


def day_minutes(activity: Activity) -> Tuple[float, float]:
    """
    Effective (start, end) minutes relative to the activity's date with
    overnight activities ending on the following day (end + 24h).

    Raises ParseError for malformed times.
    """
    start = parse_minutes(activity.start_time)
    end = parse_minutes(activity.end_time)
    if end < start:
        end += MINUTES_PER_DAY
    pre, post = briefing_minutes(activity)
    return (start - pre, end + post)


def activity_interval(activity: Activity, adjusted: bool = True
                      ) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Absolute (start, end) datetimes of an activity.

    Overnight activities end on ``date + 1``. With ``adjusted`` the span is
    widened by briefing time. Raises ParseError for malformed dates or times.
    """
    day = parse_date(activity.date)
    midnight = datetime.datetime.combine(day, datetime.time.min)
    start_minutes = parse_minutes(activity.start_time)
    end_minutes = parse_minutes(activity.end_time)

    start = midnight + datetime.timedelta(minutes=start_minutes)
    end = midnight + datetime.timedelta(minutes=end_minutes)
    if end < start:
        end += datetime.timedelta(days=1)

    if adjusted:
        pre, post = briefing_minutes(activity)
        start -= datetime.timedelta(minutes=pre)
        end += datetime.timedelta(minutes=post)
    return (start, end)


def spans_overlap(new_span: Tuple[float, float], existing_span: Tuple[float, float]) -> bool:
    """
    Interval test used for double-booking.

    A new span starting exactly where an existing one ends does not
    overlap; starting exactly where an existing one starts does.
    """
    new_start, new_end = new_span
    existing_start, existing_end = existing_span
    return (
        (existing_start <= new_start < existing_end)
        or (existing_start < new_end <= existing_end)
        or (new_start <= existing_start and new_end >= existing_end)
    )


def find_overlap(activities: Iterable[Activity], candidate: Activity,
                 exclude_id: Optional[str] = None) -> Optional[Activity]:
    """Return the first same-date activity whose effective span overlaps the candidate."""
    candidate_span = effective_minutes(candidate)

    for activity in activities:
        if activity.date != candidate.date:
            continue
        if exclude_id is not None and activity.id == exclude_id:
            continue
        if spans_overlap(candidate_span, effective_minutes(activity)):
            return activity
    return None


def check_time_overlap(activities: Iterable[Activity], candidate: Activity,
                       exclude_id: Optional[str] = None) -> bool:
    """
    True if the candidate's effective span overlaps any other activity on
    the same date. ``exclude_id`` skips the activity being edited.
    """
    conflict = find_overlap(activities, candidate, exclude_id)
    if conflict is not None:
        logger.info("Activity on %s %s-%s overlaps %s", candidate.date,
                    candidate.start_time, candidate.end_time, conflict.id)
        return True
    return False
