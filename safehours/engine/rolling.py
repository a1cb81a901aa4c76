"""
Rolling 24-hour window calculators.

The window ending at ``instant`` is ``[instant - 24h, instant]``. Each
qualifying activity contributes the minutes its span shares with the
window; there is no pre-indexing, activity logs are small.
"""
import datetime
import logging
from typing import Callable, List, Sequence, Set, Tuple

from ..models import Activity, ActivityType
from .errors import DateParseError, ParseError
from .spans import activity_interval
from .timeconv import parse_date

logger = logging.getLogger(__name__)

WINDOW = datetime.timedelta(hours=24)

# Upper bound on the number of samples one rolling_series call may produce
MAX_SERIES_SAMPLES: int = 10000

RollingCalculator = Callable[[Sequence[Activity], datetime.datetime], float]


def local_instant(instant: datetime.datetime) -> datetime.datetime:
    """Aware instants become local wall-clock time, matching activity times."""
    if instant.tzinfo is not None:
        return instant.astimezone().replace(tzinfo=None)
    return instant


def _is_flight(activity: Activity) -> bool:
    return activity.type is ActivityType.FLIGHT


def _is_contact(activity: Activity) -> bool:
    return activity.type.counts_toward_limits


def _qualifying_intervals(activities: Sequence[Activity],
                          include: Callable[[Activity], bool],
                          adjusted: bool) -> List[Tuple[datetime.datetime, datetime.datetime]]:
    intervals = []
    for activity in activities:
        if not include(activity):
            continue
        try:
            intervals.append(activity_interval(activity, adjusted=adjusted))
        except ParseError as e:
            logger.warning("Skipping activity %s in rolling window: %s", activity.id, e)
    return intervals


def _window_minutes(intervals: List[Tuple[datetime.datetime, datetime.datetime]],
                    instant: datetime.datetime) -> float:
    window_start = instant - WINDOW
    total = 0.0
    for start, end in intervals:
        overlap_start = max(start, window_start)
        overlap_end = min(end, instant)
        if overlap_end > overlap_start:
            total += (overlap_end - overlap_start).total_seconds() / 60
    return total


def _rolling_hours(activities: Sequence[Activity], instant: datetime.datetime,
                   include: Callable[[Activity], bool], adjusted: bool) -> float:
    if not isinstance(instant, datetime.datetime):
        logger.error("Invalid instant for rolling window: %r", instant)
        return 0.0
    instant = local_instant(instant)
    intervals = _qualifying_intervals(activities, include, adjusted)
    return _window_minutes(intervals, instant) / 60


def calculate_rolling_24h_flight_time(activities: Sequence[Activity],
                                      instant: datetime.datetime) -> float:
    """Hours of raw flight time (briefing excluded) in the 24h ending at ``instant``."""
    return _rolling_hours(activities, instant, _is_flight, adjusted=False)


def calculate_rolling_contact_time(activities: Sequence[Activity],
                                   instant: datetime.datetime) -> float:
    """Hours of contact time (all non-Other types, briefing included) in the 24h ending at ``instant``."""
    return _rolling_hours(activities, instant, _is_contact, adjusted=True)


def _peak_for_day(activities: Sequence[Activity], day: datetime.date | str,
                  include: Callable[[Activity], bool], adjusted: bool) -> float:
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return 0.0

    day_start = datetime.datetime.combine(target, datetime.time.min)
    day_end = datetime.datetime.combine(target, datetime.time.max)
    intervals = _qualifying_intervals(activities, include, adjusted)

    # The window sum is piecewise linear in the instant; its slope only
    # changes when a boundary enters (b) or leaves (b + 24h) the window.
    candidates: Set[datetime.datetime] = {day_start, day_end}
    for start, end in intervals:
        for boundary in (start, end, start + WINDOW, end + WINDOW):
            if day_start <= boundary <= day_end:
                candidates.add(boundary)

    return max(_window_minutes(intervals, instant) for instant in candidates) / 60


def peak_rolling_flight_time(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """Maximum rolling 24h flight time reached at any instant of ``day``."""
    return _peak_for_day(activities, day, _is_flight, adjusted=False)


def peak_rolling_contact_time(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """Maximum rolling 24h contact time reached at any instant of ``day``."""
    return _peak_for_day(activities, day, _is_contact, adjusted=True)


def rolling_series(activities: Sequence[Activity], start: datetime.datetime,
                   end: datetime.datetime,
                   step: datetime.timedelta = datetime.timedelta(minutes=15),
                   calculator: RollingCalculator = calculate_rolling_24h_flight_time
                   ) -> List[Tuple[datetime.datetime, float]]:
    """Sample a rolling calculator from ``start`` to ``end`` inclusive."""
    if step <= datetime.timedelta(0):
        raise ValueError("step must be positive")
    start, end = local_instant(start), local_instant(end)
    if (end - start) / step > MAX_SERIES_SAMPLES:
        raise ValueError(f"too many samples requested (at most {MAX_SERIES_SAMPLES})")

    points: List[Tuple[datetime.datetime, float]] = []
    current = start
    while current <= end:
        points.append((current, calculator(activities, current)))
        current += step
    return points
