"""
Calendar-aligned aggregators: duty day, rest between days, consecutive
working days, Sunday-Saturday weekly hours and trailing seven days.

Activities are keyed by the date they start on. Every aggregator is
fail-soft: malformed dates or times are logged and the affected record is
skipped, or the conservative default is returned for a malformed target
date (0 hours, or 24 for rest).
"""
import datetime
import logging
from typing import Dict, List, Sequence, Tuple

from ..models import Activity, ActivityType
from .errors import DateParseError, ParseError
from .spans import briefing_minutes, day_minutes
from .timeconv import MINUTES_PER_DAY, parse_date, parse_minutes

logger = logging.getLogger(__name__)

FULL_REST_HOURS: float = 24.0
MAX_STREAK_LOOKBACK_DAYS: int = 30


def _working(activities: Sequence[Activity]) -> List[Activity]:
    return [a for a in activities if a.type.counts_toward_limits]


def _on_date(activities: Sequence[Activity], day: datetime.date) -> List[Activity]:
    """Working activities starting on ``day``; malformed dates are skipped."""
    result = []
    for activity in _working(activities):
        try:
            if parse_date(activity.date) == day:
                result.append(activity)
        except DateParseError as e:
            logger.warning("Skipping activity %s: %s", activity.id, e)
    return result


def _spans(activities: Sequence[Activity]) -> List[Tuple[float, float]]:
    spans = []
    for activity in activities:
        try:
            spans.append(day_minutes(activity))
        except ParseError as e:
            logger.warning("Skipping activity %s: %s", activity.id, e)
    return spans


def calculate_duty_day(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """Hours from the earliest briefed start to the latest briefed end on ``day``."""
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return 0.0

    spans = _spans(_on_date(activities, target))
    if not spans:
        return 0.0

    earliest_start = min(start for start, _ in spans)
    latest_end = max(end for _, end in spans)
    return (latest_end - earliest_start) / 60


def calculate_rest_between(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """
    Hours between the previous day's last briefed end and this day's first
    briefed start.

    Returns 24 (full rest) when either day has no working activity; callers
    treat a missing previous day as compliant rather than as a rest value.
    """
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return FULL_REST_HOURS

    previous_spans = _spans(_on_date(activities, target - datetime.timedelta(days=1)))
    current_spans = _spans(_on_date(activities, target))
    if not previous_spans or not current_spans:
        return FULL_REST_HOURS

    latest_previous_end = max(end for _, end in previous_spans)
    earliest_current_start = min(start for start, _ in current_spans)

    rest_minutes = (MINUTES_PER_DAY - latest_previous_end) + earliest_current_start
    return max(rest_minutes, 0.0) / 60


def has_activity_on(activities: Sequence[Activity], day: datetime.date | str) -> bool:
    """True if at least one working activity starts on ``day``."""
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return False
    return bool(_on_date(activities, target))


def calculate_consecutive_days(activities: Sequence[Activity], day: datetime.date | str) -> int:
    """Length of the streak of working days ending on ``day`` (looks back 30 days at most)."""
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return 0

    worked_days = set()
    for activity in _working(activities):
        try:
            worked_days.add(parse_date(activity.date))
        except DateParseError as e:
            logger.warning("Skipping activity %s: %s", activity.id, e)

    streak = 0
    for offset in range(MAX_STREAK_LOOKBACK_DAYS):
        if target - datetime.timedelta(days=offset) not in worked_days:
            break
        streak += 1
    return streak


def _period_hours(activities: Sequence[Activity], first_day: datetime.date,
                  last_day: datetime.date) -> float:
    """
    Hours of working activities starting within ``[first_day, last_day]``,
    briefing included.

    Overnight activities are counted in full and then have their next-day
    part removed again when that next day falls after ``last_day``.
    """
    total = 0.0
    for activity in _working(activities):
        try:
            activity_day = parse_date(activity.date)
            if activity_day < first_day or activity_day > last_day:
                continue
            start = parse_minutes(activity.start_time)
            end = parse_minutes(activity.end_time)
        except ParseError as e:
            logger.warning("Skipping activity %s: %s", activity.id, e)
            continue

        if end < start:
            total += MINUTES_PER_DAY - start
            total += end
            if activity_day + datetime.timedelta(days=1) > last_day:
                total -= end
        else:
            total += end - start

        pre, post = briefing_minutes(activity)
        total += pre + post
    return total / 60


def week_bounds(day: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """(Sunday, Saturday) of the week containing ``day``."""
    sunday = day - datetime.timedelta(days=(day.weekday() + 1) % 7)
    return (sunday, sunday + datetime.timedelta(days=6))


def calculate_weekly_hours(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """Working hours in the Sunday-Saturday week containing ``day``."""
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return 0.0

    sunday, saturday = week_bounds(target)
    return _period_hours(activities, sunday, saturday)


def calculate_past_seven_days_hours(activities: Sequence[Activity], day: datetime.date | str) -> float:
    """Working hours in the seven calendar days ending on ``day`` inclusive."""
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        return 0.0

    return _period_hours(activities, target - datetime.timedelta(days=6), target)


def daily_breakdown(activities: Sequence[Activity], day: datetime.date | str) -> Dict[str, float]:
    """
    Hours attributed to one calendar day, per activity type plus briefing.

    Overnight activities give their pre-midnight part to the start day and
    the remainder to the next day. For overnight briefed activities the
    pre-time lands on the start day, the post-time on the end day, and the
    opposite briefing is shared in proportion to the minutes on each side.
    """
    breakdown: Dict[str, float] = {
        ActivityType.FLIGHT.value: 0.0,
        ActivityType.GROUND.value: 0.0,
        ActivityType.SIM.value: 0.0,
        "pre_post": 0.0,
    }
    try:
        target = parse_date(day)
    except DateParseError as e:
        logger.error("%s", e)
        breakdown["total"] = 0.0
        return breakdown

    for activity in _working(activities):
        try:
            activity_day = parse_date(activity.date)
            start = parse_minutes(activity.start_time)
            end = parse_minutes(activity.end_time)
        except ParseError as e:
            logger.warning("Skipping activity %s: %s", activity.id, e)
            continue

        overnight = end < start
        pre, post = briefing_minutes(activity)
        key = activity.type.value

        if activity_day == target:
            if overnight:
                before_midnight = MINUTES_PER_DAY - start
                breakdown[key] += before_midnight
                breakdown["pre_post"] += pre + post * before_midnight / (before_midnight + end)
            else:
                breakdown[key] += end - start
                breakdown["pre_post"] += pre + post
        elif overnight and activity_day + datetime.timedelta(days=1) == target:
            before_midnight = MINUTES_PER_DAY - start
            breakdown[key] += end
            breakdown["pre_post"] += pre * end / (before_midnight + end) + post

    hours = {name: minutes / 60 for name, minutes in breakdown.items()}
    hours["total"] = sum(hours.values())
    return hours
