"""Time-window compliance engine."""
from .errors import ParseError, TimeParseError, DateParseError
from .timeconv import (
    calculate_duration,
    format_duration,
    is_overnight,
    minutes_to_time,
    parse_date,
    parse_minutes,
    parse_time_input,
    time_to_minutes,
)
from .spans import activity_interval, briefing_minutes, check_time_overlap, find_overlap
from .rolling import (
    MAX_SERIES_SAMPLES,
    local_instant,
    calculate_rolling_24h_flight_time,
    calculate_rolling_contact_time,
    peak_rolling_contact_time,
    peak_rolling_flight_time,
    rolling_series,
)
from .aggregates import (
    calculate_consecutive_days,
    calculate_duty_day,
    calculate_past_seven_days_hours,
    calculate_rest_between,
    calculate_weekly_hours,
    daily_breakdown,
    has_activity_on,
    week_bounds,
)

__all__ = [
    'ParseError', 'TimeParseError', 'DateParseError',
    'calculate_duration', 'format_duration', 'is_overnight', 'minutes_to_time',
    'parse_date', 'parse_minutes', 'parse_time_input', 'time_to_minutes',
    'activity_interval', 'briefing_minutes', 'check_time_overlap', 'find_overlap',
    'calculate_rolling_24h_flight_time', 'calculate_rolling_contact_time',
    'peak_rolling_contact_time', 'peak_rolling_flight_time', 'rolling_series',
    'MAX_SERIES_SAMPLES', 'local_instant',
    'calculate_consecutive_days', 'calculate_duty_day', 'calculate_past_seven_days_hours',
    'calculate_rest_between', 'calculate_weekly_hours', 'daily_breakdown',
    'has_activity_on', 'week_bounds',
]
