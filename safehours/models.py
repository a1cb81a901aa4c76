"""
Data models for the application.
"""
import datetime
import math
import uuid
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ActivityType(str, Enum):
    """Closed set of loggable activity types."""
    FLIGHT = "Flight"
    GROUND = "Ground"
    SIM = "SIM"
    OTHER = "Other"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ActivityType"]:
        # Older exports split "Other" into internal/external variants
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized.startswith("other"):
                return cls.OTHER
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None

    @property
    def is_briefed(self) -> bool:
        """Pre/post briefing time only applies to flight and simulator sessions."""
        return self in (ActivityType.FLIGHT, ActivityType.SIM)

    @property
    def counts_toward_limits(self) -> bool:
        return self is not ActivityType.OTHER


# camelCase keys used by exported files and older stores
_CAMEL_KEYS = {
    "start_time": "startTime",
    "end_time": "endTime",
    "pre_value": "preValue",
    "post_value": "postValue",
    "pre_post_value": "prePostValue",
}


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class Activity:
    """A single logged activity. ``date`` is the local day the activity starts."""
    id: str
    type: ActivityType
    date: str
    start_time: str
    end_time: str
    pre_value: float = 0.0
    post_value: float = 0.0
    pre_post_value: Optional[float] = None
    notes: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.type, ActivityType):
            self.type = ActivityType(self.type)

    @classmethod
    def new(cls, type_: ActivityType | str, date: str, start_time: str, end_time: str,
            pre_value: float = 0.0, post_value: float = 0.0, notes: str = "") -> "Activity":
        """Create an activity with a freshly assigned id."""
        return cls(
            id=uuid.uuid4().hex,
            type=ActivityType(type_),
            date=date,
            start_time=start_time,
            end_time=end_time,
            pre_value=pre_value,
            post_value=post_value,
            notes=notes,
        )

    def briefing_hours(self) -> Tuple[float, float]:
        """
        Resolve (pre, post) briefing hours.

        Records that only carry the legacy combined value get it split
        evenly between pre and post.
        """
        pre = self.pre_value or 0.0
        post = self.post_value or 0.0
        if pre == 0 and post == 0 and self.pre_post_value:
            half = self.pre_post_value / 2
            return (half, half)
        return (pre, post)

    def total_briefing_hours(self) -> float:
        pre, post = self.briefing_hours()
        return pre + post

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        """Build an activity from camelCase or snake_case keys."""
        def pick(name: str, default: Any = None) -> Any:
            if name in data:
                return data[name]
            return data.get(_CAMEL_KEYS.get(name, name), default)

        activity_id = pick("id")
        if not activity_id:
            activity_id = uuid.uuid4().hex

        return cls(
            id=str(activity_id),
            type=ActivityType(pick("type")),
            date=str(pick("date", "")),
            start_time=str(pick("start_time", "")),
            end_time=str(pick("end_time", "")),
            pre_value=_to_float(pick("pre_value")) or 0.0,
            post_value=_to_float(pick("post_value")) or 0.0,
            pre_post_value=_to_float(pick("pre_post_value")),
            notes=pick("notes") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, always writing the legacy combined value."""
        pre, post = self.briefing_hours()
        return {
            "id": self.id,
            "type": self.type.value,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "preValue": pre,
            "postValue": post,
            "prePostValue": pre + post,
            "notes": self.notes,
        }


# Flight instruction limit set by regulation; users cannot raise it
FIXED_MAX_FLIGHT_HOURS: float = 8


@dataclass
class WarningThresholds:
    """Limits the compliance metrics are compared against."""
    max_flight_hours: float = FIXED_MAX_FLIGHT_HOURS
    min_rest_between_days: float = 10
    max_contact_time: float = 10
    max_duty_day: float = 16
    max_consecutive_days: int = 15
    max_weekly_hours: float = 40
    max_past_seven_days_hours: float = 50

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WarningThresholds":
        """
        Build thresholds from a mapping, ignoring unknown keys.

        Raises ValueError for values that are not non-negative numbers.
        """
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for name, value in data.items():
            if name not in known:
                continue
            if (isinstance(value, bool) or not isinstance(value, (int, float))
                    or not math.isfinite(value) or value < 0):
                raise ValueError(f"Invalid value for {name}: {value!r}")
            values[name] = int(value) if known[name].type is int else float(value)
        values["max_flight_hours"] = FIXED_MAX_FLIGHT_HOURS
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ComplianceReport:
    """The seven compliance metrics for one calendar day."""
    date: datetime.date
    flight_hours: float
    contact_time: float
    duty_day: float
    rest_between_days: float
    consecutive_days: int
    weekly_hours: float
    past_seven_days_hours: float
    thresholds: WarningThresholds = field(default_factory=WarningThresholds)
    has_previous_day: bool = False

    def status(self) -> Dict[str, bool]:
        """Map each metric to whether it is within its threshold."""
        t = self.thresholds
        return {
            "max_flight_hours": self.flight_hours <= t.max_flight_hours,
            # Without a previous working day there is nothing to rest from
            "min_rest_between_days": (
                self.rest_between_days >= t.min_rest_between_days
                if self.has_previous_day else True
            ),
            "max_contact_time": self.contact_time <= t.max_contact_time,
            "max_duty_day": self.duty_day <= t.max_duty_day,
            "max_consecutive_days": self.consecutive_days <= t.max_consecutive_days,
            "max_weekly_hours": self.weekly_hours <= t.max_weekly_hours,
            "max_past_seven_days_hours": self.past_seven_days_hours <= t.max_past_seven_days_hours,
        }

    @property
    def is_compliant(self) -> bool:
        return all(self.status().values())

    def violations(self) -> List[str]:
        return [name for name, ok in self.status().items() if not ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "metrics": {
                "flight_hours": self.flight_hours,
                "contact_time": self.contact_time,
                "duty_day": self.duty_day,
                "rest_between_days": self.rest_between_days,
                "consecutive_days": self.consecutive_days,
                "weekly_hours": self.weekly_hours,
                "past_seven_days_hours": self.past_seven_days_hours,
            },
            "thresholds": self.thresholds.to_dict(),
            "status": self.status(),
            "has_previous_day": self.has_previous_day,
            "compliant": self.is_compliant,
        }
