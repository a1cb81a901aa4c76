"""Service for adding, editing and removing logged activities."""
import dataclasses
import logging
from typing import Iterable, List, Optional

from ..db.activity_repository import ActivityRepository, SqliteActivityRepository
from ..engine.errors import ParseError
from ..engine.spans import find_overlap
from ..engine.timeconv import parse_date, parse_minutes
from ..models import Activity

logger = logging.getLogger(__name__)

MAX_BRIEFING_HOURS: float = 3.0


class ActivityError(Exception):
    """A write was rejected. ``message`` is meant for the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ActivityValidationError(ActivityError):
    pass


class ActivityNotFoundError(ActivityValidationError):
    pass


class ActivityOverlapError(ActivityError):
    """The activity's briefed span overlaps another activity on the same date."""

    def __init__(self, activity: Activity, conflict: Activity) -> None:
        super().__init__(
            "Time Overlap Detected: This activity overlaps with an existing "
            "activity (including pre/post time)."
        )
        self.activity = activity
        self.conflict = conflict


class ActivityService:
    """Validates writes and guards the log against double-booking."""

    def __init__(self, repository: Optional[ActivityRepository] = None) -> None:
        self.repo = repository if repository is not None else SqliteActivityRepository()

    @staticmethod
    def validate(activity: Activity) -> None:
        """Raise ActivityValidationError for malformed times, dates or briefing values."""
        try:
            parse_minutes(activity.start_time)
            parse_minutes(activity.end_time)
        except ParseError:
            raise ActivityValidationError(
                "Invalid Time Format: Please enter times in HH:MM format."
            )
        try:
            parse_date(activity.date)
        except ParseError:
            raise ActivityValidationError(
                "Invalid Date Format: Please enter dates in YYYY-MM-DD format."
            )

        for label, value in (("Pre", activity.pre_value), ("Post", activity.post_value)):
            if value is not None and not 0 <= value <= MAX_BRIEFING_HOURS:
                raise ActivityValidationError(
                    f"Invalid {label} Value: must be between 0 and {MAX_BRIEFING_HOURS:g} hours."
                )
        if activity.pre_post_value is not None and not 0 <= activity.pre_post_value <= 2 * MAX_BRIEFING_HOURS:
            raise ActivityValidationError(
                f"Invalid Pre/Post Value: must be between 0 and {2 * MAX_BRIEFING_HOURS:g} hours."
            )

    @staticmethod
    def _normalized(activity: Activity) -> Activity:
        """Store both the separate and the legacy combined briefing values."""
        pre, post = activity.briefing_hours()
        return dataclasses.replace(activity, pre_value=pre, post_value=post,
                                   pre_post_value=pre + post)

    def list_activities(self, date: Optional[str] = None) -> List[Activity]:
        return self.repo.list(date)

    def get_activity(self, activity_id: str) -> Activity:
        activity = self.repo.get(activity_id)
        if activity is None:
            raise ActivityNotFoundError(f"Activity {activity_id} not found.")
        return activity

    def add_activity(self, activity: Activity) -> Activity:
        """Validate and store a new activity. Raises ActivityError on rejection."""
        self.validate(activity)
        if self.repo.get(activity.id) is not None:
            raise ActivityValidationError(f"Activity {activity.id} already exists.")

        conflict = find_overlap(self.repo.load(), activity)
        if conflict is not None:
            raise ActivityOverlapError(activity, conflict)

        stored = self._normalized(activity)
        self.repo.upsert(stored)
        logger.info("Added %s activity %s on %s", stored.type.value, stored.id, stored.date)
        return stored

    def update_activity(self, activity: Activity) -> Activity:
        """Replace an existing activity (same id). Raises ActivityError on rejection."""
        self.get_activity(activity.id)
        self.validate(activity)

        conflict = find_overlap(self.repo.load(), activity, exclude_id=activity.id)
        if conflict is not None:
            raise ActivityOverlapError(activity, conflict)

        stored = self._normalized(activity)
        self.repo.upsert(stored)
        logger.info("Updated activity %s", stored.id)
        return stored

    def delete_activity(self, activity_id: str) -> None:
        if not self.repo.delete(activity_id):
            raise ActivityNotFoundError(f"Activity {activity_id} not found.")
        logger.info("Deleted activity %s", activity_id)

    def import_activities(self, activities: Iterable[Activity], replace: bool = True) -> List[Activity]:
        """
        Store a batch of imported activities.

        With ``replace`` the whole log is swapped for the batch; otherwise the
        batch is merged by id. The batch is rejected as a whole if any record
        is malformed or would overlap another.
        """
        batch = [self._normalized(a) for a in activities]
        for activity in batch:
            self.validate(activity)

        incoming_ids = {a.id for a in batch}
        accepted: List[Activity] = [] if replace else [
            a for a in self.repo.load() if a.id not in incoming_ids
        ]
        for activity in batch:
            conflict = find_overlap(accepted, activity)
            if conflict is not None:
                raise ActivityOverlapError(activity, conflict)
            accepted.append(activity)

        self.repo.save(accepted)
        logger.info("Imported %d activities (replace=%s)", len(batch), replace)
        return batch

    def clear_all(self) -> None:
        self.repo.clear()
        logger.info("Cleared all activities")
