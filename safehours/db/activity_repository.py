"""Repositories for activity storage."""
import copy
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..models import Activity
from .connection import ensure_db_exists, get_cursor


class ActivityRepository(ABC):
    """
    Storage interface for the activity log.

    The compliance engine never touches storage; services load a snapshot
    from a repository and hand it to the engine.
    """

    @abstractmethod
    def load(self) -> List[Activity]:
        """Return every stored activity."""
        pass

    @abstractmethod
    def save(self, activities: Iterable[Activity]) -> None:
        """Replace the stored log with ``activities``."""
        pass

    @abstractmethod
    def get(self, activity_id: str) -> Optional[Activity]:
        """Find an activity by id."""
        pass

    @abstractmethod
    def upsert(self, activity: Activity) -> None:
        """Insert the activity, or replace the one with the same id."""
        pass

    @abstractmethod
    def delete(self, activity_id: str) -> bool:
        """Remove an activity. Returns False if the id was unknown."""
        pass

    def list(self, date: Optional[str] = None) -> List[Activity]:
        """Activities ordered by date and start time, optionally for one date."""
        activities = self.load()
        if date is not None:
            activities = [a for a in activities if a.date == date]
        return sorted(activities, key=lambda a: (a.date, a.start_time))

    def clear(self) -> None:
        """Remove every activity."""
        self.save([])


class InMemoryActivityRepository(ActivityRepository):
    """List-backed repository. Hands out copies so stored state cannot be mutated."""

    def __init__(self, activities: Optional[Iterable[Activity]] = None) -> None:
        self._activities: List[Activity] = [copy.copy(a) for a in activities or []]

    def load(self) -> List[Activity]:
        return [copy.copy(a) for a in self._activities]

    def save(self, activities: Iterable[Activity]) -> None:
        self._activities = [copy.copy(a) for a in activities]

    def get(self, activity_id: str) -> Optional[Activity]:
        for activity in self._activities:
            if activity.id == activity_id:
                return copy.copy(activity)
        return None

    def upsert(self, activity: Activity) -> None:
        for index, existing in enumerate(self._activities):
            if existing.id == activity.id:
                self._activities[index] = copy.copy(activity)
                return
        self._activities.append(copy.copy(activity))

    def delete(self, activity_id: str) -> bool:
        remaining = [a for a in self._activities if a.id != activity_id]
        removed = len(remaining) != len(self._activities)
        self._activities = remaining
        return removed


class SqliteActivityRepository(ActivityRepository):
    """Repository backed by the ``activities`` table."""

    SELECT_COLUMNS = ("id, type, date, start_time, end_time, "
                      "pre_value, post_value, pre_post_value, notes")

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path
        ensure_db_exists(db_path)

    @staticmethod
    def _row_to_activity(row: Iterable) -> Activity:
        r = tuple(row)
        return Activity(
            id=r[0],
            type=r[1],
            date=r[2],
            start_time=r[3],
            end_time=r[4],
            pre_value=r[5] or 0.0,
            post_value=r[6] or 0.0,
            pre_post_value=r[7],
            notes=r[8] or "",
        )

    @staticmethod
    def _activity_params(activity: Activity) -> tuple:
        return (
            activity.id,
            activity.type.value,
            activity.date,
            activity.start_time,
            activity.end_time,
            activity.pre_value,
            activity.post_value,
            activity.pre_post_value,
            activity.notes,
        )

    def load(self) -> List[Activity]:
        with get_cursor(self.db_path) as cur:
            cur.execute(f"""
                SELECT {self.SELECT_COLUMNS}
                FROM activities
                ORDER BY date ASC, start_time ASC
            """)
            return [self._row_to_activity(r) for r in cur.fetchall()]

    def list(self, date: Optional[str] = None) -> List[Activity]:
        if date is None:
            return self.load()
        with get_cursor(self.db_path) as cur:
            cur.execute(f"""
                SELECT {self.SELECT_COLUMNS}
                FROM activities
                WHERE date = ?
                ORDER BY start_time ASC
            """, (date,))
            return [self._row_to_activity(r) for r in cur.fetchall()]

    def save(self, activities: Iterable[Activity]) -> None:
        with get_cursor(self.db_path) as cur:
            cur.execute("DELETE FROM activities")
            cur.executemany(
                f"INSERT INTO activities ({self.SELECT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [self._activity_params(a) for a in activities]
            )

    def get(self, activity_id: str) -> Optional[Activity]:
        with get_cursor(self.db_path) as cur:
            cur.execute(f"""
                SELECT {self.SELECT_COLUMNS}
                FROM activities
                WHERE id = ?
            """, (activity_id,))
            row = cur.fetchone()
            if row:
                return self._row_to_activity(row)
            return None

    def upsert(self, activity: Activity) -> None:
        with get_cursor(self.db_path) as cur:
            cur.execute(
                f"INSERT OR REPLACE INTO activities ({self.SELECT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._activity_params(activity)
            )

    def delete(self, activity_id: str) -> bool:
        with get_cursor(self.db_path) as cur:
            cur.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
            return cur.rowcount > 0
