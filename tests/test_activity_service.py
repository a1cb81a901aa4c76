"""Unit tests for ActivityService."""
import unittest
from safehours.db.activity_repository import InMemoryActivityRepository
from safehours.formats.csv_format import parse_csv
from safehours.models import Activity, ActivityType
from safehours.services.activity_service import (
    ActivityError,
    ActivityNotFoundError,
    ActivityOverlapError,
    ActivityService,
    ActivityValidationError,
)


class TestActivityService(unittest.TestCase):
    """Test validated writes and overlap rejection."""

    def setUp(self) -> None:
        self.repo = InMemoryActivityRepository()
        self.service = ActivityService(self.repo)
        self.flight = self._create_activity("flight", ActivityType.FLIGHT, "10:00", "12:00",
                                            pre=0.5, post=0.5)

    def _create_activity(self, activity_id: str, type_: ActivityType, start: str, end: str,
                         date: str = "2024-03-04", pre: float = 0.0,
                         post: float = 0.0, legacy: float | None = None) -> Activity:
        return Activity(id=activity_id, type=type_, date=date, start_time=start,
                        end_time=end, pre_value=pre, post_value=post,
                        pre_post_value=legacy)

    def test_add_stores_activity(self) -> None:
        stored = self.service.add_activity(self.flight)
        self.assertEqual(stored.pre_post_value, 1.0)
        self.assertEqual(self.service.get_activity("flight").start_time, "10:00")

    def test_add_normalizes_legacy_briefing(self) -> None:
        """A lone combined value is stored as separate pre and post values."""
        legacy = self._create_activity("legacy", ActivityType.SIM, "14:00", "15:00", legacy=2.0)
        stored = self.service.add_activity(legacy)
        self.assertEqual((stored.pre_value, stored.post_value), (1.0, 1.0))
        self.assertEqual(self.repo.get("legacy").pre_value, 1.0)

    def test_add_rejects_overlap(self) -> None:
        """The flight's post-briefing runs until 12:30."""
        self.service.add_activity(self.flight)
        ground = self._create_activity("ground", ActivityType.GROUND, "12:15", "13:00")

        with self.assertRaises(ActivityOverlapError) as ctx:
            self.service.add_activity(ground)

        self.assertEqual(ctx.exception.conflict.id, "flight")
        self.assertIn("Time Overlap Detected", ctx.exception.message)
        self.assertIsNone(self.repo.get("ground"))

    def test_add_allows_back_to_back(self) -> None:
        self.service.add_activity(self.flight)
        self.service.add_activity(
            self._create_activity("ground", ActivityType.GROUND, "12:30", "13:00"))
        self.assertEqual(len(self.service.list_activities()), 2)

    def test_add_rejects_duplicate_id(self) -> None:
        self.service.add_activity(self.flight)
        duplicate = self._create_activity("flight", ActivityType.GROUND, "18:00", "19:00")
        with self.assertRaises(ActivityValidationError):
            self.service.add_activity(duplicate)

    def test_add_rejects_bad_time(self) -> None:
        bad = self._create_activity("bad", ActivityType.GROUND, "9.30", "10:00")
        with self.assertRaises(ActivityValidationError) as ctx:
            self.service.add_activity(bad)
        self.assertEqual(ctx.exception.message,
                         "Invalid Time Format: Please enter times in HH:MM format.")

    def test_add_rejects_bad_date(self) -> None:
        bad = self._create_activity("bad", ActivityType.GROUND, "09:00", "10:00", date="04/03/2024")
        with self.assertRaises(ActivityValidationError):
            self.service.add_activity(bad)

    def test_add_rejects_out_of_range_briefing(self) -> None:
        for pre, post, legacy in ((4.0, 0.0, None), (0.0, -1.0, None), (0.0, 0.0, 7.0)):
            bad = self._create_activity("bad", ActivityType.FLIGHT, "09:00", "10:00",
                                        pre=pre, post=post, legacy=legacy)
            with self.assertRaises(ActivityValidationError):
                self.service.add_activity(bad)

    def test_errors_share_base_class(self) -> None:
        self.assertTrue(issubclass(ActivityOverlapError, ActivityError))
        self.assertTrue(issubclass(ActivityNotFoundError, ActivityValidationError))

    def test_update_excludes_itself(self) -> None:
        """Moving an activity by 30 minutes does not conflict with its old slot."""
        self.service.add_activity(self.flight)
        moved = self._create_activity("flight", ActivityType.FLIGHT, "10:30", "12:30",
                                      pre=0.5, post=0.5)
        self.service.update_activity(moved)
        self.assertEqual(self.service.get_activity("flight").end_time, "12:30")

    def test_update_rejects_overlap_with_other(self) -> None:
        self.service.add_activity(self.flight)
        self.service.add_activity(
            self._create_activity("ground", ActivityType.GROUND, "14:00", "15:00"))
        moved = self._create_activity("ground", ActivityType.GROUND, "12:00", "13:00")

        with self.assertRaises(ActivityOverlapError):
            self.service.update_activity(moved)
        self.assertEqual(self.service.get_activity("ground").start_time, "14:00")

    def test_update_unknown(self) -> None:
        with self.assertRaises(ActivityNotFoundError):
            self.service.update_activity(self.flight)

    def test_delete(self) -> None:
        self.service.add_activity(self.flight)
        self.service.delete_activity("flight")
        self.assertEqual(self.service.list_activities(), [])
        with self.assertRaises(ActivityNotFoundError):
            self.service.delete_activity("flight")

    def test_list_by_date(self) -> None:
        self.service.add_activity(self.flight)
        self.service.add_activity(self._create_activity(
            "next", ActivityType.GROUND, "10:00", "11:00", date="2024-03-05"))
        self.assertEqual([a.id for a in self.service.list_activities("2024-03-05")], ["next"])

    def test_import_replaces_log(self) -> None:
        self.service.add_activity(self.flight)
        batch = [
            self._create_activity("i1", ActivityType.GROUND, "08:00", "09:00", date="2024-04-01"),
            self._create_activity("i2", ActivityType.SIM, "10:00", "11:00", date="2024-04-01",
                                  legacy=1.0),
        ]
        imported = self.service.import_activities(batch)

        self.assertEqual(len(imported), 2)
        self.assertEqual([a.id for a in self.service.list_activities()], ["i1", "i2"])
        self.assertEqual(self.repo.get("i2").pre_value, 0.5)

    def test_import_merges_by_id(self) -> None:
        self.service.add_activity(self.flight)
        batch = [self._create_activity("i1", ActivityType.GROUND, "14:00", "15:00")]
        self.service.import_activities(batch, replace=False)
        self.assertEqual({a.id for a in self.service.list_activities()}, {"flight", "i1"})

    def test_import_rejects_overlapping_batch(self) -> None:
        """A rejected batch leaves the stored log untouched."""
        self.service.add_activity(self.flight)
        batch = [
            self._create_activity("i1", ActivityType.GROUND, "08:00", "10:00", date="2024-04-01"),
            self._create_activity("i2", ActivityType.GROUND, "09:00", "11:00", date="2024-04-01"),
        ]
        with self.assertRaises(ActivityOverlapError):
            self.service.import_activities(batch)
        self.assertEqual([a.id for a in self.service.list_activities()], ["flight"])

    def test_import_merge_rejects_overlap_with_existing(self) -> None:
        self.service.add_activity(self.flight)
        batch = [self._create_activity("i1", ActivityType.GROUND, "11:00", "13:00")]
        with self.assertRaises(ActivityOverlapError):
            self.service.import_activities(batch, replace=False)

    def test_import_rejects_malformed_record(self) -> None:
        batch = [self._create_activity("i1", ActivityType.GROUND, "8am", "10:00")]
        with self.assertRaises(ActivityValidationError):
            self.service.import_activities(batch)

    def test_import_merge_accepts_overnight_and_late_same_date(self) -> None:
        batch = [
            self._create_activity("night", ActivityType.GROUND, "23:00", "01:00", date="2024-04-01"),
            self._create_activity("late", ActivityType.GROUND, "23:15", "23:45", date="2024-04-01"),
        ]
        self.service.import_activities(batch, replace=False)
        self.assertEqual({a.id for a in self.service.list_activities("2024-04-01")}, {"night", "late"})

    def test_repeated_merge_imports_without_ids_keep_all_rows(self) -> None:
        first = parse_csv("type,date,startTime,endTime,prePostValue\n"
                          "Flight,2024-03-05,10:00,11:00,0\n")
        second = parse_csv("type,date,startTime,endTime,prePostValue\n"
                           "Ground,2024-03-06,08:00,09:00,0\n")
        self.service.import_activities(first, replace=False)
        self.service.import_activities(second, replace=False)

        stored = self.service.list_activities()
        self.assertEqual(sorted(a.date for a in stored), ["2024-03-05", "2024-03-06"])
        self.assertEqual({a.type for a in stored}, {ActivityType.FLIGHT, ActivityType.GROUND})

    def test_clear_all(self) -> None:
        self.service.add_activity(self.flight)
        self.service.clear_all()
        self.assertEqual(self.service.list_activities(), [])


if __name__ == '__main__':
    unittest.main()
