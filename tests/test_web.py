"""Unit tests for the dashboard API routes."""
import os
import tempfile
import unittest
from typing import Any
from unittest.mock import MagicMock, patch
from safehours.config import Config
from safehours.db.activity_repository import InMemoryActivityRepository
from safehours.services import ActivityService
from safehours.web import server
from safehours.web.server import create_app, find_free_port


class TestApiRoutes(unittest.TestCase):
    """Exercise the JSON API against an in-memory log."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = Config(os.path.join(self.tmpdir.name, "settings.json"))
        self.repo = InMemoryActivityRepository()
        app = create_app(ActivityService(self.repo), config=self.config)
        app.testing = True
        self.client = app.test_client()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _post_activity(self, **overrides: Any) -> Any:
        payload = {
            "id": "f1",
            "type": "Flight",
            "date": "2024-03-04",
            "startTime": "10:00",
            "endTime": "12:00",
            "preValue": 0.5,
            "postValue": 0.5,
        }
        payload.update(overrides)
        return self.client.post("/api/activities", json=payload)

    def test_create_and_list(self) -> None:
        response = self._post_activity()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["prePostValue"], 1.0)

        listed = self.client.get("/api/activities").get_json()
        self.assertEqual([a["id"] for a in listed], ["f1"])
        self.assertEqual(self.client.get("/api/activities?date=2024-03-05").get_json(), [])

    def test_create_overlap_conflict(self) -> None:
        self._post_activity()
        response = self._post_activity(id="g1", type="Ground", startTime="12:15",
                                       endTime="13:00", preValue=0, postValue=0)
        self.assertEqual(response.status_code, 409)
        body = response.get_json()
        self.assertIn("Time Overlap Detected", body["error"])
        self.assertEqual(body["conflict"]["id"], "f1")

    def test_create_validation_errors(self) -> None:
        self.assertEqual(self._post_activity(startTime="25:00").status_code, 400)
        self.assertEqual(self._post_activity(type="Glider").status_code, 400)
        self.assertEqual(self._post_activity(preValue=5).status_code, 400)
        response = self.client.post("/api/activities", data="nope", content_type="text/plain")
        self.assertEqual(response.status_code, 400)

    def test_update(self) -> None:
        self._post_activity()
        response = self.client.put("/api/activities/f1", json={
            "type": "Flight", "date": "2024-03-04",
            "startTime": "10:30", "endTime": "12:30",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.repo.get("f1").start_time, "10:30")

    def test_update_unknown(self) -> None:
        response = self.client.put("/api/activities/missing", json={
            "type": "Ground", "date": "2024-03-04",
            "startTime": "10:00", "endTime": "11:00",
        })
        self.assertEqual(response.status_code, 404)

    def test_delete(self) -> None:
        self._post_activity()
        self.assertEqual(self.client.delete("/api/activities/f1").status_code, 204)
        self.assertEqual(self.client.delete("/api/activities/f1").status_code, 404)

    def test_compliance(self) -> None:
        self._post_activity(startTime="08:00", endTime="17:00", preValue=0, postValue=0)
        body = self.client.get("/api/compliance/2024-03-04").get_json()

        self.assertEqual(body["metrics"]["flight_hours"], 9.0)
        self.assertFalse(body["status"]["max_flight_hours"])
        self.assertFalse(body["compliant"])

    def test_compliance_bad_day(self) -> None:
        self.assertEqual(self.client.get("/api/compliance/tomorrow").status_code, 400)

    def test_weekly(self) -> None:
        self._post_activity()
        rows = self.client.get("/api/weekly/2024-03-06").get_json()
        self.assertEqual(len(rows), 7)
        self.assertEqual(rows[1]["date"], "2024-03-04")
        self.assertEqual(rows[1]["Flight"], 2.0)
        self.assertEqual(rows[1]["pre_post"], 1.0)

    def test_rolling(self) -> None:
        self._post_activity()
        response = self.client.get(
            "/api/rolling?start=2024-03-04T10:00&end=2024-03-04T12:00&step=60")
        points = response.get_json()
        self.assertEqual([p["flight_hours"] for p in points], [0.0, 1.0, 2.0])
        self.assertEqual(points[0]["time"], "2024-03-04T10:00:00")

    def test_rolling_bad_parameters(self) -> None:
        self.assertEqual(self.client.get("/api/rolling?start=2024-03-04T10:00").status_code, 400)
        response = self.client.get("/api/rolling?start=2024-03-04T10:00&end=2024-03-04T12:00&step=0")
        self.assertEqual(response.status_code, 400)

    def test_rolling_accepts_utc_offsets(self) -> None:
        self._post_activity()
        response = self.client.get("/api/rolling", query_string={
            "start": "2024-03-04T10:00:00+00:00",
            "end": "2024-03-04T12:00:00+00:00",
            "step": "60",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()), 3)

    def test_rolling_rejects_oversized_range(self) -> None:
        response = self.client.get(
            "/api/rolling?start=2000-01-01T00:00&end=2040-01-01T00:00&step=1")
        self.assertEqual(response.status_code, 400)
        self.assertIn("too many samples", response.get_json()["error"])

    def test_export_csv(self) -> None:
        self._post_activity(notes="Stalls")
        response = self.client.get("/api/export.csv")
        self.assertEqual(response.mimetype, "text/csv")
        self.assertIn("attachment", response.headers["Content-Disposition"])
        self.assertIn('f1,Flight,2024-03-04,10:00,12:00,1,"Stalls"', response.get_data(as_text=True))

    def test_export_ics(self) -> None:
        self._post_activity()
        response = self.client.get("/api/export.ics")
        self.assertEqual(response.mimetype, "text/calendar")
        self.assertIn("UID:safehours-f1", response.get_data(as_text=True))

    def test_import_csv(self) -> None:
        self._post_activity()
        text = (
            "type,date,startTime,endTime,prePostValue\n"
            "Ground,2024-04-01,08:00,09:00,0\n"
        )
        response = self.client.post("/api/import/csv", data=text, content_type="text/csv")
        self.assertEqual(response.get_json(), {"imported": 1, "replace": True})
        stored = self.repo.load()
        self.assertEqual(len(stored), 1)
        self.assertTrue(stored[0].id)
        self.assertEqual(stored[0].type.value, "Ground")

    def test_import_csv_merge(self) -> None:
        self._post_activity()
        text = "type,date,startTime,endTime,prePostValue\nGround,2024-04-01,08:00,09:00,0\n"
        self.client.post("/api/import/csv?replace=false", data=text, content_type="text/csv")
        self.assertEqual(len(self.repo.load()), 2)

    def test_import_csv_merge_without_ids_keeps_earlier_rows(self) -> None:
        first = "type,date,startTime,endTime,prePostValue\nFlight,2024-03-05,10:00,11:00,0\n"
        second = "type,date,startTime,endTime,prePostValue\nGround,2024-03-06,08:00,09:00,0\n"
        for text in (first, second):
            response = self.client.post("/api/import/csv?replace=false", data=text,
                                        content_type="text/csv")
            self.assertEqual(response.status_code, 200)
        self.assertEqual(sorted(a.date for a in self.repo.load()), ["2024-03-05", "2024-03-06"])

    def test_import_csv_bad_header(self) -> None:
        response = self.client.post("/api/import/csv", data="a,b\n1,2\n", content_type="text/csv")
        self.assertEqual(response.status_code, 400)

    def test_import_ics(self) -> None:
        self._post_activity()
        exported = self.client.get("/api/export.ics").get_data(as_text=True)
        self.client.delete("/api/activities/f1")

        response = self.client.post("/api/import/ics", data=exported, content_type="text/calendar")
        self.assertEqual(response.get_json()["imported"], 1)
        self.assertEqual(self.repo.get("f1").start_time, "10:00")

    def test_thresholds(self) -> None:
        self.assertEqual(self.client.get("/api/thresholds").get_json()["max_duty_day"], 16)

        response = self.client.put("/api/thresholds", json={
            "max_duty_day": 14, "max_flight_hours": 12, "unknown": 3,
        })
        body = response.get_json()
        self.assertEqual(body["max_duty_day"], 14)
        self.assertEqual(body["max_flight_hours"], 8)
        self.assertEqual(Config(self.config.config_path).thresholds.max_duty_day, 14)

    def test_thresholds_apply_to_compliance(self) -> None:
        self._post_activity()
        self.client.put("/api/thresholds", json={"max_duty_day": 2})
        body = self.client.get("/api/compliance/2024-03-04").get_json()
        self.assertFalse(body["status"]["max_duty_day"])

    def test_thresholds_reject_bad_values(self) -> None:
        response = self.client.put("/api/thresholds", json={"max_duty_day": "long"})
        self.assertEqual(response.status_code, 400)
        response = self.client.put("/api/thresholds", json={"max_duty_day": -1})
        self.assertEqual(response.status_code, 400)
        response = self.client.put("/api/thresholds", data='{"max_duty_day": NaN}',
                                   content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get("/api/thresholds").get_json()["max_duty_day"], 16)

    def test_thresholds_reset(self) -> None:
        self.client.put("/api/thresholds", json={"max_duty_day": 14})
        body = self.client.put("/api/thresholds", json={"reset": True}).get_json()
        self.assertEqual(body["max_duty_day"], 16)


class TestServer(unittest.TestCase):

    @patch.object(server.socket, 'socket')
    def test_find_free_port_skips_busy(self, mock_socket: MagicMock) -> None:
        sock = mock_socket.return_value.__enter__.return_value
        sock.bind.side_effect = [OSError("busy"), None]
        self.assertEqual(find_free_port((5050, 8080, 5000)), 8080)

    @patch.object(server.socket, 'socket')
    def test_find_free_port_all_busy(self, mock_socket: MagicMock) -> None:
        sock = mock_socket.return_value.__enter__.return_value
        sock.bind.side_effect = OSError("busy")
        with self.assertRaises(RuntimeError):
            find_free_port((5050, 8080))

    @patch.object(server, 'create_app')
    @patch.object(server, 'find_free_port', return_value=5050)
    @patch.object(server, 'ensure_db_exists')
    @patch.object(server, 'setup_logging')
    def test_main_runs_on_localhost(self, mock_logging: MagicMock, mock_ensure: MagicMock,
                                    mock_port: MagicMock, mock_create: MagicMock) -> None:
        server.main()
        mock_ensure.assert_called_once_with()
        mock_create.return_value.run.assert_called_once_with(
            host="127.0.0.1", port=5050)


if __name__ == '__main__':
    unittest.main()
