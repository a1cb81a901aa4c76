"""
JSON API routes for the activity log and compliance metrics.
"""
import datetime
import logging
from typing import Any

from flask import Flask, Response, jsonify, request

from ..config import Config
from ..engine.errors import ParseError
from ..formats import (
    ImportFormatError,
    activities_to_csv,
    activities_to_ics,
    parse_csv,
    parse_ics,
)
from ..models import Activity
from ..services import (
    ActivityNotFoundError,
    ActivityOverlapError,
    ActivityService,
    ActivityValidationError,
    ComplianceService,
)

logger = logging.getLogger(__name__)


def _error(message: str, code: int) -> Any:
    return jsonify({"error": message}), code


def _activity_error(e: Exception) -> Any:
    """Map a rejected write to its HTTP status."""
    if isinstance(e, ActivityNotFoundError):
        return _error(e.message, 404)
    if isinstance(e, ActivityOverlapError):
        body = {"error": e.message, "conflict": e.conflict.to_dict()}
        return jsonify(body), 409
    if isinstance(e, ActivityValidationError):
        return _error(e.message, 400)
    return _error(str(e), 400)


def _truthy(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def _upload_text() -> str:
    """Read an uploaded file (multipart ``file`` field) or the raw request body."""
    upload = request.files.get("file")
    if upload is not None:
        return upload.read().decode("utf-8-sig")
    return request.get_data(as_text=True)


def _attachment(body: str, mimetype: str, filename: str) -> Response:
    response = Response(body, mimetype=mimetype)
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return response


def register_routes(app: Flask, activity_service: ActivityService,
                    compliance_service: ComplianceService, config: Config) -> None:
    """Register API routes with Flask app."""

    @app.route("/api/activities", methods=["GET"])
    def api_list_activities() -> Any: # pyright: ignore[reportUnusedFunction]
        activities = activity_service.list_activities(request.args.get("date"))
        return jsonify([a.to_dict() for a in activities])

    @app.route("/api/activities", methods=["POST"])
    def api_add_activity() -> Any: # pyright: ignore[reportUnusedFunction]
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error("Expected a JSON object", 400)
        try:
            activity = activity_service.add_activity(Activity.from_dict(data))
        except (ActivityOverlapError, ActivityValidationError) as e:
            return _activity_error(e)
        except (ValueError, TypeError) as e:
            return _error(f"Invalid activity: {e}", 400)
        return jsonify(activity.to_dict()), 201

    @app.route("/api/activities/<activity_id>", methods=["PUT"])
    def api_update_activity(activity_id: str) -> Any: # pyright: ignore[reportUnusedFunction]
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error("Expected a JSON object", 400)
        data = dict(data, id=activity_id)
        try:
            activity = activity_service.update_activity(Activity.from_dict(data))
        except (ActivityOverlapError, ActivityValidationError) as e:
            return _activity_error(e)
        except (ValueError, TypeError) as e:
            return _error(f"Invalid activity: {e}", 400)
        return jsonify(activity.to_dict())

    @app.route("/api/activities/<activity_id>", methods=["DELETE"])
    def api_delete_activity(activity_id: str) -> Any: # pyright: ignore[reportUnusedFunction]
        try:
            activity_service.delete_activity(activity_id)
        except ActivityNotFoundError as e:
            return _activity_error(e)
        return "", 204

    @app.route("/api/compliance/<day_str>")
    def api_compliance(day_str: str) -> Any: # pyright: ignore[reportUnusedFunction]
        try:
            return jsonify(compliance_service.evaluate(day_str).to_dict())
        except ParseError as e:
            return _error(str(e), 400)

    @app.route("/api/weekly/<day_str>")
    def api_weekly(day_str: str) -> Any: # pyright: ignore[reportUnusedFunction]
        """Per-day hours for the Sunday-Saturday week containing the day."""
        try:
            return jsonify(compliance_service.weekly_breakdown(day_str))
        except ParseError as e:
            return _error(str(e), 400)

    @app.route("/api/rolling")
    def api_rolling() -> Any: # pyright: ignore[reportUnusedFunction]
        """Rolling 24h flight time sampled between ``start`` and ``end``."""
        start_str = request.args.get("start")
        end_str = request.args.get("end")
        if not start_str or not end_str:
            return _error("Missing start or end parameter", 400)
        try:
            start = datetime.datetime.fromisoformat(start_str)
            end = datetime.datetime.fromisoformat(end_str)
            step = datetime.timedelta(minutes=int(request.args.get("step", "15")))
            series = compliance_service.rolling_flight_series(start, end, step)
        except ValueError as e:
            return _error(f"Invalid rolling parameters: {e}", 400)
        return jsonify([
            {"time": instant.isoformat(), "flight_hours": hours}
            for instant, hours in series
        ])

    @app.route("/api/export.csv")
    def api_export_csv() -> Any: # pyright: ignore[reportUnusedFunction]
        body = activities_to_csv(activity_service.list_activities())
        return _attachment(body, "text/csv", "safehours_activities.csv")

    @app.route("/api/export.ics")
    def api_export_ics() -> Any: # pyright: ignore[reportUnusedFunction]
        body = activities_to_ics(activity_service.list_activities())
        return _attachment(body, "text/calendar", "safehours_activities.ics")

    def _import(parser: Any) -> Any:
        replace = _truthy(request.args.get("replace", "true"))
        try:
            parsed = parser(_upload_text())
            imported = activity_service.import_activities(parsed, replace=replace)
        except ImportFormatError as e:
            return _error(str(e), 400)
        except (ActivityOverlapError, ActivityValidationError) as e:
            return _activity_error(e)
        return jsonify({"imported": len(imported), "replace": replace})

    @app.route("/api/import/csv", methods=["POST"])
    def api_import_csv() -> Any: # pyright: ignore[reportUnusedFunction]
        return _import(parse_csv)

    @app.route("/api/import/ics", methods=["POST"])
    def api_import_ics() -> Any: # pyright: ignore[reportUnusedFunction]
        return _import(parse_ics)

    @app.route("/api/thresholds", methods=["GET"])
    def api_get_thresholds() -> Any: # pyright: ignore[reportUnusedFunction]
        return jsonify(config.thresholds.to_dict())

    @app.route("/api/thresholds", methods=["PUT"])
    def api_update_thresholds() -> Any: # pyright: ignore[reportUnusedFunction]
        """Merge threshold changes; the flight limit cannot be changed."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error("Expected a JSON object", 400)
        if data.get("reset"):
            return jsonify(config.reset_thresholds().to_dict())

        known = config.thresholds.to_dict()
        changes = {name: value for name, value in data.items() if name in known}
        try:
            thresholds = config.update_thresholds(**changes)
        except ValueError as e:
            return _error(str(e), 400)
        except OSError as e:
            logger.error("Could not save thresholds: %s", e)
            return _error("Could not save thresholds", 500)
        return jsonify(thresholds.to_dict())
