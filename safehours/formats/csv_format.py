"""CSV export and import of the activity log."""
import csv
import io
import logging
import uuid
from typing import Dict, Iterable, List

from ..models import Activity, ActivityType
from .errors import ImportFormatError

logger = logging.getLogger(__name__)

CSV_HEADER = ["id", "type", "date", "startTime", "endTime", "prePostValue", "notes"]
REQUIRED_FIELDS = ("type", "date", "startTime", "endTime", "prePostValue")


def _format_hours(value: float) -> str:
    return f"{value:g}"


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _csv_line(fields: List[str]) -> str:
    """One CSV record, quoting only fields that need it."""
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(fields)
    return buffer.getvalue()


def activities_to_csv(activities: Iterable[Activity]) -> str:
    """
    Serialize activities to CSV.

    Briefing is written as the combined pre/post total; non-empty notes are
    always quoted.
    """
    lines = [_csv_line(CSV_HEADER)]
    for activity in activities:
        notes = _quote(activity.notes) if activity.notes else ""
        lines.append(_csv_line([
            activity.id,
            activity.type.value,
            activity.date,
            activity.start_time,
            activity.end_time,
            _format_hours(activity.total_briefing_hours()),
        ]) + "," + notes)
    return "\n".join(lines)


def _to_hours(value: str) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def parse_csv(text: str) -> List[Activity]:
    """
    Parse CSV produced by ``activities_to_csv``.

    The combined pre/post value is split evenly between pre and post unless
    the file carries separate ``preValue``/``postValue`` columns. Rows
    without an id get a fresh unique id.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        header = [name.strip() for name in next(reader)]
    except StopIteration:
        raise ImportFormatError("Invalid CSV format: file is empty")

    if not all(name in header for name in REQUIRED_FIELDS):
        raise ImportFormatError("Invalid CSV format: missing required fields")

    activities: List[Activity] = []
    for line_number, row in enumerate(reader, start=2):
        if not any(field.strip() for field in row):
            continue
        if len(row) < len(header):
            row = row + [""] * (len(header) - len(row))
        record: Dict[str, str] = dict(zip(header, row))

        pre_post = _to_hours(record["prePostValue"])
        if record.get("preValue") or record.get("postValue"):
            pre = _to_hours(record.get("preValue", ""))
            post = _to_hours(record.get("postValue", ""))
        else:
            pre = post = pre_post / 2

        try:
            activity_type = ActivityType(record["type"])
        except ValueError:
            raise ImportFormatError(f"Invalid activity type on line {line_number}: {record['type']!r}")

        activities.append(Activity(
            id=record.get("id") or uuid.uuid4().hex,
            type=activity_type,
            date=record["date"].strip(),
            start_time=record["startTime"].strip(),
            end_time=record["endTime"].strip(),
            pre_value=pre,
            post_value=post,
            pre_post_value=pre + post,
            notes=record.get("notes", ""),
        ))

    logger.info("Parsed %d activities from CSV", len(activities))
    return activities
