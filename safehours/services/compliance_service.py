"""Service for compliance evaluation against warning thresholds."""
import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import Config, settings
from ..db.activity_repository import ActivityRepository, SqliteActivityRepository
from ..engine import aggregates, rolling
from ..engine.timeconv import parse_date
from ..models import ComplianceReport, WarningThresholds

logger = logging.getLogger(__name__)


class ComplianceService:
    """Computes the seven compliance metrics for a calendar day."""

    def __init__(self, repository: Optional[ActivityRepository] = None,
                 thresholds: Optional[WarningThresholds] = None,
                 config: Optional[Config] = None) -> None:
        self.repo = repository if repository is not None else SqliteActivityRepository()
        self._thresholds = thresholds
        self._config = config

    @property
    def thresholds(self) -> WarningThresholds:
        if self._thresholds is not None:
            return self._thresholds
        return (self._config or settings).thresholds

    def evaluate(self, day: datetime.date | str) -> ComplianceReport:
        """
        Evaluate every limit for ``day``.

        Raises DateParseError for a malformed day; individual malformed
        records only degrade the affected metric.
        """
        target = parse_date(day)
        activities = self.repo.load()
        previous = target - datetime.timedelta(days=1)

        report = ComplianceReport(
            date=target,
            flight_hours=rolling.peak_rolling_flight_time(activities, target),
            contact_time=rolling.peak_rolling_contact_time(activities, target),
            duty_day=aggregates.calculate_duty_day(activities, target),
            rest_between_days=aggregates.calculate_rest_between(activities, target),
            consecutive_days=aggregates.calculate_consecutive_days(activities, target),
            weekly_hours=aggregates.calculate_weekly_hours(activities, target),
            past_seven_days_hours=aggregates.calculate_past_seven_days_hours(activities, target),
            thresholds=self.thresholds,
            has_previous_day=aggregates.has_activity_on(activities, previous),
        )
        if not report.is_compliant:
            logger.info("Limits exceeded on %s: %s", target.isoformat(), ", ".join(report.violations()))
        return report

    def weekly_breakdown(self, day: datetime.date | str) -> List[Dict[str, Any]]:
        """Per-day hours by type for the Sunday-Saturday week containing ``day``."""
        sunday, _ = aggregates.week_bounds(parse_date(day))
        activities = self.repo.load()

        rows = []
        for offset in range(7):
            current = sunday + datetime.timedelta(days=offset)
            row: Dict[str, Any] = {"date": current.isoformat()}
            row.update(aggregates.daily_breakdown(activities, current))
            rows.append(row)
        return rows

    def rolling_flight_series(self, start: datetime.datetime, end: datetime.datetime,
                              step: datetime.timedelta = datetime.timedelta(minutes=15)
                              ) -> List[Tuple[datetime.datetime, float]]:
        """Rolling 24h flight time sampled between two instants."""
        return rolling.rolling_series(self.repo.load(), start, end, step)
