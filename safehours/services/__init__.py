"""Business logic services."""
from .activity_service import (
    ActivityError,
    ActivityNotFoundError,
    ActivityOverlapError,
    ActivityService,
    ActivityValidationError,
)
from .compliance_service import ComplianceService

__all__ = ['ActivityService', 'ComplianceService', 'ActivityError',
           'ActivityNotFoundError', 'ActivityOverlapError', 'ActivityValidationError']
