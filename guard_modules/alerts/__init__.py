"""Alerts Module (``guard_modules.alerts``): consistency alerts and their lifecycle."""

from guard_modules.alerts.models import Alert, AlertFailure, AlertFanoutResult
from guard_modules.alerts.service import AlertService, ConsistencyValidator

__all__ = [
    "Alert",
    "AlertFailure",
    "AlertFanoutResult",
    "AlertService",
    "ConsistencyValidator",
]
