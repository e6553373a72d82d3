"""
Alert Models (``guard_modules.alerts.models``).

Frozen value objects for persisted alerts and for the result of a
consistency-alert fan-out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class Alert:
    id: UUID
    guard_id: UUID | None
    alert_type: str
    severity: str
    title: str
    description: str
    related_data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    is_resolved: bool = False
    resolved_at: datetime | None = None
    resolved_notes: str = ""
    action_url: str = ""
    created_at: datetime | None = None

    def to_contract(self) -> dict[str, Any]:
        return {
            "guardId": str(self.guard_id) if self.guard_id else None,
            "alertType": self.alert_type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "relatedData": dict(self.related_data),
            "isRead": self.is_read,
            "isResolved": self.is_resolved,
        }


@dataclass(frozen=True)
class AlertFailure:
    """One issue whose alert could not be written."""
    issue: str
    error: str


@dataclass(frozen=True)
class AlertFanoutResult:
    alerts: tuple[Alert, ...] = ()
    failures: tuple[AlertFailure, ...] = ()

    @property
    def alerts_created(self) -> int:
        return len(self.alerts)

    @property
    def success(self) -> bool:
        return not self.failures
