"""
LedgerConfig schema.

Frozen dataclasses that YAML configuration sets are parsed into by
``guard_config.loader``.  Runtime code receives a ``LedgerConfig`` from
``guard_config.get_active_config()`` and never reads YAML itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo_sql: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class AlertingConfig:
    """Issue kind -> alert type / severity, with fallbacks for unmapped kinds."""

    alert_types: dict[str, str] = field(default_factory=dict)
    severities: dict[str, str] = field(default_factory=dict)
    default_type: str = "missing_hours"
    default_severity: str = "warning"

    def service_options(self) -> dict[str, Any]:
        """Keyword arguments for ``AlertService`` / ``ConsistencySweepTask``."""
        return {
            "alert_types": dict(self.alert_types),
            "severities": dict(self.severities),
            "default_type": self.default_type,
            "default_severity": self.default_severity,
        }


@dataclass(frozen=True)
class RosterConfig:
    overflow_policy: str = "first_slot"
    statuses: tuple[str, ...] = ()


@dataclass(frozen=True)
class LedgerConfig:
    """The runtime configuration artifact."""

    config_id: str
    version: int
    checksum: str
    database: DatabaseConfig
    roster: RosterConfig = field(default_factory=RosterConfig)
    alerting: AlertingConfig = field(default_factory=AlertingConfig)
