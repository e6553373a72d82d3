"""
Configuration Loader (``guard_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``guard_config.schema`` dataclasses.  Runtime callers use
``guard_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown overflow policy or status  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from guard_config.schema import (
    AlertingConfig,
    DatabaseConfig,
    LedgerConfig,
    RosterConfig,
)

_KNOWN_POLICIES = ("first_slot", "proportional")
_KNOWN_STATUSES = ("confirmed", "unconfirmed", "unassigned", "in-progress", "incomplete")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data["url"],
        echo_sql=bool(data.get("echo_sql", False)),
        pool_size=int(data.get("pool_size", 5)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_roster(data: dict[str, Any]) -> RosterConfig:
    policy = data.get("overflow_policy", "first_slot")
    if policy not in _KNOWN_POLICIES:
        raise ValueError(
            f"Unknown overflow_policy '{policy}'. Available: {list(_KNOWN_POLICIES)}"
        )
    statuses = tuple(data.get("statuses", _KNOWN_STATUSES))
    unknown = [s for s in statuses if s not in _KNOWN_STATUSES]
    if unknown:
        raise ValueError(f"Unknown roster statuses: {unknown}")
    return RosterConfig(overflow_policy=policy, statuses=statuses)


def parse_alerting(data: dict[str, Any]) -> AlertingConfig:
    return AlertingConfig(
        alert_types={str(k): str(v) for k, v in (data.get("alert_types") or {}).items()},
        severities={str(k): str(v) for k, v in (data.get("severities") or {}).items()},
        default_type=data.get("default_type", "missing_hours"),
        default_severity=data.get("default_severity", "warning"),
    )


def load_config_set(path: Path) -> LedgerConfig:
    """Parse one YAML configuration set file into a ``LedgerConfig``."""
    data = load_yaml_file(path)
    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        database=parse_database(data["database"]),
        roster=parse_roster(data.get("roster") or {}),
        alerting=parse_alerting(data.get("alerting") or {}),
    )
