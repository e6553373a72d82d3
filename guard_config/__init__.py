"""
guard_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfig``.

Architecture position:
    Configuration -- sits above ``guard_kernel`` and is read by
    ``guard_services``.  The kernel and modules MUST NOT import from
    ``guard_config``; services pass the relevant values in.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Same YAML always produces the same checksum.
    - ``GUARD_LEDGER_DATABASE_URL`` in the environment overrides the
      configured database URL.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``GUARD_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from guard_config.loader import load_config_set
from guard_config.schema import (
    AlertingConfig,
    DatabaseConfig,
    LedgerConfig,
    RosterConfig,
)

_logger = logging.getLogger("guard_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "GUARD_LEDGER_DATABASE_URL"


def get_active_config(config_path: Path | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration set file.
            Defaults to guard_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    config = load_config_set(Path(config_path) if config_path else _DEFAULT_CONFIG_PATH)

    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        config = replace(config, database=replace(config.database, url=override))

    _logger.info(
        "GUARD_CONFIG_TRACE",
        extra={
            "trace_type": "GUARD_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_checksum": config.checksum,
            "overflow_policy": config.roster.overflow_policy,
            "database_url_overridden": bool(override),
        },
    )
    return config


__all__ = [
    "AlertingConfig",
    "DatabaseConfig",
    "LedgerConfig",
    "RosterConfig",
    "get_active_config",
]
