"""
fee_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains plan and
    alert terms.  The ledger itself never reads files: callers pass the
    returned policies into the services that need them.

Architecture position:
    Configuration -- sits above ``fee_ledger``.  ``fee_ledger`` MUST NEVER
    import from ``fee_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- a value is malformed or out of range.

Every successful call emits a ``FEE_CONFIG_TRACE`` log entry with the
configuration version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from fee_config.loader import load_yaml_file, parse_ledger_config
from fee_config.schema import AlertPolicy, LedgerConfig, PlanPolicy
from fee_ledger.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """
    Load and parse the active configuration.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``sets/default.yaml``.

    Returns:
        LedgerConfig with parsed policies and the source checksum.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = parse_ledger_config(load_yaml_file(path))

    _logger.info(
        "FEE_CONFIG_TRACE",
        extra={
            "trace_type": "FEE_CONFIG_TRACE",
            "config_path": str(path),
            "config_version": config.version,
            "checksum": config.checksum,
            "deposit_rate": str(config.plan.deposit_rate),
            "platform_fee_rate": str(config.plan.platform_fee_rate),
            "due_soon_window_days": config.alerts.due_soon_window_days,
        },
    )
    return config


__all__ = ["AlertPolicy", "LedgerConfig", "PlanPolicy", "get_active_config"]
