"""
Configuration loader (``fee_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed policies of
``fee_config.schema``.  Runtime callers use ``fee_config.get_active_config()``
rather than these functions.

Invariants enforced
-------------------
* Rates are parsed as ``Decimal`` from their string form, never through
  binary floating point.
* Keys that are absent fall back to the defaults of the policy dataclass.
* ``compute_checksum`` is deterministic for equal mappings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Malformed or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from fee_config.schema import AlertPolicy, LedgerConfig, PlanPolicy
from fee_ledger.domain.dtos import Cadence
from fee_ledger.domain.plan import parse_cadence
from fee_ledger.exceptions import InvalidInputError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def parse_rate(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a decimal rate, got {value!r}")
    try:
        rate = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{name}: expected a decimal rate, got {value!r}") from None
    if not rate.is_finite():
        raise ValueError(f"{name}: must be finite, got {value!r}")
    return rate


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    return value


def _parse_cadence_map(
    data: dict[str, Any] | None, defaults: dict[Cadence, int], name: str
) -> MappingProxyType:
    result = dict(defaults)
    for key, value in (data or {}).items():
        try:
            cadence = parse_cadence(key)
        except InvalidInputError as exc:
            raise ValueError(f"{name}: {exc.reason}") from None
        result[cadence] = parse_int(value, f"{name}.{key}")
    return MappingProxyType(result)


def parse_plan_policy(data: dict[str, Any] | None) -> PlanPolicy:
    """
    Parse the ``plan`` section.

    Recognised keys: ``deposit_rate``, ``platform_fee_rate``,
    ``installments`` (cadence -> count), ``cadence_period_days``
    (cadence -> days), ``next_due_period_days``.
    """
    data = data or {}
    defaults = PlanPolicy()
    return PlanPolicy(
        deposit_rate=parse_rate(data.get("deposit_rate", defaults.deposit_rate), "deposit_rate"),
        platform_fee_rate=parse_rate(
            data.get("platform_fee_rate", defaults.platform_fee_rate), "platform_fee_rate"
        ),
        installment_counts=_parse_cadence_map(
            data.get("installments"), dict(defaults.installment_counts), "installments"
        ),
        cadence_period_days=_parse_cadence_map(
            data.get("cadence_period_days"),
            dict(defaults.cadence_period_days),
            "cadence_period_days",
        ),
        next_due_period_days=parse_int(
            data.get("next_due_period_days", defaults.next_due_period_days),
            "next_due_period_days",
        ),
    )


def parse_alert_policy(data: dict[str, Any] | None) -> AlertPolicy:
    data = data or {}
    return AlertPolicy(
        due_soon_window_days=parse_int(
            data.get("due_soon_window_days", AlertPolicy().due_soon_window_days),
            "due_soon_window_days",
        ),
    )


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """Parse a whole configuration mapping and stamp it with its checksum."""
    return LedgerConfig(
        version=str(data.get("version", "1")),
        plan=parse_plan_policy(data.get("plan")),
        alerts=parse_alert_policy(data.get("alerts")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
