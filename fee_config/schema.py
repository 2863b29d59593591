"""
Configuration schema (``fee_config.schema``).

Frozen dataclasses describing one loaded configuration set.  The policy
types themselves belong to the ledger domain (``fee_ledger.domain.policy``)
so the ledger can be driven without this package; ``LedgerConfig`` bundles
them with the set's identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fee_ledger.domain.policy import AlertPolicy, PlanPolicy


@dataclass(frozen=True)
class LedgerConfig:
    """
    A parsed configuration set.

    ``checksum`` is the SHA-256 of the raw YAML mapping it was parsed from,
    so two processes can confirm they run under the same terms.
    """

    version: str
    plan: PlanPolicy = field(default_factory=PlanPolicy)
    alerts: AlertPolicy = field(default_factory=AlertPolicy)
    checksum: str = ""


__all__ = ["AlertPolicy", "LedgerConfig", "PlanPolicy"]
