"""
BaseService -- common constructor for command services.

Responsibility:
    Every command service receives the ``LedgerStore`` it writes through and
    a ``Clock``.  There are no ambient singletons: whoever builds a service
    decides which ledger (and therefore which store backend) it uses.

Architecture position:
    Ledger > Services -- imperative shell.  Read-only access belongs in
    ``fee_ledger/selectors/``.

Invariants enforced:
    - Services never talk to a ``Store`` backend directly.
    - Services never commit a SQL session; the caller that opened it owns
      commit and rollback.
"""

from __future__ import annotations

from abc import ABC

from fee_ledger.domain.clock import Clock
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.logging_config import LogContext
from fee_ledger.services.ledger_store import LedgerStore


class BaseService(ABC):
    """
    Abstract base class for ledger command services.

    Args:
        ledger: The ledger all reads and writes go through.
        clock: Time source.  Defaults to the ledger's clock.
    """

    def __init__(self, ledger: LedgerStore, clock: Clock | None = None):
        self.ledger = ledger
        self.clock = clock or ledger.clock

    @staticmethod
    def _bind(identity: EffectiveIdentity, **fields: str | None):
        """Log context for one command issued by ``identity``."""
        return LogContext.bind(
            actor_id=identity.actor_id,
            acting_as_id=identity.acting_as_id,
            **fields,
        )
