"""
Module: fee_ledger.selectors.base
Responsibility: Base class for read-only query selectors.  Selectors are the
    query side of the ledger: they read a ``LedgerSnapshot`` and return
    scoped DTOs or computed summaries.
Architecture position: Ledger > Selectors.  May import from domain/ and
    services/ledger_store.py (for reads only).

Invariants enforced:
    - Read-only: selectors never call a ``LedgerStore`` mutator.
    - Every result is scoped to an ``EffectiveIdentity`` first and
      summarized second.
"""

from abc import ABC

from fee_ledger.services.ledger_store import LedgerStore


class BaseSelector(ABC):
    """
    Abstract base class for selectors.

    Args:
        ledger: Ledger to read from.
    """

    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger
