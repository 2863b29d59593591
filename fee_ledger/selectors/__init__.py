"""Read-only selectors over the ledger."""

from fee_ledger.selectors.base import BaseSelector
from fee_ledger.selectors.view_selector import ScopedViewSelector

__all__ = ["BaseSelector", "ScopedViewSelector"]
