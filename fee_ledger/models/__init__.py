"""ORM models for the fee ledger."""

from fee_ledger.models.dependent import DependentModel
from fee_ledger.models.notification import NotificationModel
from fee_ledger.models.school import SchoolModel
from fee_ledger.models.transaction import TransactionModel
from fee_ledger.models.user import UserModel

__all__ = [
    "DependentModel",
    "NotificationModel",
    "SchoolModel",
    "TransactionModel",
    "UserModel",
]
