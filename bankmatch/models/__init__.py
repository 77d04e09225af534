"""SQLAlchemy models package."""

from bankmatch.models.banking import BankAccount, BankConnection, BankTransaction, MatchStatus
from bankmatch.models.organization import Organization, Profile
from bankmatch.models.rule import RuleActionType, TransactionRule

__all__ = [
    "BankAccount",
    "BankConnection",
    "BankTransaction",
    "MatchStatus",
    "Organization",
    "Profile",
    "RuleActionType",
    "TransactionRule",
]
