"""Exceptions raised by the reconciliation services."""


class ReconciliationError(Exception):
    """Base exception for reconciliation service errors."""


class OrganizationNotFoundError(ReconciliationError):
    """The caller has no profile or no organization."""


class RuleNotFoundError(ReconciliationError):
    """Rule missing or owned by another organization."""


class TransactionNotFoundError(ReconciliationError):
    """Transaction missing or owned by another organization."""


class InvalidRuleError(ReconciliationError):
    """Rule definition or stored action config cannot be used."""


class MatchRequestError(ReconciliationError):
    """Manual match request is malformed (e.g. names no transactions)."""
