"""Rule evaluation over a candidate transaction set."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from bankmatch.models import MatchStatus
from bankmatch.services.conditions import RuleCondition, matches, parse_conditions

T = TypeVar("T")


def is_unmatched(transaction: Any) -> bool:
    if isinstance(transaction, Mapping):
        status = transaction.get("match_status")
    else:
        status = getattr(transaction, "match_status", None)
    return status == MatchStatus.UNMATCHED


def matches_all(transaction: Any, conditions: Sequence[RuleCondition]) -> bool:
    """AND over every condition; an empty list holds for every transaction."""
    return all(matches(transaction, condition) for condition in conditions)


def evaluate(
    conditions: Iterable[RuleCondition | Mapping[str, Any]] | None,
    transactions: Iterable[T],
) -> list[T]:
    """Return the unmatched transactions satisfying every condition, in input order.

    Already classified transactions (manual, auto, ignored) are never
    candidates, so re-running a rule cannot reclassify confirmed data.
    """
    parsed = parse_conditions(conditions)
    return [txn for txn in transactions if is_unmatched(txn) and matches_all(txn, parsed)]
