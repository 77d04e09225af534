"""Condition matching for transaction rules.

A condition compares one text field of a bank transaction against a value.
Matching is case-insensitive and never raises: unknown fields resolve to an
empty string and unknown operators simply do not match.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ConditionField(str, Enum):
    """Transaction fields a rule condition may inspect."""

    COUNTERPART_NAME = "counterpart_name"
    COUNTERPART_IBAN = "counterpart_iban"
    PURPOSE = "purpose"
    BOOKING_TEXT = "booking_text"

    @classmethod
    def parse(cls, raw: str | ConditionField | None) -> ConditionField | None:
        try:
            return cls(raw)
        except ValueError:
            return None


class ConditionOperator(str, Enum):
    """Comparison applied between the field value and the condition value."""

    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"


# Banks often leave the structured fields empty and put everything into the
# booking narrative, so these fields fall back to booking_text.
FALLBACK_FIELDS = frozenset({ConditionField.COUNTERPART_NAME, ConditionField.PURPOSE})


@dataclass(frozen=True)
class RuleCondition:
    """One ``{field, operator, value}`` entry of a rule."""

    field: str
    operator: str
    value: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RuleCondition:
        return cls(
            field=str(data.get("field") or ""),
            operator=str(data.get("operator") or ""),
            value=str(data.get("value") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


def parse_conditions(raw: Iterable[RuleCondition | Mapping[str, Any]] | None) -> list[RuleCondition]:
    """Normalize stored JSON conditions (or already-built conditions) to RuleCondition."""
    if not raw:
        return []
    return [item if isinstance(item, RuleCondition) else RuleCondition.from_dict(item) for item in raw]


def field_value(transaction: Any, field: ConditionField | None) -> str:
    """Return the raw text of ``field`` on ``transaction``, or "" when absent."""
    if field is None:
        return ""
    if isinstance(transaction, Mapping):
        value = transaction.get(field.value)
    else:
        value = getattr(transaction, field.value, None)
    if value is None:
        return ""
    return str(value)


def resolve_value(transaction: Any, field: ConditionField | None) -> tuple[str, bool]:
    """Return the lower-cased value to compare and whether booking_text stood in for it."""
    primary = field_value(transaction, field).lower()
    if primary or field not in FALLBACK_FIELDS:
        return primary, False
    return field_value(transaction, ConditionField.BOOKING_TEXT).lower(), True


def matches(transaction: Any, condition: RuleCondition) -> bool:
    """Decide whether a single condition holds for a transaction."""
    value, from_fallback = resolve_value(transaction, ConditionField.parse(condition.field))
    expected = condition.value.lower()

    if condition.operator == ConditionOperator.EQUALS:
        # An exact match against free-text narrative would never fire.
        if from_fallback:
            return expected in value
        return value == expected
    if condition.operator == ConditionOperator.CONTAINS:
        return expected in value
    if condition.operator == ConditionOperator.STARTS_WITH:
        return value.startswith(expected)
    return False
