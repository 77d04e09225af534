"""Rule actions: parsing stored configs, deriving new rules, building updates.

A stored rule keeps its action as ``action_type`` + an open JSON config. Inside
the engine the action is a tagged variant, one dataclass per action type, each
able to carry the ``building_id`` side-channel.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from bankmatch.models import MatchStatus, RuleActionType
from bankmatch.services.conditions import RuleCondition
from bankmatch.services.errors import InvalidRuleError

RENT_TRANSACTION_TYPE = "rent"
DEFAULT_BOOKING_TYPE = "other"


@dataclass(frozen=True)
class AssignTenantAction:
    tenant_id: str
    lease_id: str | None = None
    # Category recorded alongside the tenant when a rule is derived from a manual match
    transaction_type: str | None = None
    building_id: str | None = None

    action_type: ClassVar[RuleActionType] = RuleActionType.ASSIGN_TENANT

    def to_config(self) -> dict[str, Any]:
        return _compact(
            {
                "tenant_id": self.tenant_id,
                "lease_id": self.lease_id,
                "type": self.transaction_type,
                "building_id": self.building_id,
            }
        )


@dataclass(frozen=True)
class BookAsAction:
    transaction_type: str | None = None
    building_id: str | None = None

    action_type: ClassVar[RuleActionType] = RuleActionType.BOOK_AS

    def to_config(self) -> dict[str, Any]:
        return _compact({"type": self.transaction_type, "building_id": self.building_id})


@dataclass(frozen=True)
class IgnoreAction:
    building_id: str | None = None

    action_type: ClassVar[RuleActionType] = RuleActionType.IGNORE

    def to_config(self) -> dict[str, Any]:
        return _compact({"building_id": self.building_id})


RuleAction = AssignTenantAction | BookAsAction | IgnoreAction


def _compact(config: dict[str, Any]) -> dict[str, Any]:
    """Drop unset keys so the config is plain JSON."""
    return {
        key: value
        for key, value in config.items()
        if value is not None and value != ""
    }


def _optional_id(config: Mapping[str, Any], key: str) -> str | None:
    """Read an opaque platform id (tenant, lease, building) from a stored config."""
    raw = config.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, str | int | UUID):
        raise InvalidRuleError(f"Invalid {key} in rule action config")
    return str(raw).strip() or None


def parse_rule_action(action_type: RuleActionType | str, config: Mapping[str, Any] | None) -> RuleAction:
    """Turn a stored ``action_type`` + ``action_config`` pair into a RuleAction.

    Raises:
        InvalidRuleError: unknown action type, malformed ids, or an
            assign_tenant config without a tenant.
    """
    config = config or {}
    try:
        kind = RuleActionType(action_type)
    except ValueError as exc:
        raise InvalidRuleError(f"Unknown rule action type: {action_type}") from exc

    building_id = _optional_id(config, "building_id")
    transaction_type = config.get("type") or None

    if kind is RuleActionType.ASSIGN_TENANT:
        tenant_id = _optional_id(config, "tenant_id")
        if tenant_id is None:
            raise InvalidRuleError("assign_tenant rule has no tenant_id")
        return AssignTenantAction(
            tenant_id=tenant_id,
            lease_id=_optional_id(config, "lease_id"),
            transaction_type=transaction_type,
            building_id=building_id,
        )
    if kind is RuleActionType.BOOK_AS:
        return BookAsAction(transaction_type=transaction_type, building_id=building_id)
    return IgnoreAction(building_id=building_id)


def derive_rule_action(
    *,
    tenant_id: str | None,
    lease_id: str | None,
    transaction_type: str | None,
    building_id: str | None,
) -> RuleAction:
    """Infer the action of a rule created from a manual match.

    A tenant makes it ``assign_tenant`` (carrying the category, if any);
    otherwise it is ``book_as``. The building rides along either way.
    """
    if tenant_id:
        return AssignTenantAction(
            tenant_id=tenant_id,
            lease_id=lease_id,
            transaction_type=transaction_type or None,
            building_id=building_id,
        )
    return BookAsAction(transaction_type=transaction_type or None, building_id=building_id)


def derive_rule_name(conditions: Sequence[RuleCondition], prefix: str) -> str:
    return prefix + " + ".join(condition.value for condition in conditions)


def build_rule_update(
    action: RuleAction,
    *,
    actor_id: UUID,
    matched_at: datetime,
    confidence: float,
) -> dict[str, Any]:
    """Column values written to every transaction a rule is applied to."""
    values: dict[str, Any] = {
        "match_status": MatchStatus.AUTO,
        "match_confidence": confidence,
        "matched_at": matched_at,
        "matched_by": actor_id,
    }

    if isinstance(action, AssignTenantAction):
        values["matched_tenant_id"] = action.tenant_id
        values["matched_lease_id"] = action.lease_id
        values["transaction_type"] = RENT_TRANSACTION_TYPE
    elif isinstance(action, BookAsAction):
        values["transaction_type"] = action.transaction_type or DEFAULT_BOOKING_TYPE
    else:
        values["match_status"] = MatchStatus.IGNORED

    if action.building_id:
        values["matched_building_id"] = action.building_id
    return values


def build_manual_update(
    *,
    actor_id: UUID,
    matched_at: datetime,
    confidence: float,
    tenant_id: str | None = None,
    lease_id: str | None = None,
    transaction_type: str | None = None,
    building_id: str | None = None,
) -> dict[str, Any]:
    """Column values for a manual match; unsupplied fields are left untouched."""
    values: dict[str, Any] = {
        "match_status": MatchStatus.MANUAL,
        "match_confidence": confidence,
        "matched_at": matched_at,
        "matched_by": actor_id,
    }
    if tenant_id:
        values["matched_tenant_id"] = tenant_id
    if lease_id:
        values["matched_lease_id"] = lease_id
    if transaction_type:
        values["transaction_type"] = transaction_type
    if building_id:
        values["matched_building_id"] = building_id
    return values
