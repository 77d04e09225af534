"""Unit tests for rule action parsing, derivation and update payloads."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from bankmatch.models import MatchStatus, RuleActionType
from bankmatch.services.conditions import RuleCondition
from bankmatch.services.errors import InvalidRuleError
from bankmatch.services.rule_actions import (
    AssignTenantAction,
    BookAsAction,
    IgnoreAction,
    build_manual_update,
    build_rule_update,
    derive_rule_action,
    derive_rule_name,
    parse_rule_action,
)

NOW = datetime(2024, 2, 1, 9, 30, tzinfo=UTC)


def test_derive_assign_tenant_with_category() -> None:
    action = derive_rule_action(tenant_id="T1", lease_id=None, transaction_type="rent", building_id=None)

    assert isinstance(action, AssignTenantAction)
    assert action.action_type is RuleActionType.ASSIGN_TENANT
    # No lease key at all when no lease was supplied
    assert action.to_config() == {"tenant_id": "T1", "type": "rent"}


def test_derive_book_as_when_no_tenant() -> None:
    action = derive_rule_action(tenant_id=None, lease_id=None, transaction_type="utilities", building_id="B-7")

    assert isinstance(action, BookAsAction)
    assert action.to_config() == {"type": "utilities", "building_id": "B-7"}


def test_derive_rule_name_joins_condition_values() -> None:
    conditions = [
        RuleCondition("counterpart_name", "contains", "Schmidt"),
        RuleCondition("purpose", "contains", "Miete"),
    ]
    assert derive_rule_name(conditions, "Regel: ") == "Regel: Schmidt + Miete"


def test_parse_assign_tenant() -> None:
    tenant_id = str(uuid4())
    action = parse_rule_action("assign_tenant", {"tenant_id": tenant_id, "lease_id": "L-2024-01", "extra": 1})

    assert action == AssignTenantAction(tenant_id=tenant_id, lease_id="L-2024-01")


def test_parse_keeps_ids_opaque() -> None:
    action = parse_rule_action("book_as", {"type": "utilities", "building_id": " 42 "})
    assert action == BookAsAction(transaction_type="utilities", building_id="42")

    blank = parse_rule_action("assign_tenant", {"tenant_id": "T1", "lease_id": "  "})
    assert blank == AssignTenantAction(tenant_id="T1")


def test_parse_assign_tenant_requires_tenant() -> None:
    with pytest.raises(InvalidRuleError):
        parse_rule_action(RuleActionType.ASSIGN_TENANT, {"lease_id": str(uuid4())})


def test_parse_rejects_unknown_action_type() -> None:
    with pytest.raises(InvalidRuleError, match="Unknown rule action type"):
        parse_rule_action("split", {})


def test_parse_rejects_malformed_ids() -> None:
    with pytest.raises(InvalidRuleError, match="building_id"):
        parse_rule_action("ignore", {"building_id": {"id": "B-7"}})


def test_parse_tolerates_missing_config() -> None:
    assert parse_rule_action("ignore", None) == IgnoreAction()
    assert parse_rule_action("book_as", None) == BookAsAction()


def test_rule_update_assign_tenant_books_rent() -> None:
    actor = uuid4()
    action = AssignTenantAction(tenant_id="T1", transaction_type="deposit")
    values = build_rule_update(action, actor_id=actor, matched_at=NOW, confidence=0.95)

    assert values == {
        "match_status": MatchStatus.AUTO,
        "match_confidence": 0.95,
        "matched_at": NOW,
        "matched_by": actor,
        "matched_tenant_id": action.tenant_id,
        "matched_lease_id": None,
        "transaction_type": "rent",
    }


def test_rule_update_book_as_defaults_to_other() -> None:
    values = build_rule_update(BookAsAction(), actor_id=uuid4(), matched_at=NOW, confidence=0.95)
    assert values["transaction_type"] == "other"
    assert values["match_status"] is MatchStatus.AUTO


def test_rule_update_ignore_overrides_status_and_keeps_building() -> None:
    building_id = "B-7"
    values = build_rule_update(
        IgnoreAction(building_id=building_id), actor_id=uuid4(), matched_at=NOW, confidence=0.95
    )

    assert values["match_status"] is MatchStatus.IGNORED
    assert values["matched_building_id"] == building_id
    assert "transaction_type" not in values


def test_manual_update_only_sets_supplied_fields() -> None:
    actor = uuid4()
    values = build_manual_update(actor_id=actor, matched_at=NOW, confidence=1.0, transaction_type="repair")

    assert values == {
        "match_status": MatchStatus.MANUAL,
        "match_confidence": 1.0,
        "matched_at": NOW,
        "matched_by": actor,
        "transaction_type": "repair",
    }
