"""Tests for the rule store."""

import pytest

from bankmatch.models import RuleActionType
from bankmatch.schemas.banking import RuleCreate
from bankmatch.services.conditions import RuleCondition
from bankmatch.services.errors import InvalidRuleError
from bankmatch.services.rule_actions import BookAsAction
from bankmatch.services.rules import add_rule, count_rules, create_rule, list_rules
from tests.factories import TransactionRuleFactory


async def test_list_rules_orders_by_priority_then_name(db, org, other_org) -> None:
    low = await TransactionRuleFactory.create_async(db, organization_id=org.organization.id, name="B", priority=0)
    high = await TransactionRuleFactory.create_async(db, organization_id=org.organization.id, name="Z", priority=5)
    same = await TransactionRuleFactory.create_async(db, organization_id=org.organization.id, name="A", priority=0)
    await TransactionRuleFactory.create_async(db, organization_id=other_org.organization.id)

    rules = await list_rules(db, org.organization.id)

    assert [rule.id for rule in rules] == [high.id, same.id, low.id]
    assert await count_rules(db, org.organization.id) == 3


async def test_list_rules_active_only(db, org) -> None:
    active = await TransactionRuleFactory.create_async(db, organization_id=org.organization.id)
    await TransactionRuleFactory.create_async(db, organization_id=org.organization.id, is_active=False)

    rules = await list_rules(db, org.organization.id, active_only=True)

    assert [rule.id for rule in rules] == [active.id]


async def test_add_rule_requires_conditions(db, org) -> None:
    with pytest.raises(InvalidRuleError):
        await add_rule(db, org.organization.id, name="Leer", conditions=[], action=BookAsAction())


async def test_add_rule_stores_conditions_and_config(db, org) -> None:
    rule = await add_rule(
        db,
        org.organization.id,
        name="Strom",
        conditions=[RuleCondition("counterpart_name", "starts_with", "Stadtwerke")],
        action=BookAsAction(transaction_type="utilities"),
        priority=3,
    )

    assert rule.conditions == [{"field": "counterpart_name", "operator": "starts_with", "value": "Stadtwerke"}]
    assert rule.action_type == RuleActionType.BOOK_AS
    assert rule.action_config == {"type": "utilities"}
    assert rule.priority == 3
    assert rule.match_count == 0


async def test_create_rule_validates_action(db, org) -> None:
    payload = RuleCreate(
        name="Mieter Schmidt",
        conditions=[{"field": "counterpart_name", "value": "Schmidt"}],
        action_type=RuleActionType.ASSIGN_TENANT,
        action_config={},
    )

    with pytest.raises(InvalidRuleError, match="tenant_id"):
        await create_rule(db, org.organization.id, payload)


async def test_create_rule_normalizes_config(db, org) -> None:
    payload = RuleCreate(
        name="Kontogebuehren",
        description="Bankentgelte nicht zuordnen",
        conditions=[{"field": "booking_text", "operator": "starts_with", "value": "Entgelt"}],
        action_type=RuleActionType.IGNORE,
        action_config={"building_id": ""},
    )

    rule = await create_rule(db, org.organization.id, payload)

    assert rule.action_type == RuleActionType.IGNORE
    assert rule.action_config == {}
    assert rule.description == "Bankentgelte nicht zuordnen"
