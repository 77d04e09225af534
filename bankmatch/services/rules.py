"""Rule store: listing and creating transaction rules."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.logger import get_logger
from bankmatch.models import TransactionRule
from bankmatch.services.conditions import RuleCondition
from bankmatch.services.errors import InvalidRuleError
from bankmatch.services.rule_actions import RuleAction, parse_rule_action

if TYPE_CHECKING:
    from bankmatch.schemas.banking import RuleCreate

logger = get_logger(__name__)


async def list_rules(
    db: AsyncSession,
    organization_id: UUID,
    *,
    active_only: bool = False,
) -> list[TransactionRule]:
    """Return the organization's rules, highest priority first."""
    query = select(TransactionRule).where(TransactionRule.organization_id == organization_id)
    if active_only:
        query = query.where(TransactionRule.is_active == True)  # noqa: E712
    query = query.order_by(TransactionRule.priority.desc(), TransactionRule.name, TransactionRule.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_rules(db: AsyncSession, organization_id: UUID) -> int:
    result = await db.execute(
        select(func.count(TransactionRule.id)).where(TransactionRule.organization_id == organization_id)
    )
    return result.scalar_one()


async def add_rule(
    db: AsyncSession,
    organization_id: UUID,
    *,
    name: str,
    conditions: Sequence[RuleCondition],
    action: RuleAction,
    description: str | None = None,
    is_active: bool = True,
    priority: int = 0,
    match_count: int = 0,
    last_match_at: datetime | None = None,
) -> TransactionRule:
    """Insert a rule and flush it; the caller owns the commit."""
    if not conditions:
        raise InvalidRuleError("A rule needs at least one condition")

    rule = TransactionRule(
        organization_id=organization_id,
        name=name,
        description=description,
        conditions=[condition.to_dict() for condition in conditions],
        action_type=action.action_type,
        action_config=action.to_config(),
        is_active=is_active,
        priority=priority,
        match_count=match_count,
        last_match_at=last_match_at,
    )
    db.add(rule)
    await db.flush()
    await db.refresh(rule)

    logger.info(
        "Transaction rule created",
        rule_id=str(rule.id),
        organization_id=str(organization_id),
        action_type=action.action_type.value,
        conditions=len(conditions),
    )
    return rule


async def create_rule(db: AsyncSession, organization_id: UUID, payload: RuleCreate) -> TransactionRule:
    """Create an explicitly authored rule after validating its action config."""
    action = parse_rule_action(payload.action_type, payload.action_config)
    conditions = [
        RuleCondition(field=item.field.value, operator=item.operator.value, value=item.value)
        for item in payload.conditions
    ]
    return await add_rule(
        db,
        organization_id,
        name=payload.name,
        description=payload.description,
        conditions=conditions,
        action=action,
        is_active=payload.is_active,
        priority=payload.priority,
    )
