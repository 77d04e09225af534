"""Retroactive rule application with preview/commit modes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.config import settings
from bankmatch.logger import async_log_timing, get_logger
from bankmatch.models import BankTransaction, MatchStatus, TransactionRule
from bankmatch.models.base import utcnow
from bankmatch.services.ownership import Caller, coerce_ids, get_owned_rule, owned_transactions_query
from bankmatch.services.rule_actions import build_rule_update, parse_rule_action
from bankmatch.services.rule_evaluator import evaluate

logger = get_logger(__name__)


@dataclass
class RulePreview:
    matches: list[BankTransaction] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matches)


@dataclass
class RuleApplication:
    applied: int = 0


async def find_rule_matches(
    db: AsyncSession,
    rule: TransactionRule,
    organization_id: UUID,
    transaction_ids: Iterable[UUID | str] | None = None,
) -> list[BankTransaction]:
    """Unmatched transactions of the organization that satisfy ``rule``.

    Ordered newest booking first. When ``transaction_ids`` is given the result
    is restricted to that set; an empty restriction yields nothing.
    """
    query = (
        owned_transactions_query(organization_id)
        .where(BankTransaction.match_status == MatchStatus.UNMATCHED)
        .order_by(BankTransaction.booking_date.desc(), BankTransaction.id)
    )
    if transaction_ids is not None:
        restrict = set(coerce_ids(transaction_ids))
        if not restrict:
            return []
        query = query.where(BankTransaction.id.in_(restrict))

    result = await db.execute(query)
    candidates = list(result.scalars().all())
    return evaluate(rule.conditions, candidates)


async def apply_rule_retroactively(
    db: AsyncSession,
    caller: Caller,
    rule_id: UUID | str,
    *,
    transaction_ids: Iterable[UUID | str] | None = None,
    preview: bool = False,
) -> RulePreview | RuleApplication:
    """Preview or apply a stored rule to existing unmatched transactions.

    Commit mode writes every match that is still unmatched in one statement
    and bumps the rule's ``match_count`` by the rows written, in the same
    transaction; the counter is incremented in SQL so concurrent applications
    do not lose updates.

    Raises:
        RuleNotFoundError: the rule does not exist or belongs to another organization.
        InvalidRuleError: the stored action cannot be interpreted (commit mode only).
    """
    rule = await get_owned_rule(db, rule_id, caller.organization_id)
    matched = await find_rule_matches(db, rule, caller.organization_id, transaction_ids)

    if preview:
        logger.info(
            "Rule preview computed",
            rule_id=str(rule.id),
            organization_id=str(caller.organization_id),
            matches=len(matched),
        )
        return RulePreview(matches=matched)

    if not matched:
        return RuleApplication(applied=0)

    action = parse_rule_action(rule.action_type, rule.action_config)
    now = utcnow()
    values = build_rule_update(
        action,
        actor_id=caller.user_id,
        matched_at=now,
        confidence=settings.rule_match_confidence,
    )
    ids = [txn.id for txn in matched]

    async with async_log_timing(
        "apply_rule",
        logger=logger,
        rule_id=str(rule.id),
        organization_id=str(caller.organization_id),
        action_type=action.action_type.value,
    ) as timing:
        try:
            # Rows classified since the candidate read are left alone
            written = await db.execute(
                update(BankTransaction)
                .where(
                    BankTransaction.id.in_(ids),
                    BankTransaction.match_status == MatchStatus.UNMATCHED,
                )
                .values(**values)
            )
            applied = written.rowcount
            if applied:
                await db.execute(
                    update(TransactionRule)
                    .where(TransactionRule.id == rule.id)
                    .values(match_count=TransactionRule.match_count + applied, last_match_at=now)
                )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        timing.update(candidates=len(ids), applied=applied)

    return RuleApplication(applied=applied)
