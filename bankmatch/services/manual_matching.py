"""Manual and bulk matching of explicitly chosen transactions.

Ids are processed in fixed-size batches. Each batch re-checks ownership and is
committed on its own, so a failure in batch N leaves batches 0..N-1 applied.
The result reports every batch so callers can tell a full apply from a
partial one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import batched
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.config import settings
from bankmatch.logger import async_log_timing, get_logger, log_exception
from bankmatch.models import BankTransaction, TransactionRule
from bankmatch.models.base import utcnow
from bankmatch.services.conditions import RuleCondition
from bankmatch.services.errors import MatchRequestError
from bankmatch.services.ownership import Caller, coerce_ids, filter_owned_transaction_ids
from bankmatch.services.rule_actions import build_manual_update, derive_rule_action, derive_rule_name
from bankmatch.services.rules import add_rule

if TYPE_CHECKING:
    from bankmatch.schemas.banking import ManualMatchRequest

logger = get_logger(__name__)


class ApplyState(str, Enum):
    """Overall outcome of a batched apply."""

    APPLIED = "applied"
    PARTIAL = "partial"
    NOT_APPLIED = "not_applied"


@dataclass
class BatchOutcome:
    index: int
    requested: int
    updated: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ManualMatchResult:
    updated: int = 0
    batches: list[BatchOutcome] = field(default_factory=list)
    rule: TransactionRule | None = None

    @property
    def failed_batch(self) -> int | None:
        for outcome in self.batches:
            if outcome.failed:
                return outcome.index
        return None

    @property
    def state(self) -> ApplyState:
        failed = self.failed_batch
        if failed is None:
            return ApplyState.APPLIED
        return ApplyState.PARTIAL if failed > 0 else ApplyState.NOT_APPLIED


async def _update_batch(
    db: AsyncSession,
    batch: list[UUID],
    organization_id: UUID,
    values: dict[str, Any],
) -> int:
    owned = await filter_owned_transaction_ids(db, batch, organization_id)
    if not owned:
        return 0
    await db.execute(
        update(BankTransaction).where(BankTransaction.id.in_(owned)).values(**values)
    )
    return len(owned)


async def apply_in_batches(
    db: AsyncSession,
    ids: list[UUID],
    organization_id: UUID,
    values: dict[str, Any],
    *,
    batch_size: int,
) -> ManualMatchResult:
    """Best-effort batched update: commit per batch, stop at the first failure."""
    result = ManualMatchResult()
    for index, chunk in enumerate(batched(ids, batch_size)):
        outcome = BatchOutcome(index=index, requested=len(chunk))
        result.batches.append(outcome)
        try:
            outcome.updated = await _update_batch(db, list(chunk), organization_id, values)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            outcome.updated = 0
            outcome.error = "Database write failed"
            log_exception(
                logger,
                exc,
                "Manual match batch failed",
                batch_index=index,
                batch_size=len(chunk),
                organization_id=str(organization_id),
                applied_before_failure=result.updated,
            )
            break
        result.updated += outcome.updated
    return result


async def match_transactions(
    db: AsyncSession,
    caller: Caller,
    request: ManualMatchRequest,
) -> ManualMatchResult:
    """Classify explicitly chosen transactions and optionally derive a rule.

    Ids the caller does not own (or that are not ids at all) are dropped
    silently. Raises MatchRequestError when the request names no ids.
    """
    requested = request.requested_ids()
    if not requested:
        raise MatchRequestError("No transaction IDs provided")

    ids = coerce_ids(requested)
    now = utcnow()
    values = build_manual_update(
        actor_id=caller.user_id,
        matched_at=now,
        confidence=settings.manual_match_confidence,
        tenant_id=request.tenant_id,
        lease_id=request.lease_id,
        transaction_type=request.transaction_type,
        building_id=request.building_id,
    )

    async with async_log_timing(
        "manual_match",
        logger=logger,
        organization_id=str(caller.organization_id),
        requested=len(requested),
    ) as timing:
        result = await apply_in_batches(
            db,
            ids,
            caller.organization_id,
            values,
            batch_size=settings.match_batch_size,
        )
        timing.update(updated=result.updated, batches=len(result.batches), state=result.state.value)

    if result.failed_batch is None and request.create_rule and request.rule_conditions:
        result.rule = await _derive_rule(db, caller, request, updated=result.updated, matched_at=now)
    return result


async def _derive_rule(
    db: AsyncSession,
    caller: Caller,
    request: ManualMatchRequest,
    *,
    updated: int,
    matched_at: datetime,
) -> TransactionRule | None:
    """Persist a rule mirroring the manual match; a failure here keeps the match."""
    conditions = [
        RuleCondition(field=item.field.value, operator=item.operator.value, value=item.value)
        for item in request.rule_conditions or []
    ]
    action = derive_rule_action(
        tenant_id=request.tenant_id,
        lease_id=request.lease_id,
        transaction_type=request.transaction_type,
        building_id=request.building_id,
    )
    try:
        rule = await add_rule(
            db,
            caller.organization_id,
            name=derive_rule_name(conditions, settings.rule_name_prefix),
            conditions=conditions,
            action=action,
            match_count=updated,
            last_match_at=matched_at,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log_exception(
            logger,
            exc,
            "Rule derivation failed; manual match kept",
            level="warning",
            organization_id=str(caller.organization_id),
        )
        return None
    return rule
