"""Transaction queries and single-transaction actions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.logger import get_logger
from bankmatch.models import BankTransaction, MatchStatus
from bankmatch.models.base import utcnow
from bankmatch.services.errors import TransactionNotFoundError
from bankmatch.services.ownership import Caller, coerce_ids, owned_transactions_query
from bankmatch.services.rules import count_rules

logger = get_logger(__name__)


async def list_transactions(
    db: AsyncSession,
    organization_id: UUID,
    *,
    status: MatchStatus | None = None,
    account_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[BankTransaction], int]:
    """Return a page of the organization's transactions and the unpaged total."""
    query = owned_transactions_query(organization_id)
    if status is not None:
        query = query.where(BankTransaction.match_status == status)
    if account_id is not None:
        query = query.where(BankTransaction.account_id == account_id)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    result = await db.execute(
        query.order_by(BankTransaction.booking_date.desc(), BankTransaction.id).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def get_owned_transaction(db: AsyncSession, txn_id: UUID | str, organization_id: UUID) -> BankTransaction:
    ids = coerce_ids([txn_id])
    if not ids:
        raise TransactionNotFoundError("Transaction not found")
    result = await db.execute(owned_transactions_query(organization_id).where(BankTransaction.id == ids[0]))
    txn = result.scalar_one_or_none()
    if txn is None:
        raise TransactionNotFoundError("Transaction not found")
    return txn


async def ignore_transaction(db: AsyncSession, caller: Caller, txn_id: UUID | str) -> BankTransaction:
    """Mark a transaction as ignored and clear any tenant/lease/building link.

    The caller owns the commit.
    """
    txn = await get_owned_transaction(db, txn_id, caller.organization_id)
    txn.match_status = MatchStatus.IGNORED
    txn.match_confidence = None
    txn.matched_tenant_id = None
    txn.matched_lease_id = None
    txn.matched_building_id = None
    txn.matched_at = utcnow()
    txn.matched_by = caller.user_id
    await db.flush()
    await db.refresh(txn)

    logger.info(
        "Transaction ignored",
        transaction_id=str(txn.id),
        organization_id=str(caller.organization_id),
    )
    return txn


async def get_banking_stats(db: AsyncSession, organization_id: UUID) -> dict[str, int]:
    """Count the organization's transactions per match status, plus its rules."""
    owned = owned_transactions_query(organization_id).subquery()
    result = await db.execute(
        select(owned.c.match_status, func.count()).group_by(owned.c.match_status)
    )
    counts = {MatchStatus(status).value: count for status, count in result.all()}

    stats = {status.value: counts.get(status.value, 0) for status in MatchStatus}
    stats["total_transactions"] = sum(counts.values())
    stats["rules"] = await count_rules(db, organization_id)
    return stats
