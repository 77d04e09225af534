"""Organization-scoped access checks.

Every id a caller hands in is re-resolved against the caller's organization,
which itself is derived from the authenticated user's profile. Transactions
reach their organization through account -> connection; rules carry it
directly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.models import BankAccount, BankConnection, BankTransaction, Profile, TransactionRule
from bankmatch.services.errors import OrganizationNotFoundError, RuleNotFoundError


@dataclass(frozen=True)
class Caller:
    """The authenticated actor and the organization it acts for."""

    user_id: UUID
    organization_id: UUID


async def resolve_organization_id(db: AsyncSession, user_id: UUID) -> UUID:
    """Look up the organization of ``user_id`` from its profile."""
    result = await db.execute(select(Profile.organization_id).where(Profile.user_id == user_id))
    organization_id = result.scalar_one_or_none()
    if organization_id is None:
        raise OrganizationNotFoundError("No organization found")
    return organization_id


async def resolve_caller(db: AsyncSession, user_id: UUID) -> Caller:
    return Caller(user_id=user_id, organization_id=await resolve_organization_id(db, user_id))


def owned_transactions_query(organization_id: UUID) -> Select[tuple[BankTransaction]]:
    """Base query for transactions belonging to ``organization_id``."""
    return (
        select(BankTransaction)
        .join(BankAccount, BankTransaction.account_id == BankAccount.id)
        .join(BankConnection, BankAccount.connection_id == BankConnection.id)
        .where(BankConnection.organization_id == organization_id)
    )


def coerce_ids(raw_ids: Iterable[UUID | str | None]) -> list[UUID]:
    """Parse ids, dropping unparsable ones and duplicates while keeping order."""
    seen: set[UUID] = set()
    ids: list[UUID] = []
    for raw in raw_ids:
        if raw is None:
            continue
        try:
            value = raw if isinstance(raw, UUID) else UUID(str(raw))
        except ValueError:
            continue
        if value not in seen:
            seen.add(value)
            ids.append(value)
    return ids


async def filter_owned_transaction_ids(
    db: AsyncSession,
    transaction_ids: Iterable[UUID],
    organization_id: UUID,
) -> list[UUID]:
    """Return the subset of ``transaction_ids`` owned by the organization, in input order."""
    requested = list(transaction_ids)
    if not requested:
        return []

    result = await db.execute(
        select(BankTransaction.id)
        .join(BankAccount, BankTransaction.account_id == BankAccount.id)
        .join(BankConnection, BankAccount.connection_id == BankConnection.id)
        .where(BankConnection.organization_id == organization_id)
        .where(BankTransaction.id.in_(requested))
    )
    owned = set(result.scalars().all())
    return [txn_id for txn_id in requested if txn_id in owned]


async def get_owned_rule(db: AsyncSession, rule_id: UUID | str, organization_id: UUID) -> TransactionRule:
    """Load a rule of the organization or raise RuleNotFoundError."""
    ids = coerce_ids([rule_id])
    if not ids:
        raise RuleNotFoundError("Rule not found")

    result = await db.execute(
        select(TransactionRule)
        .where(TransactionRule.id == ids[0])
        .where(TransactionRule.organization_id == organization_id)
    )
    rule = result.scalar_one_or_none()
    if rule is None:
        raise RuleNotFoundError("Rule not found")
    return rule
