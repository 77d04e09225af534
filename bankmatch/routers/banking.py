"""Banking reconciliation API router."""

from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bankmatch.deps import CurrentCaller, DbSession
from bankmatch.logger import get_logger, log_exception
from bankmatch.models import MatchStatus
from bankmatch.schemas.banking import (
    BankingStatsResponse,
    BatchOutcomeResponse,
    ManualMatchFailureResponse,
    ManualMatchRequest,
    ManualMatchResponse,
    RuleApplyRequest,
    RuleApplyResponse,
    RuleCreate,
    RuleListResponse,
    RuleMatchPreview,
    RulePreviewResponse,
    RuleResponse,
    TransactionListResponse,
    TransactionResponse,
)
from bankmatch.schemas.base import ErrorResponse
from bankmatch.services import rules as rule_service
from bankmatch.services import transactions as transaction_service
from bankmatch.services.errors import (
    InvalidRuleError,
    MatchRequestError,
    RuleNotFoundError,
    TransactionNotFoundError,
)
from bankmatch.services.manual_matching import match_transactions
from bankmatch.services.ownership import get_owned_rule
from bankmatch.services.rule_application import RulePreview, apply_rule_retroactively
from bankmatch.utils import raise_bad_request, raise_internal_error, raise_not_found

router = APIRouter(
    prefix="/banking",
    tags=["banking"],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
logger = get_logger(__name__)


@router.post(
    "/transactions/match",
    response_model=ManualMatchResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ManualMatchFailureResponse},
    },
)
async def match_transactions_endpoint(
    payload: ManualMatchRequest,
    db: DbSession,
    caller: CurrentCaller,
) -> ManualMatchResponse | JSONResponse:
    """Manually match one or many transactions, optionally deriving a rule."""
    try:
        result = await match_transactions(db, caller, payload)
    except MatchRequestError as exc:
        raise_bad_request(str(exc), cause=exc)

    batches = [BatchOutcomeResponse.model_validate(outcome) for outcome in result.batches]
    if result.failed_batch is not None:
        failure = ManualMatchFailureResponse(
            error="Failed to update transactions",
            state=result.state.value,
            updated=result.updated,
            failed_batch=result.failed_batch,
            batches=batches,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure.model_dump(mode="json"),
        )

    return ManualMatchResponse(
        updated=result.updated,
        rule=RuleResponse.model_validate(result.rule) if result.rule else None,
        batches=batches,
    )


@router.post(
    "/rules/apply",
    response_model=RulePreviewResponse | RuleApplyResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def apply_rule_endpoint(
    payload: RuleApplyRequest,
    db: DbSession,
    caller: CurrentCaller,
) -> RulePreviewResponse | RuleApplyResponse:
    """Preview or apply a stored rule to the organization's unmatched transactions."""
    try:
        outcome = await apply_rule_retroactively(
            db,
            caller,
            payload.rule_id,
            transaction_ids=payload.transaction_ids,
            preview=payload.preview,
        )
    except RuleNotFoundError as exc:
        raise_not_found("Rule", cause=exc)
    except InvalidRuleError as exc:
        raise_bad_request(str(exc), cause=exc)
    except SQLAlchemyError as exc:
        log_exception(logger, exc, "Rule application failed", rule_id=payload.rule_id)
        raise_internal_error("Failed to apply rule", cause=exc)

    if isinstance(outcome, RulePreview):
        return RulePreviewResponse(
            matches=[RuleMatchPreview.model_validate(txn) for txn in outcome.matches],
            total=outcome.total,
        )
    return RuleApplyResponse(applied=outcome.applied)


@router.get("/rules", response_model=RuleListResponse)
async def list_rules(
    db: DbSession,
    caller: CurrentCaller,
    active_only: bool = Query(default=False),
) -> RuleListResponse:
    rules = await rule_service.list_rules(db, caller.organization_id, active_only=active_only)
    return RuleListResponse(items=[RuleResponse.model_validate(rule) for rule in rules], total=len(rules))


@router.post(
    "/rules",
    response_model=RuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def create_rule(
    payload: RuleCreate,
    db: DbSession,
    caller: CurrentCaller,
) -> RuleResponse:
    try:
        rule = await rule_service.create_rule(db, caller.organization_id, payload)
    except InvalidRuleError as exc:
        raise_bad_request(str(exc), cause=exc)
    await db.commit()
    return RuleResponse.model_validate(rule)


@router.get(
    "/rules/{rule_id}",
    response_model=RuleResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_rule(rule_id: str, db: DbSession, caller: CurrentCaller) -> RuleResponse:
    try:
        rule = await get_owned_rule(db, rule_id, caller.organization_id)
    except RuleNotFoundError as exc:
        raise_not_found("Rule", cause=exc)
    return RuleResponse.model_validate(rule)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    db: DbSession,
    caller: CurrentCaller,
    match_status: MatchStatus | None = Query(default=None, alias="status"),
    account_id: UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> TransactionListResponse:
    items, total = await transaction_service.list_transactions(
        db,
        caller.organization_id,
        status=match_status,
        account_id=account_id,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(txn) for txn in items],
        total=total,
    )


@router.post(
    "/transactions/{txn_id}/ignore",
    response_model=TransactionResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def ignore_transaction(txn_id: str, db: DbSession, caller: CurrentCaller) -> TransactionResponse:
    try:
        txn = await transaction_service.ignore_transaction(db, caller, txn_id)
    except TransactionNotFoundError as exc:
        raise_not_found("Transaction", cause=exc)
    await db.commit()
    return TransactionResponse.model_validate(txn)


@router.get("/stats", response_model=BankingStatsResponse)
async def banking_stats(db: DbSession, caller: CurrentCaller) -> BankingStatsResponse:
    stats = await transaction_service.get_banking_stats(db, caller.organization_id)
    return BankingStatsResponse(**stats)
