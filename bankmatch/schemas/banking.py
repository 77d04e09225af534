"""Pydantic schemas for the banking reconciliation API."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from bankmatch.models import MatchStatus, RuleActionType
from bankmatch.schemas.base import BaseResponse, CamelRequest, ListResponse
from bankmatch.services.conditions import ConditionField, ConditionOperator


class ConditionSchema(BaseModel):
    """One rule condition as sent by clients."""

    field: ConditionField
    operator: ConditionOperator = ConditionOperator.CONTAINS
    value: str = Field(min_length=1, max_length=255)


class ManualMatchRequest(CamelRequest):
    """Match one (``transactionId``) or many (``bulk`` + ``transactionIds``) transactions."""

    transaction_id: str | None = None
    bulk: bool = False
    transaction_ids: list[str] | None = None
    tenant_id: str | None = Field(default=None, max_length=64)
    lease_id: str | None = Field(default=None, max_length=64)
    transaction_type: str | None = Field(default=None, max_length=64)
    building_id: str | None = Field(default=None, max_length=64)
    create_rule: bool = False
    rule_conditions: list[ConditionSchema] | None = None

    def requested_ids(self) -> list[str]:
        if self.bulk and self.transaction_ids:
            return list(self.transaction_ids)
        if self.transaction_id:
            return [self.transaction_id]
        return []


class RuleApplyRequest(CamelRequest):
    """Apply a rule to unmatched transactions, optionally restricted to ``transactionIds``."""

    rule_id: str
    transaction_ids: list[str] | None = None
    preview: bool = False


class RuleCreate(BaseModel):
    """Explicitly authored rule."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    conditions: list[ConditionSchema] = Field(min_length=1)
    action_type: RuleActionType
    action_config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    priority: int = 0


class RuleResponse(BaseResponse):
    id: UUID
    organization_id: UUID
    name: str
    description: str | None
    conditions: list[dict[str, Any]]
    action_type: RuleActionType
    action_config: dict[str, Any]
    is_active: bool
    priority: int
    match_count: int
    last_match_at: datetime | None
    created_at: datetime
    updated_at: datetime


RuleListResponse = ListResponse[RuleResponse]


class BatchOutcomeResponse(BaseResponse):
    index: int
    requested: int
    updated: int
    error: str | None = None


class ManualMatchResponse(BaseModel):
    success: bool = True
    updated: int
    rule: RuleResponse | None = None
    batches: list[BatchOutcomeResponse] = Field(default_factory=list)


class ManualMatchFailureResponse(BaseModel):
    """Returned when a batch fails; earlier batches stay applied."""

    success: bool = False
    error: str
    state: str
    updated: int
    failed_batch: int
    batches: list[BatchOutcomeResponse]


class RuleMatchPreview(BaseResponse):
    id: UUID
    counterpart_name: str | None
    purpose: str | None
    amount_cents: int
    booking_date: date
    booking_text: str | None


class RulePreviewResponse(BaseModel):
    success: bool = True
    matches: list[RuleMatchPreview]
    total: int


class RuleApplyResponse(BaseModel):
    success: bool = True
    applied: int


class TransactionResponse(BaseResponse):
    id: UUID
    account_id: UUID
    counterpart_name: str | None
    counterpart_iban: str | None
    purpose: str | None
    booking_text: str | None
    amount_cents: int
    currency: str
    booking_date: date
    value_date: date | None
    match_status: MatchStatus
    match_confidence: float | None
    matched_at: datetime | None
    matched_by: UUID | None
    matched_tenant_id: str | None
    matched_lease_id: str | None
    matched_building_id: str | None
    transaction_type: str | None


TransactionListResponse = ListResponse[TransactionResponse]


class BankingStatsResponse(BaseModel):
    total_transactions: int
    unmatched: int
    manual: int
    auto: int
    ignored: int
    rules: int
