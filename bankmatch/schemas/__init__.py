from bankmatch.schemas.banking import (
    BankingStatsResponse,
    BatchOutcomeResponse,
    ConditionSchema,
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
from bankmatch.schemas.base import BaseResponse, CamelRequest, ErrorResponse, ListResponse

__all__ = [
    "BankingStatsResponse",
    "BaseResponse",
    "BatchOutcomeResponse",
    "CamelRequest",
    "ConditionSchema",
    "ErrorResponse",
    "ListResponse",
    "ManualMatchFailureResponse",
    "ManualMatchRequest",
    "ManualMatchResponse",
    "RuleApplyRequest",
    "RuleApplyResponse",
    "RuleCreate",
    "RuleListResponse",
    "RuleMatchPreview",
    "RulePreviewResponse",
    "RuleResponse",
    "TransactionListResponse",
    "TransactionResponse",
]
