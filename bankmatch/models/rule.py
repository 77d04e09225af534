"""Transaction matching rule model."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bankmatch.database import Base
from bankmatch.models.base import JSONType, TimestampMixin, UUIDMixin, value_enum


class RuleActionType(str, Enum):
    """What a rule does to the transactions it matches."""

    ASSIGN_TENANT = "assign_tenant"
    BOOK_AS = "book_as"
    IGNORE = "ignore"


class TransactionRule(Base, UUIDMixin, TimestampMixin):
    """A named AND-combination of field conditions plus one action.

    ``conditions`` holds ``[{"field", "operator", "value"}, ...]``;
    ``action_config`` holds the data the action writes (tenant_id, lease_id,
    type, building_id). Only the usage statistics are updated by the engine.
    """

    __tablename__ = "transaction_rules"

    organization_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    action_type: Mapped[RuleActionType] = mapped_column(
        value_enum(RuleActionType, "transaction_rule_action_type_enum"),
        nullable=False,
    )
    action_config: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Usage statistics
    match_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_match_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<TransactionRule {self.name} ({self.action_type})>"
