"""Organization and profile models.

Both tables are owned by the surrounding platform; they are mapped here only so
the caller's organization can be re-derived from the authenticated user.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankmatch.database import Base
from bankmatch.models.base import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from bankmatch.models.banking import BankConnection


class Organization(Base, UUIDMixin, TimestampMixin):
    """A landlord / property-management organization."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    connections: Mapped[list[BankConnection]] = relationship(
        "BankConnection", back_populates="organization"
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"


class Profile(Base, UUIDMixin, TimestampMixin):
    """Per-user profile linking an authenticated user to an organization."""

    __tablename__ = "profiles"

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, unique=True, index=True)
    organization_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=True
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
