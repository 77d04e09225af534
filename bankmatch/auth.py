"""Authentication helpers for request-scoped caller context."""

from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.database import get_db
from bankmatch.security import decode_access_token
from bankmatch.services.errors import OrganizationNotFoundError
from bankmatch.services.ownership import Caller, resolve_caller
from bankmatch.utils import raise_unauthorized

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_current_user_id(token: str | None = Depends(oauth2_scheme)) -> UUID:
    """Resolve the current user ID from the bearer token."""
    if not token:
        raise_unauthorized("Not authenticated")

    payload = decode_access_token(token)
    if not payload:
        raise_unauthorized("Could not validate credentials")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise_unauthorized("Token missing subject")

    try:
        return UUID(str(user_id_str))
    except ValueError as exc:
        raise_unauthorized("Invalid user ID format in token", cause=exc)


async def get_current_caller(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    """Derive the caller's organization from its profile, never from the request."""
    try:
        return await resolve_caller(db, user_id)
    except OrganizationNotFoundError as exc:
        raise_unauthorized(str(exc), cause=exc)
