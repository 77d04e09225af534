"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from bankmatch.deps import CurrentCaller, DbSession

    async def my_endpoint(db: DbSession, caller: CurrentCaller):
        # caller.organization_id is resolved from the user's profile
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bankmatch.auth import get_current_caller
from bankmatch.database import get_db
from bankmatch.services.ownership import Caller

DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentCaller = Annotated[Caller, Depends(get_current_caller)]

__all__ = ["CurrentCaller", "DbSession"]
