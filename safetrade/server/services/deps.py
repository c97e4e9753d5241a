"""
Shared route dependencies.

Annotated aliases for the database session and the authenticated caller.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database import get_session
from safetrade.server.services.auth import AuthenticatedUser, get_admin_user, get_current_user

SessionDep = Annotated[AsyncSession, Depends(get_session)]
CurrentUserDep = Annotated[AuthenticatedUser, Depends(get_current_user)]
AdminUserDep = Annotated[AuthenticatedUser, Depends(get_admin_user)]
