from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.db import get_session
from marketplace.core.errors import api_error
from marketplace.core.security import decode_access_token
from marketplace.models.provider import Provider
from marketplace.models.user import User, UserRole
from marketplace.services.provider_service import get_provider_by_user_id

security = HTTPBearer(auto_error=False)

__all__ = ["get_session", "get_current_user", "require_role", "get_current_provider"]


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        uid = int(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    result = await session.execute(select(User).where(User.id == uid))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the authenticated user must hold one of `roles`."""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if UserRole(current_user.role) not in roles:
            raise api_error(status.HTTP_403_FORBIDDEN, "Access denied: insufficient permissions")
        return current_user

    return _checker


async def get_current_provider(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.PROVIDER)),
) -> Provider:
    provider = await get_provider_by_user_id(session, current_user.id)
    if not provider:
        raise api_error(status.HTTP_404_NOT_FOUND, "Provider profile not found")
    return provider
