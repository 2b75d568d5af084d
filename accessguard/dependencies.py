"""Request-scoped dependencies: database session, caller identity and client IP."""
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.core.rate_limiter import get_client_ip
from accessguard.core.security import decode_token
from accessguard.models.user import User
from accessguard.utils.db import get_async_session

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_async_session():
        yield session


def user_id_from_token(token: str) -> int | None:
    """Subject of a valid access token, else None."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Caller identified by a bearer token, or None for anonymous scans.

    Bad, expired and inactive-account tokens all count as anonymous.
    """
    if credentials is None:
        return None

    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        return None

    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


async def require_auth(
    user: Annotated[User | None, Depends(get_current_user)],
) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(
    user: Annotated[User, Depends(require_auth)],
) -> User:
    """Role admin, or the account named by ADMIN_EMAIL."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def client_ip(request: Request) -> str:
    return get_client_ip(request)


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User | None, Depends(get_current_user)]
AuthUser = Annotated[User, Depends(require_auth)]
AdminUser = Annotated[User, Depends(require_admin)]
ClientIP = Annotated[str, Depends(client_ip)]
