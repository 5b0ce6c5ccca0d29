"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, get_clock
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import AsyncSessionLocal, get_db
from app.schemas.users import UserRole
from app.services.directory_service import DirectoryService

# Security
security = HTTPBearer()


def get_cache_manager() -> CacheManager | None:
    """Get cache manager backed by the shared Redis client."""
    return CacheManager(redis_client=get_redis_client())


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that runs outside the request session."""
    return AsyncSessionLocal


def get_directory_service(
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> DirectoryService:
    """Get directory service instance."""
    return DirectoryService(cache_manager=cache_manager)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> dict:
    """
    Get current user from database.

    Args:
        user_id: User ID from JWT token
        db: Database session
        directory: Directory service

    Returns:
        User data from database

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await directory.get_user(db, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    user["role"] = UserRole(user["role"])
    return user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
Directory = Annotated[DirectoryService, Depends(get_directory_service)]
SchedulingClock = Annotated[Clock, Depends(get_clock)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
