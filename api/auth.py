"""
Authentication for the FastAPI API.

Passwords are hashed with Argon2; sessions are JWTs carried in an http-only
cookie or a Bearer Authorization header.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from api.dependencies import get_catalog_store
from catalog.database import CatalogStore
from catalog.models import User, UserRole
from utilities.config import config

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Optional so that cookie sessions work without the header
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using Argon2."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Custom lifetime (defaults to jwt_expire_days)

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(days=config.jwt_expire_days)

    now = datetime.utcnow()
    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(claims, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """
    Verify a JWT access token.

    Returns:
        The user id it was issued for, None if invalid or expired
    """
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError:
        return None
    return payload.get("sub")


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.cookie_name,
        value=token,
        httponly=True,
        secure=config.cookie_secure,
        samesite="strict",
        max_age=config.jwt_expire_days * 24 * 60 * 60,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=config.cookie_name, httponly=True)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Resolve the caller's user id from the Bearer header or the session cookie.

    Raises:
        HTTPException: 401 if no token is present or it does not verify
    """
    token = credentials.credentials if credentials else request.cookies.get(config.cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = decode_access_token(token)
    if not user_id:
        logger.warning("Rejected invalid token", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store: CatalogStore = Depends(get_catalog_store)
) -> User:
    """Load the authenticated user."""
    user = await store.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, user not found",
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only admins through."""
    if user.role != UserRole.ADMIN:
        logger.warning("Admin access denied", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )
    return user
