"""
Account, profile and shelf endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.auth import (
    clear_auth_cookie, create_access_token, get_current_user, hash_password,
    set_auth_cookie, verify_password
)
from api.dependencies import get_catalog_store
from api.models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, ShelfUpdateRequest
from catalog.database import CatalogStore
from catalog.models import Library, User

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    response: Response,
    store: CatalogStore = Depends(get_catalog_store)
):
    """Register a new user and start a session."""
    user = await store.create_user(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        photo=payload.photo
    )
    token = create_access_token(user.id)
    set_auth_cookie(response, token)
    return AuthResponse(user=user, token=token)


@router.post("/login", response_model=AuthResponse)
async def login_user(
    payload: LoginRequest,
    response: Response,
    store: CatalogStore = Depends(get_catalog_store)
):
    """Authenticate with email and password."""
    credentials = await store.get_user_credentials(payload.email)
    if not credentials or not verify_password(payload.password, credentials[1]):
        logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    user = credentials[0]
    token = create_access_token(user.id)
    set_auth_cookie(response, token)
    return AuthResponse(user=user, token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout_user(response: Response):
    """Clear the session cookie."""
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=User)
async def get_user_profile(user: User = Depends(get_current_user)):
    """Get the caller's profile."""
    return user


@router.post("/shelf", response_model=User)
async def update_shelf(
    payload: ShelfUpdateRequest,
    user: User = Depends(get_current_user),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Move a book onto one of the caller's shelves, or off all of them."""
    return await store.update_shelf(
        user.id,
        payload.book_id,
        payload.shelf,
        progress=payload.progress,
        total_length=payload.total_length
    )


@router.get("/library", response_model=Library)
async def get_user_library(
    user: User = Depends(get_current_user),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Get the caller's shelves with book details."""
    return await store.get_library(user.id)
