"""
Admin endpoints: dashboard statistics, user management and genres.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.auth import require_admin
from api.dependencies import get_catalog_store
from api.models import GenreCreate, MessageResponse, RoleUpdateRequest, StatsResponse
from catalog.database import CatalogStore
from catalog.models import Genre, User, UserRole

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(store: CatalogStore = Depends(get_catalog_store)):
    """Get catalog statistics for the dashboard."""
    return await store.get_stats()


@router.get("/users", response_model=List[User])
async def get_users(store: CatalogStore = Depends(get_catalog_store)):
    """List all users."""
    return await store.list_users()


@router.put("/users/{user_id}/role", response_model=MessageResponse)
async def update_user_role(
    user_id: str,
    payload: RoleUpdateRequest,
    store: CatalogStore = Depends(get_catalog_store)
):
    """Promote or demote a user."""
    try:
        role = UserRole(payload.role)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")

    await store.update_user_role(user_id, role)
    return MessageResponse(message="User role updated")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Delete a user other than the caller."""
    if admin.id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")

    await store.delete_user(user_id)
    return MessageResponse(message="User removed")


@router.get("/genres", response_model=List[Genre])
async def get_genres(store: CatalogStore = Depends(get_catalog_store)):
    """List genres, seeding the defaults on first use."""
    return await store.list_genres()


@router.post("/genres", response_model=Genre, status_code=status.HTTP_201_CREATED)
async def create_genre(payload: GenreCreate, store: CatalogStore = Depends(get_catalog_store)):
    """Add a genre."""
    return await store.create_genre(payload.name)


@router.delete("/genres/{genre_id}", response_model=MessageResponse)
async def delete_genre(genre_id: str, store: CatalogStore = Depends(get_catalog_store)):
    """Delete a genre."""
    await store.delete_genre(genre_id)
    return MessageResponse(message="Genre removed")
