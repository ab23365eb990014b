"""
Review submission and moderation endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from api.auth import get_current_user, require_admin
from api.dependencies import get_catalog_store
from api.models import ApprovalResponse, MessageResponse
from catalog.database import CatalogStore
from catalog.models import Review, ReviewCreate, ReviewSummary, User

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.post("", response_model=Review, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Submit a review; it stays pending until an admin approves it."""
    return await store.create_review(user.id, payload)


@router.get("/book/{book_id}", response_model=List[ReviewSummary])
async def get_book_reviews(book_id: str, store: CatalogStore = Depends(get_catalog_store)):
    """Get the approved reviews of a book."""
    return await store.get_book_reviews(book_id)


@router.get("/pending", response_model=List[ReviewSummary])
async def get_pending_reviews(
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Get reviews awaiting moderation."""
    return await store.get_pending_reviews()


@router.put("/{review_id}/approve", response_model=ApprovalResponse)
async def approve_review(
    review_id: str,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Approve a review and recompute its book's rating."""
    average_rating, rating_count = await store.approve_review(review_id)
    return ApprovalResponse(
        message="Review approved",
        average_rating=average_rating,
        rating_count=rating_count
    )


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: str,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Delete a review."""
    await store.delete_review(review_id)
    return MessageResponse(message="Review removed")
