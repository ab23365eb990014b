"""
Catalog browsing, admin book management and recommendation endpoints.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.auth import get_current_user_id, require_admin
from api.dependencies import get_catalog_store, get_recommendation_engine
from api.models import MessageResponse
from catalog.database import CatalogStore
from catalog.exceptions import NotFoundError
from catalog.models import Book, BookCreate, BookPage, BookQueryParams, BookUpdate, Genre, User
from recommender.engine import RecommendationEngine
from recommender.models import RecommendedBook

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/books", tags=["Books"])


@router.get("", response_model=BookPage)
async def get_books(
    keyword: Optional[str] = None,
    genre: List[str] = Query(default=[]),
    min_rating: Optional[float] = None,
    max_rating: Optional[float] = None,
    sort_by: Optional[str] = None,
    page: int = 1,
    store: CatalogStore = Depends(get_catalog_store)
):
    """
    Get books with search, filtering, sorting and pagination.

    - **keyword**: Case-insensitive match on title or author
    - **genre**: One or more genres, repeated or comma-separated
    - **min_rating** / **max_rating**: Average rating bounds
    - **sort_by**: rating, most_shelved or newest (default newest)
    - **page**: Page number (12 books per page)
    """
    genres = [name.strip() for value in genre for name in value.split(",") if name.strip()]
    try:
        query_params = BookQueryParams(
            keyword=keyword,
            genres=genres,
            min_rating=min_rating,
            max_rating=max_rating,
            sort_by=sort_by,
            page=page
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return await store.list_books(query_params)


@router.post("", response_model=Book, status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreate,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Add a book to the catalog."""
    return await store.create_book(payload, added_by=admin.id)


@router.get("/genres", response_model=List[Genre])
async def get_genres(store: CatalogStore = Depends(get_catalog_store)):
    """List genres."""
    return await store.list_genres()


@router.get("/recommendations", response_model=List[RecommendedBook])
async def get_recommendations(
    user_id: str = Depends(get_current_user_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine)
):
    """
    Get up to 18 book recommendations for the caller.

    Readers with fewer than three books on their read shelf get popular books
    and random discoveries; everyone else gets books ranked by genre
    preference, rating and community activity.
    """
    try:
        return await engine.recommend(user_id)
    except NotFoundError:
        raise
    except Exception as e:
        logger.error("Failed to build recommendations", user_id=user_id, error=str(e))
        raise


@router.get("/{book_id}", response_model=Book)
async def get_book(book_id: str, store: CatalogStore = Depends(get_catalog_store)):
    """Get a single book."""
    return await store.get_book(book_id)


@router.put("/{book_id}", response_model=Book)
async def update_book(
    book_id: str,
    payload: BookUpdate,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Edit a book; empty fields keep their current value."""
    return await store.update_book(book_id, payload)


@router.delete("/{book_id}", response_model=MessageResponse)
async def delete_book(
    book_id: str,
    admin: User = Depends(require_admin),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Remove a book from the catalog."""
    await store.delete_book(book_id)
    return MessageResponse(message="Book removed")
