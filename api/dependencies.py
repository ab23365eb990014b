"""
FastAPI dependencies for the catalog store and the recommendation engine.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status

from catalog.database import CatalogStore
from recommender.engine import RecommendationEngine

# Set by the application lifespan
catalog_store: Optional[CatalogStore] = None


def set_catalog_store(store: Optional[CatalogStore]) -> None:
    global catalog_store
    catalog_store = store


def get_catalog_store() -> CatalogStore:
    """Return the connected catalog store."""
    if catalog_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available"
        )
    return catalog_store


def get_recommendation_engine(store: CatalogStore = Depends(get_catalog_store)) -> RecommendationEngine:
    """Engine bound to the store for the current request."""
    return RecommendationEngine(store)
