"""
Community activity feed endpoint.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.auth import get_current_user_id
from api.dependencies import get_catalog_store
from catalog.database import CatalogStore
from catalog.models import Activity

router = APIRouter(prefix="/api/activities", tags=["Activities"])


@router.get("", response_model=List[Activity])
async def get_activities(
    user_id: str = Depends(get_current_user_id),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Get the 20 most recent shelf updates and reviews."""
    return await store.get_activities()
