"""Items API endpoints (read-only)."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from feedrelay.api.v1.dependencies import get_store
from feedrelay.models import ItemStatus
from feedrelay.schemas.item import ItemListResponse, ItemResponse
from feedrelay.services.item_store import ItemStore

router = APIRouter()


@router.get("", response_model=ItemListResponse)
async def list_items(
    item_status: ItemStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    store: ItemStore = Depends(get_store),
) -> ItemListResponse:
    """List items newest first, optionally filtered by status."""
    items = await store.list_items(status=item_status, limit=limit, offset=offset)
    if item_status is not None:
        total = await store.count_by_status(item_status)
    else:
        total = sum((await store.count_all_statuses()).values())
    return ItemListResponse(
        items=[ItemResponse.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/lookup", response_model=ItemResponse)
async def get_item(
    identity: str = Query(..., min_length=1, description="Item URL"),
    store: ItemStore = Depends(get_store),
) -> ItemResponse:
    """Get one item by its URL."""
    item = await store.get_by_identity(identity)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {identity} not found",
        )
    return ItemResponse.model_validate(item)
