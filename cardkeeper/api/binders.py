"""
Binder API endpoints.

Binders claim collection cards for display, trade or sale. They share the
claim pool with decks and have no sideboard.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from cardkeeper.api.deps import Inventory
from cardkeeper.api.schemas import (
    AllocationResponse,
    AllocationRowResponse,
    HydratedCardResponse,
    LedgerUpdateResponse,
    StatsResponse,
    hydrated_to_response,
)
from cardkeeper.config import DEFAULT_CONTAINER_NAME_MAX, MAX_BULK_ALLOCATION_ITEMS
from cardkeeper.models.container import Binder
from cardkeeper.services.inventory import InventoryService

router = APIRouter(prefix="/users/{user_id}/binders", tags=["binders"])


class BinderCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=DEFAULT_CONTAINER_NAME_MAX)
    description: str = ""
    is_public: bool = True
    for_sale: bool = True


class BinderUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=DEFAULT_CONTAINER_NAME_MAX)
    description: str | None = None
    thumbnail: str | None = None
    is_public: bool | None = None
    for_sale: bool | None = None


class BinderResponse(BaseModel):
    id: str
    name: str
    description: str
    thumbnail: str = ""
    is_public: bool
    for_sale: bool
    stats: StatsResponse
    allocations: list[AllocationRowResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class BinderDetailResponse(BinderResponse):
    cards: list[HydratedCardResponse] = Field(default_factory=list)


class BinderListResponse(BaseModel):
    binders: list[BinderResponse]
    count: int


class DeleteResponse(BaseModel):
    binder_id: str
    deleted: bool


class AllocateRequest(BaseModel):
    card_id: str
    quantity: int = Field(..., ge=1)
    notes: str | None = None


class BulkAllocateItem(BaseModel):
    card_id: str
    quantity: int = Field(..., ge=1)


class BulkAllocateRequest(BaseModel):
    """Cards to claim; each is capped at its free copies, nothing is wishlisted."""

    items: list[BulkAllocateItem] = Field(..., min_length=1, max_length=MAX_BULK_ALLOCATION_ITEMS)


class BulkDeallocateRequest(BaseModel):
    card_ids: list[str] = Field(..., min_length=1)


class ResizeRequest(BaseModel):
    quantity: int = Field(..., ge=0, description="New quantity; 0 removes the allocation")


def binder_to_response(binder: Binder) -> BinderResponse:
    return BinderResponse(
        id=binder.id,
        name=binder.name,
        description=binder.description,
        thumbnail=binder.thumbnail,
        is_public=binder.is_public,
        for_sale=binder.for_sale,
        stats=StatsResponse.model_validate(binder.stats),
        allocations=[AllocationRowResponse.model_validate(a) for a in binder.allocations],
        created_at=binder.created_at,
        updated_at=binder.updated_at,
    )


def _require_binder(inventory: InventoryService, binder_id: str) -> Binder:
    binder = inventory.binders.get_binder(binder_id)
    if binder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Binder not found")
    return binder


@router.post("", response_model=BinderResponse, status_code=status.HTTP_201_CREATED)
async def create_binder(request: BinderCreateRequest, inventory: Inventory) -> BinderResponse:
    binder = await inventory.binders.create_binder(
        name=request.name,
        description=request.description,
        is_public=request.is_public,
        for_sale=request.for_sale,
    )
    return binder_to_response(binder)


@router.get("", response_model=BinderListResponse)
async def list_binders(inventory: Inventory) -> BinderListResponse:
    binders = [binder_to_response(b) for b in inventory.binders.binders]
    return BinderListResponse(binders=binders, count=len(binders))


@router.get("/{binder_id}", response_model=BinderDetailResponse)
async def get_binder(binder_id: str, inventory: Inventory) -> BinderDetailResponse:
    binder = _require_binder(inventory, binder_id)
    cards = await inventory.binders.hydrate_with_metadata(binder)
    return BinderDetailResponse(
        **binder_to_response(binder).model_dump(),
        cards=[hydrated_to_response(c) for c in cards],
    )


@router.patch("/{binder_id}", response_model=BinderResponse)
async def update_binder(
    binder_id: str, request: BinderUpdateRequest, inventory: Inventory
) -> BinderResponse:
    _require_binder(inventory, binder_id)
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    binder = await inventory.binders.update_binder(binder_id, **updates)
    if binder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Binder not found")
    return binder_to_response(binder)


@router.delete("/{binder_id}", response_model=DeleteResponse)
async def delete_binder(binder_id: str, inventory: Inventory) -> DeleteResponse:
    """Delete a binder. Its cards stay in the collection."""
    deleted = await inventory.binders.delete_binder(binder_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Binder not found")
    return DeleteResponse(binder_id=binder_id, deleted=True)


@router.post("/{binder_id}/allocations", response_model=AllocationResponse)
async def allocate_card(
    binder_id: str, request: AllocateRequest, inventory: Inventory
) -> AllocationResponse:
    _require_binder(inventory, binder_id)
    if inventory.collection.get_card_by_id(request.card_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")

    result = await inventory.binders.allocate(
        binder_id, request.card_id, request.quantity, notes=request.notes
    )
    return AllocationResponse.from_result(result)


@router.post("/{binder_id}/allocations/bulk", response_model=LedgerUpdateResponse)
async def bulk_allocate(
    binder_id: str, request: BulkAllocateRequest, inventory: Inventory
) -> LedgerUpdateResponse:
    """
    Claim free copies of many cards with one write.

    ``quantity`` in the response is the total number of copies claimed.
    """
    _require_binder(inventory, binder_id)
    result = await inventory.binders.bulk_allocate(
        binder_id, [(item.card_id, item.quantity) for item in request.items]
    )
    return LedgerUpdateResponse.from_result(result)


@router.post("/{binder_id}/allocations/bulk-remove", response_model=LedgerUpdateResponse)
async def bulk_deallocate(
    binder_id: str, request: BulkDeallocateRequest, inventory: Inventory
) -> LedgerUpdateResponse:
    """``quantity`` in the response is the number of allocation rows removed."""
    _require_binder(inventory, binder_id)
    result = await inventory.binders.bulk_deallocate(binder_id, request.card_ids)
    return LedgerUpdateResponse.from_result(result)


@router.put("/{binder_id}/allocations/{card_id}", response_model=LedgerUpdateResponse)
async def resize_allocation(
    binder_id: str, card_id: str, request: ResizeRequest, inventory: Inventory
) -> LedgerUpdateResponse:
    binder = _require_binder(inventory, binder_id)
    if binder.find_allocation(card_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found")

    result = await inventory.binders.update_allocation(binder_id, card_id, request.quantity)
    return LedgerUpdateResponse.from_result(result)


@router.delete("/{binder_id}/allocations/{card_id}", response_model=LedgerUpdateResponse)
async def deallocate_card(
    binder_id: str, card_id: str, inventory: Inventory
) -> LedgerUpdateResponse:
    binder = _require_binder(inventory, binder_id)
    if binder.find_allocation(card_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found")

    result = await inventory.binders.deallocate(binder_id, card_id)
    return LedgerUpdateResponse.from_result(result)
