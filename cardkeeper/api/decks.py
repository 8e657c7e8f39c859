"""
Deck API endpoints.

Deck CRUD and allocation of collection cards to decks. Claims beyond the
free copies of a card are added to the wishlist instead of failing.
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
from cardkeeper.config import DEFAULT_CONTAINER_NAME_MAX
from cardkeeper.models.card import CardCondition
from cardkeeper.models.container import Deck, DeckFormat, WishlistItem
from cardkeeper.services.inventory import InventoryService

router = APIRouter(prefix="/users/{user_id}/decks", tags=["decks"])


class DeckCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=DEFAULT_CONTAINER_NAME_MAX)
    format: DeckFormat = DeckFormat.CUSTOM
    description: str = ""
    colors: list[str] = Field(default_factory=list)
    commander: str | None = Field(
        default=None,
        description="Commander name(s), slash-delimited for partners",
        examples=["Tymna the Weaver / Thrasios, Triton Hero"],
    )


class DeckUpdateRequest(BaseModel):
    """Request model for editing deck details. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=DEFAULT_CONTAINER_NAME_MAX)
    format: DeckFormat | None = None
    description: str | None = None
    colors: list[str] | None = None
    commander: str | None = None
    thumbnail: str | None = None
    is_public: bool | None = None


class WishlistItemResponse(BaseModel):
    scryfall_id: str
    name: str
    edition: str
    quantity: int
    condition: CardCondition
    foil: bool
    is_in_sideboard: bool
    price: float
    image: str
    notes: str | None = None
    added_at: datetime


class DeckResponse(BaseModel):
    """Response model for a single deck."""

    id: str
    name: str
    description: str
    format: DeckFormat
    colors: list[str] = Field(default_factory=list)
    commander: str | None = None
    thumbnail: str = ""
    is_public: bool = False
    stats: StatsResponse
    allocations: list[AllocationRowResponse] = Field(default_factory=list)
    wishlist: list[WishlistItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DeckDetailResponse(DeckResponse):
    """A deck with its cards hydrated for display."""

    mainboard: list[HydratedCardResponse] = Field(default_factory=list)
    sideboard: list[HydratedCardResponse] = Field(default_factory=list)


class DeckListResponse(BaseModel):
    decks: list[DeckResponse]
    count: int


class DeleteResponse(BaseModel):
    deck_id: str
    deleted: bool


class AllocateRequest(BaseModel):
    card_id: str
    quantity: int = Field(..., ge=1)
    is_in_sideboard: bool = False
    notes: str | None = None


class ResizeRequest(BaseModel):
    quantity: int = Field(..., ge=0, description="New quantity; 0 removes the allocation")
    is_in_sideboard: bool = False


class WishlistItemRequest(BaseModel):
    """A wanted card not yet in the collection."""

    scryfall_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    edition: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    condition: CardCondition = CardCondition.NEAR_MINT
    foil: bool = False
    is_in_sideboard: bool = False
    price: float = Field(default=0.0, ge=0)
    image: str = ""
    notes: str | None = None


def deck_to_response(deck: Deck) -> DeckResponse:
    return DeckResponse(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        format=deck.format,
        colors=list(deck.colors),
        commander=deck.commander,
        thumbnail=deck.thumbnail,
        is_public=deck.is_public,
        stats=StatsResponse.model_validate(deck.stats),
        allocations=[AllocationRowResponse.model_validate(a) for a in deck.allocations],
        wishlist=[
            WishlistItemResponse(
                scryfall_id=w.scryfall_id,
                name=w.name,
                edition=w.edition,
                quantity=w.quantity,
                condition=w.condition,
                foil=w.foil,
                is_in_sideboard=w.is_in_sideboard,
                price=w.price,
                image=w.image,
                notes=w.notes,
                added_at=w.added_at,
            )
            for w in deck.wishlist
        ],
        created_at=deck.created_at,
        updated_at=deck.updated_at,
    )


def _require_deck(inventory: InventoryService, deck_id: str) -> Deck:
    deck = inventory.decks.get_deck(deck_id)
    if deck is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deck not found")
    return deck


@router.post("", response_model=DeckResponse, status_code=status.HTTP_201_CREATED)
async def create_deck(request: DeckCreateRequest, inventory: Inventory) -> DeckResponse:
    deck = await inventory.decks.create_deck(
        name=request.name,
        format=request.format,
        description=request.description,
        colors=request.colors,
        commander=request.commander,
    )
    return deck_to_response(deck)


@router.get("", response_model=DeckListResponse)
async def list_decks(inventory: Inventory) -> DeckListResponse:
    decks = [deck_to_response(d) for d in inventory.decks.decks]
    return DeckListResponse(decks=decks, count=inventory.decks.total_decks())


@router.get("/{deck_id}", response_model=DeckDetailResponse)
async def get_deck(deck_id: str, inventory: Inventory) -> DeckDetailResponse:
    """
    Get a deck with its cards split into mainboard and sideboard.

    Owned claims and wishlist needs are both listed; ``is_wishlist`` tells
    them apart.
    """
    deck = _require_deck(inventory, deck_id)
    cards = await inventory.decks.hydrate_with_metadata(deck)

    return DeckDetailResponse(
        **deck_to_response(deck).model_dump(),
        mainboard=[hydrated_to_response(c) for c in cards if not c.is_in_sideboard],
        sideboard=[hydrated_to_response(c) for c in cards if c.is_in_sideboard],
    )


@router.patch("/{deck_id}", response_model=DeckResponse)
async def update_deck(
    deck_id: str, request: DeckUpdateRequest, inventory: Inventory
) -> DeckResponse:
    _require_deck(inventory, deck_id)
    updates = request.model_dump(exclude_unset=True, exclude_none=True)

    deck = await inventory.decks.update_deck(deck_id, **updates)
    if deck is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deck not found")
    return deck_to_response(deck)


@router.delete("/{deck_id}", response_model=DeleteResponse)
async def delete_deck(deck_id: str, inventory: Inventory) -> DeleteResponse:
    """Delete a deck. Its cards stay in the collection."""
    deleted = await inventory.decks.delete_deck(deck_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deck not found")
    return DeleteResponse(deck_id=deck_id, deleted=True)


@router.post("/{deck_id}/allocations", response_model=AllocationResponse)
async def allocate_card(
    deck_id: str, request: AllocateRequest, inventory: Inventory
) -> AllocationResponse:
    """
    Claim copies of a collection card for the deck.

    Copies that are not free are added to the wishlist; ``wishlisted`` says
    how many.
    """
    _require_deck(inventory, deck_id)
    if inventory.collection.get_card_by_id(request.card_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")

    result = await inventory.decks.allocate(
        deck_id,
        request.card_id,
        request.quantity,
        is_in_sideboard=request.is_in_sideboard,
        notes=request.notes,
    )
    return AllocationResponse.from_result(result)


@router.put("/{deck_id}/allocations/{card_id}", response_model=LedgerUpdateResponse)
async def resize_allocation(
    deck_id: str, card_id: str, request: ResizeRequest, inventory: Inventory
) -> LedgerUpdateResponse:
    """Set an allocation to an exact quantity. Rejected with 409 if not enough copies are free."""
    deck = _require_deck(inventory, deck_id)
    if deck.find_allocation(card_id, request.is_in_sideboard) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found")

    result = await inventory.decks.update_allocation(
        deck_id, card_id, request.quantity, is_in_sideboard=request.is_in_sideboard
    )
    return LedgerUpdateResponse.from_result(result)


@router.delete("/{deck_id}/allocations/{card_id}", response_model=LedgerUpdateResponse)
async def deallocate_card(
    deck_id: str,
    card_id: str,
    inventory: Inventory,
    is_in_sideboard: bool = False,
) -> LedgerUpdateResponse:
    """Release a deck's claim on a card. The card stays in the collection."""
    deck = _require_deck(inventory, deck_id)
    if deck.find_allocation(card_id, is_in_sideboard) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found")

    result = await inventory.decks.deallocate(deck_id, card_id, is_in_sideboard)
    return LedgerUpdateResponse.from_result(result)


@router.post("/{deck_id}/wishlist", response_model=LedgerUpdateResponse)
async def add_wishlist_item(
    deck_id: str, request: WishlistItemRequest, inventory: Inventory
) -> LedgerUpdateResponse:
    _require_deck(inventory, deck_id)
    item = WishlistItem(**request.model_dump())
    result = await inventory.decks.add_to_wishlist(deck_id, item)
    return LedgerUpdateResponse.from_result(result)


@router.delete("/{deck_id}/wishlist", response_model=LedgerUpdateResponse)
async def remove_wishlist_item(
    deck_id: str,
    scryfall_id: str,
    edition: str,
    inventory: Inventory,
    condition: CardCondition = CardCondition.NEAR_MINT,
    foil: bool = False,
    is_in_sideboard: bool = False,
) -> LedgerUpdateResponse:
    _require_deck(inventory, deck_id)
    result = await inventory.decks.remove_from_wishlist(
        deck_id, scryfall_id, edition, condition, foil, is_in_sideboard
    )
    if not result.changed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Wishlist item not found"
        )
    return LedgerUpdateResponse.from_result(result)
