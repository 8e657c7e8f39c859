"""
Collection API endpoints.

CRUD and bulk import for a user's cards. Lowering a card's quantity or
deleting cards converts the container claims that are no longer covered
into wishlist claims.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from cardkeeper.api.deps import Inventory
from cardkeeper.api.schemas import CardResponse, ReconciliationResponse
from cardkeeper.config import MAX_IMPORT_CARDS
from cardkeeper.models.card import CardCondition, CardData, CardStatus
from cardkeeper.models.container import ContainerKind
from cardkeeper.models.results import ReconciliationResult
from cardkeeper.services.allocation_summary import (
    ContainerAllocation,
    card_allocation_summary,
    check_quantity_reduction,
)

router = APIRouter(prefix="/users/{user_id}/cards", tags=["collection"])


class CardCreateRequest(BaseModel):
    """Request model for adding a card to the collection."""

    scryfall_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    edition: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    condition: CardCondition = CardCondition.NEAR_MINT
    foil: bool = False
    status: CardStatus = CardStatus.COLLECTION
    price: float = Field(default=0.0, ge=0)
    image: str = ""
    language: str = "en"
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None


class CardImportRequest(BaseModel):
    """A batch of cards to add, each as a new collection entry."""

    cards: list[CardCreateRequest] = Field(..., min_length=1, max_length=MAX_IMPORT_CARDS)


class CardUpdateRequest(BaseModel):
    """
    Request model for editing a card. Omitted fields are left unchanged.

    A lower quantity converts claims the card can no longer cover into
    wishlist claims before the card is saved.
    """

    quantity: int | None = Field(default=None, ge=0)
    name: str | None = None
    edition: str | None = None
    condition: CardCondition | None = None
    foil: bool | None = None
    status: CardStatus | None = None
    price: float | None = Field(default=None, ge=0)
    image: str | None = None
    language: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None


class CardUpdateResponse(BaseModel):
    card: CardResponse
    reconciliation: ReconciliationResponse


class CardDeleteResponse(BaseModel):
    card_id: str
    deleted: bool
    reconciliation: ReconciliationResponse


class CollectionClearedResponse(BaseModel):
    deleted: int
    reconciliations: list[ReconciliationResponse] = Field(
        default_factory=list,
        description="One entry per deleted card that decks or binders still claimed",
    )


class ClaimResponse(BaseModel):
    """One container's claim on a card."""

    container_id: str
    container_name: str
    kind: ContainerKind
    quantity: int
    is_in_sideboard: bool = False


class AllocationSummaryResponse(BaseModel):
    card: CardResponse
    owned: int
    allocated: int
    available: int
    allocations: list[ClaimResponse] = Field(default_factory=list)


class QuantityReductionResponse(BaseModel):
    """Preview of lowering a card's quantity."""

    card_id: str
    new_quantity: int
    can_reduce: bool
    current_allocated: int
    excess_amount: int
    affected: list[ClaimResponse] = Field(default_factory=list)


def _card_data(request: CardCreateRequest) -> CardData:
    return CardData(
        scryfall_id=request.scryfall_id,
        name=request.name,
        edition=request.edition,
        condition=request.condition,
        foil=request.foil,
        price=request.price,
        image=request.image,
        language=request.language,
        mana_value=request.mana_value,
        type_line=request.type_line,
        colors=request.colors,
    )


def _claims(allocations: list[ContainerAllocation]) -> list[ClaimResponse]:
    return [
        ClaimResponse(
            container_id=a.container_id,
            container_name=a.container_name,
            kind=a.kind,
            quantity=a.quantity,
            is_in_sideboard=a.is_in_sideboard,
        )
        for a in allocations
    ]


@router.get("", response_model=list[CardResponse])
async def list_user_cards(
    inventory: Inventory,
    card_status: CardStatus | None = None,
) -> list[CardResponse]:
    """List a user's cards, optionally only those with one status."""
    cards = inventory.collection.cards
    if card_status is not None:
        cards = [c for c in cards if c.status == card_status]
    return [CardResponse.model_validate(c) for c in cards]


@router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
async def add_user_card(request: CardCreateRequest, inventory: Inventory) -> CardResponse:
    card = await inventory.collection.add_card(
        _card_data(request), request.quantity, request.status
    )
    return CardResponse.model_validate(card)


@router.post("/import", response_model=list[CardResponse], status_code=status.HTTP_201_CREATED)
async def import_user_cards(
    request: CardImportRequest, inventory: Inventory
) -> list[CardResponse]:
    """Bulk add cards, for example from a parsed deck list or CSV export."""
    cards = await inventory.collection.import_cards(
        (_card_data(c), c.quantity, c.status) for c in request.cards
    )
    return [CardResponse.model_validate(c) for c in cards]


@router.delete("", response_model=CollectionClearedResponse)
async def delete_all_user_cards(inventory: Inventory) -> CollectionClearedResponse:
    """
    Delete every card in the collection.

    Decks and binders keep their shape: each claim on a deleted card is
    moved to a wishlist card.
    """
    removed, reconciliations = await inventory.delete_all_cards()
    return CollectionClearedResponse(
        deleted=len(removed),
        reconciliations=[
            ReconciliationResponse.from_result(r) for r in reconciliations if r.excess
        ],
    )


@router.get("/{card_id}", response_model=CardResponse)
async def get_user_card(card_id: str, inventory: Inventory) -> CardResponse:
    card = inventory.collection.get_card_by_id(card_id)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return CardResponse.model_validate(card)


@router.patch("/{card_id}", response_model=CardUpdateResponse)
async def update_user_card(
    card_id: str,
    request: CardUpdateRequest,
    inventory: Inventory,
) -> CardUpdateResponse:
    """
    Edit a card.

    If the new quantity no longer covers what decks and binders claim, the
    deficit is moved to a wishlist card and reported in ``reconciliation``.
    """
    card = inventory.collection.get_card_by_id(card_id)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")

    # Reconcile against the card as it was: a status change in the same
    # request must not hide claims the new quantity can no longer cover.
    if request.quantity is not None and request.quantity != card.quantity:
        updated, reconciliation = await inventory.set_card_quantity(card_id, request.quantity)
        card = updated or card
    else:
        reconciliation = ReconciliationResult(card_id=card_id)

    updates = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"quantity"})
    if updates:
        card = await inventory.collection.update_card(card_id, **updates) or card

    return CardUpdateResponse(
        card=CardResponse.model_validate(card),
        reconciliation=ReconciliationResponse.from_result(reconciliation),
    )


@router.delete("/{card_id}", response_model=CardDeleteResponse)
async def delete_user_card(card_id: str, inventory: Inventory) -> CardDeleteResponse:
    """
    Delete a card.

    Every claim on it is repointed at a wishlist card so decks and binders
    keep their shape.
    """
    removed, reconciliation = await inventory.delete_card(card_id)
    if removed is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")

    return CardDeleteResponse(
        card_id=card_id,
        deleted=True,
        reconciliation=ReconciliationResponse.from_result(reconciliation),
    )


@router.get("/{card_id}/allocations", response_model=AllocationSummaryResponse)
async def get_card_allocations(card_id: str, inventory: Inventory) -> AllocationSummaryResponse:
    """Which decks and binders claim a card, and how many copies are free."""
    summary = card_allocation_summary(inventory.context, card_id)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")

    return AllocationSummaryResponse(
        card=CardResponse.model_validate(summary.card),
        owned=summary.owned,
        allocated=summary.allocated,
        available=summary.available,
        allocations=_claims(summary.allocations),
    )


@router.get("/{card_id}/reduction-check", response_model=QuantityReductionResponse)
async def check_card_reduction(
    card_id: str,
    new_quantity: int,
    inventory: Inventory,
) -> QuantityReductionResponse:
    """Preview which claims a lower quantity would move to the wishlist."""
    if inventory.collection.get_card_by_id(card_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    if new_quantity < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quantity must not be negative",
        )

    check = check_quantity_reduction(inventory.context, card_id, new_quantity)
    return QuantityReductionResponse(
        card_id=card_id,
        new_quantity=new_quantity,
        can_reduce=check.can_reduce,
        current_allocated=check.current_allocated,
        excess_amount=check.excess_amount,
        affected=_claims(check.affected),
    )
