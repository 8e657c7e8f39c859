"""
Response models shared by the collection, deck and binder endpoints.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cardkeeper.models.card import CardCondition, CardStatus
from cardkeeper.models.hydrated import HydratedCard
from cardkeeper.models.results import (
    AllocationResult,
    LedgerUpdateResult,
    MutationOutcome,
    ReconciliationResult,
)


class CardResponse(BaseModel):
    """A collection card."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    scryfall_id: str
    name: str
    edition: str
    quantity: int
    condition: CardCondition
    foil: bool
    status: CardStatus
    price: float
    image: str
    language: str
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_cards: int = 0
    sideboard_cards: int = 0
    owned_cards: int = 0
    wishlist_cards: int = 0
    avg_price: float = 0.0
    total_price: float = 0.0
    completion_percentage: float = 100.0


class AllocationRowResponse(BaseModel):
    """One ledger row of a container."""

    model_config = ConfigDict(from_attributes=True)

    card_id: str
    quantity: int
    is_in_sideboard: bool = False
    notes: str | None = None
    added_at: datetime


class HydratedDeckCardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_wishlist: Literal[False] = False
    card_id: str
    scryfall_id: str
    name: str
    edition: str
    condition: CardCondition
    foil: bool
    price: float
    image: str
    language: str
    allocated_quantity: int
    is_in_sideboard: bool
    available_in_collection: int
    total_in_collection: int
    notes: str | None = None
    added_at: datetime
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None


class HydratedWishlistCardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_wishlist: Literal[True] = True
    card_id: str | None = None
    scryfall_id: str
    name: str
    edition: str
    condition: CardCondition
    foil: bool
    price: float
    image: str
    requested_quantity: int
    is_in_sideboard: bool
    notes: str | None = None
    added_at: datetime
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None


HydratedCardResponse = HydratedDeckCardResponse | HydratedWishlistCardResponse


def hydrated_to_response(card: HydratedCard) -> HydratedCardResponse:
    if card.is_wishlist:
        return HydratedWishlistCardResponse.model_validate(card)
    return HydratedDeckCardResponse.model_validate(card)


class AllocationResponse(BaseModel):
    """Outcome of claiming copies for a container."""

    allocated: int
    wishlisted: int
    wishlist_card_id: str | None = None
    outcome: MutationOutcome
    message: str = Field(
        default="",
        description="Informational note when part of the request was wishlisted",
    )

    @classmethod
    def from_result(cls, result: AllocationResult) -> "AllocationResponse":
        message = ""
        if result.has_shortfall:
            message = (
                f"{result.allocated} copies claimed from your collection, "
                f"{result.wishlisted} added to your wishlist."
            )
        return cls(
            allocated=result.allocated,
            wishlisted=result.wishlisted,
            wishlist_card_id=result.wishlist_card_id,
            outcome=result.outcome,
            message=message,
        )


class LedgerUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    container_id: str | None = None
    quantity: int = 0
    outcome: MutationOutcome

    @classmethod
    def from_result(cls, result: LedgerUpdateResult) -> "LedgerUpdateResponse":
        return cls.model_validate(result)


class ReconciliationResponse(BaseModel):
    """Claims moved to the wishlist after a card shrank or was deleted."""

    card_id: str
    excess: int = 0
    converted: int = 0
    wishlist_card_id: str | None = None
    persisted_ids: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(
        default_factory=dict,
        description="Containers whose update was not saved, with the error message",
    )
    outcome: MutationOutcome

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "ReconciliationResponse":
        return cls(
            card_id=result.card_id,
            excess=result.excess,
            converted=result.converted,
            wishlist_card_id=result.wishlist_card_id,
            persisted_ids=list(result.persisted_ids),
            failed=dict(result.failed),
            outcome=result.outcome,
        )
