"""
Display views of container ledgers.

A hydrated card is either a claim on owned stock or a wishlist need. The two
are separate types tagged by ``is_wishlist`` instead of one record with
optional fields.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from cardkeeper.models.card import CardCondition


@dataclass
class HydratedDeckCard:
    """A container's claim on owned collection copies."""

    card_id: str
    scryfall_id: str
    name: str
    edition: str
    condition: CardCondition
    foil: bool
    price: float
    image: str
    allocated_quantity: int
    is_in_sideboard: bool
    added_at: datetime
    available_in_collection: int
    total_in_collection: int
    language: str = "en"
    notes: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None
    is_wishlist: Literal[False] = False


@dataclass
class HydratedWishlistCard:
    """
    A container's need for copies not owned yet.

    ``card_id`` points at the wishlist Card backing the need; it is None for
    legacy wishlist items stored on the deck itself.
    """

    scryfall_id: str
    name: str
    edition: str
    condition: CardCondition
    foil: bool
    price: float
    image: str
    requested_quantity: int
    is_in_sideboard: bool
    added_at: datetime
    card_id: str | None = None
    notes: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None
    is_wishlist: Literal[True] = True


HydratedCard = HydratedDeckCard | HydratedWishlistCard


def quantity_of(card: HydratedCard) -> int:
    """Copies shown for a hydrated card, whichever variant it is."""
    if card.is_wishlist:
        return card.requested_quantity
    return card.allocated_quantity
