from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

from cardkeeper.models.card import CardCondition, utcnow


class ContainerKind(str, Enum):
    """Kinds of containers that can claim collection cards."""

    DECK = "deck"
    BINDER = "binder"


class DeckFormat(str, Enum):
    VINTAGE = "vintage"
    MODERN = "modern"
    COMMANDER = "commander"
    STANDARD = "standard"
    CUSTOM = "custom"


@dataclass
class Allocation:
    """
    One ledger row: a container's claim on copies of a collection Card.

    The container borrows the Card by id; it never owns it. A deck holds at
    most one mainboard row and one sideboard row per card id.
    """

    card_id: str
    quantity: int
    is_in_sideboard: bool = False
    notes: str | None = None
    added_at: datetime = field(default_factory=utcnow)


@dataclass
class WishlistItem:
    """
    Legacy free-floating deck wishlist entry.

    Not backed by a collection Card. Kept so older decks still load and
    count in stats; new wishlist needs go through wishlist Cards instead.
    """

    scryfall_id: str
    name: str
    edition: str
    quantity: int
    condition: CardCondition = CardCondition.NEAR_MINT
    foil: bool = False
    is_in_sideboard: bool = False
    price: float = 0.0
    image: str = ""
    notes: str | None = None
    added_at: datetime = field(default_factory=utcnow)

    def matches(
        self,
        scryfall_id: str,
        edition: str,
        condition: CardCondition,
        foil: bool,
        is_in_sideboard: bool,
    ) -> bool:
        return (
            self.scryfall_id == scryfall_id
            and self.edition == edition
            and self.condition == condition
            and self.foil == foil
            and self.is_in_sideboard == is_in_sideboard
        )


@dataclass
class ContainerStats:
    """Denormalized aggregate counters cached on every container."""

    total_cards: int = 0
    sideboard_cards: int = 0
    owned_cards: int = 0
    wishlist_cards: int = 0
    avg_price: float = 0.0
    total_price: float = 0.0
    completion_percentage: float = 100.0


@dataclass
class Container:
    """
    A named grouping that claims quantities of collection Cards.

    Deleting a container drops its ledger only; referenced Cards stay in
    the collection.
    """

    kind: ClassVar[ContainerKind]
    supports_sideboard: ClassVar[bool] = False

    id: str
    user_id: str
    name: str
    description: str = ""
    allocations: list[Allocation] = field(default_factory=list)
    stats: ContainerStats = field(default_factory=ContainerStats)
    thumbnail: str = ""
    is_public: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def find_allocation(self, card_id: str, is_in_sideboard: bool = False) -> Allocation | None:
        """Ledger row for (card_id, sideboard flag), if any."""
        for alloc in self.allocations:
            if alloc.card_id == card_id and alloc.is_in_sideboard == is_in_sideboard:
                return alloc
        return None

    def allocations_for(self, card_id: str) -> list[Allocation]:
        """All rows of this container pointing at card_id, in ledger order."""
        return [a for a in self.allocations if a.card_id == card_id]

    def claimed_quantity(self, card_id: str) -> int:
        """Copies of card_id claimed by this container (mainboard + sideboard)."""
        return sum(a.quantity for a in self.allocations if a.card_id == card_id)

    def remove_allocation(self, card_id: str, is_in_sideboard: bool = False) -> bool:
        """Drop the matching row. Returns True if a row was removed."""
        before = len(self.allocations)
        self.allocations = [
            a
            for a in self.allocations
            if not (a.card_id == card_id and a.is_in_sideboard == is_in_sideboard)
        ]
        return len(self.allocations) < before

    def total_claimed(self) -> int:
        return sum(a.quantity for a in self.allocations)


@dataclass
class Deck(Container):
    """
    A deck. Claims are split into mainboard and sideboard rows.

    Attributes:
        format: Play format
        colors: Color identity chosen by the user
        wishlist: Legacy wishlist items (see WishlistItem)
        commander: Slash-delimited commander names for Commander decks
    """

    kind: ClassVar[ContainerKind] = ContainerKind.DECK
    supports_sideboard: ClassVar[bool] = True

    format: DeckFormat = DeckFormat.CUSTOM
    colors: list[str] = field(default_factory=list)
    wishlist: list[WishlistItem] = field(default_factory=list)
    commander: str | None = None

    def commander_names(self) -> list[str]:
        if not self.commander:
            return []
        return [name.strip() for name in self.commander.split("/") if name.strip()]


@dataclass
class Binder(Container):
    """A binder of cards for display, trade or sale. No sideboard."""

    kind: ClassVar[ContainerKind] = ContainerKind.BINDER

    is_public: bool = True
    for_sale: bool = True
