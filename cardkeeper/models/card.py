from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


def utcnow() -> datetime:
    """Timezone-aware current time used for all timestamps."""
    return datetime.now(UTC)


class CardCondition(str, Enum):
    """
    Physical condition of a card, best first.

    Mint > Near-Mint > Light-Play > Moderate-Play > Heavy-Play > Poor
    """

    MINT = "M"
    NEAR_MINT = "NM"
    LIGHT_PLAY = "LP"
    MODERATE_PLAY = "MP"
    HEAVY_PLAY = "HP"
    POOR = "PO"

    @property
    def rank(self) -> int:
        """Ordinal where higher is better (Poor=0, Mint=5)."""
        return len(_CONDITION_ORDER) - 1 - _CONDITION_ORDER.index(self)

    def is_better_than(self, other: "CardCondition") -> bool:
        return self.rank > other.rank


_CONDITION_ORDER = [
    CardCondition.MINT,
    CardCondition.NEAR_MINT,
    CardCondition.LIGHT_PLAY,
    CardCondition.MODERATE_PLAY,
    CardCondition.HEAVY_PLAY,
    CardCondition.POOR,
]


class CardStatus(str, Enum):
    """What the user is doing with a card."""

    COLLECTION = "collection"
    SALE = "sale"
    TRADE = "trade"
    WISHLIST = "wishlist"


# (scryfall_id, edition, condition, foil)
IdentityKey = tuple[str, str, CardCondition, bool]


@dataclass
class CardData:
    """
    Identity and display payload of a card kind.

    Copied into wishlist Cards created during reconciliation, so a wishlist
    twin looks exactly like the card it stands in for.
    """

    scryfall_id: str
    name: str
    edition: str
    condition: CardCondition = CardCondition.NEAR_MINT
    foil: bool = False
    price: float = 0.0
    image: str = ""
    language: str = "en"
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None

    @property
    def identity_key(self) -> IdentityKey:
        return (self.scryfall_id, self.edition, self.condition, self.foil)


@dataclass
class Card:
    """
    One kind of physical (or wanted) card in a user's collection.

    Attributes:
        id: Opaque id, stable within the user's collection
        scryfall_id: Canonical card identifier
        quantity: Copies held (or wanted, for wishlist cards); never negative
        status: collection, sale, trade or wishlist. Wishlist cards are
            created and resized by the allocation engine only.
    """

    id: str
    user_id: str
    scryfall_id: str
    name: str
    edition: str
    quantity: int = 0
    condition: CardCondition = CardCondition.NEAR_MINT
    foil: bool = False
    status: CardStatus = CardStatus.COLLECTION
    price: float = 0.0
    image: str = ""
    language: str = "en"
    mana_value: float | None = None
    type_line: str | None = None
    colors: list[str] | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Card '{self.name}' has invalid quantity {self.quantity}")

    @property
    def is_wishlist(self) -> bool:
        return self.status == CardStatus.WISHLIST

    @property
    def identity_key(self) -> IdentityKey:
        """Key used to merge wishlist requests for the same kind of card."""
        return (self.scryfall_id, self.edition, self.condition, self.foil)

    def to_card_data(self) -> CardData:
        return CardData(
            scryfall_id=self.scryfall_id,
            name=self.name,
            edition=self.edition,
            condition=self.condition,
            foil=self.foil,
            price=self.price,
            image=self.image,
            language=self.language,
            mana_value=self.mana_value,
            type_line=self.type_line,
            colors=list(self.colors) if self.colors is not None else None,
        )
