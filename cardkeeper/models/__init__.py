from cardkeeper.models.card import (
    Card,
    CardCondition,
    CardData,
    CardStatus,
    IdentityKey,
    utcnow,
)
from cardkeeper.models.container import (
    Allocation,
    Binder,
    Container,
    ContainerKind,
    ContainerStats,
    Deck,
    DeckFormat,
    WishlistItem,
)
from cardkeeper.models.failure import (
    CapacityExceededError,
    FailureDetail,
    FailureKind,
    KnownError,
    PersistenceError,
)
from cardkeeper.models.hydrated import (
    HydratedCard,
    HydratedDeckCard,
    HydratedWishlistCard,
    quantity_of,
)
from cardkeeper.models.inventory import InventoryContext
from cardkeeper.models.results import (
    AllocationResult,
    LedgerUpdateResult,
    MutationOutcome,
    ReconciliationResult,
)

__all__ = [
    "Allocation",
    "AllocationResult",
    "Binder",
    "CapacityExceededError",
    "Card",
    "CardCondition",
    "CardData",
    "CardStatus",
    "Container",
    "ContainerKind",
    "ContainerStats",
    "Deck",
    "DeckFormat",
    "FailureDetail",
    "FailureKind",
    "HydratedCard",
    "HydratedDeckCard",
    "HydratedWishlistCard",
    "IdentityKey",
    "InventoryContext",
    "KnownError",
    "LedgerUpdateResult",
    "MutationOutcome",
    "PersistenceError",
    "ReconciliationResult",
    "WishlistItem",
    "quantity_of",
    "utcnow",
]
