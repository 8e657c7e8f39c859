from cardkeeper.services.allocation_engine import AllocationEngine
from cardkeeper.services.card_lookup import CardMetadata, ScryfallCardLookup
from cardkeeper.services.collection_store import CollectionStore
from cardkeeper.services.container_stores import BinderStore, DeckStore
from cardkeeper.services.inventory import InventoryService
from cardkeeper.services.stats import calculate_stats, empty_stats

__all__ = [
    "AllocationEngine",
    "BinderStore",
    "CardMetadata",
    "CollectionStore",
    "DeckStore",
    "InventoryService",
    "ScryfallCardLookup",
    "calculate_stats",
    "empty_stats",
]
