from cardkeeper.api.binders import router as binders_router
from cardkeeper.api.collection import router as collection_router
from cardkeeper.api.decks import router as decks_router
from cardkeeper.api.health import router as health_router

__all__ = [
    "binders_router",
    "collection_router",
    "decks_router",
    "health_router",
]
