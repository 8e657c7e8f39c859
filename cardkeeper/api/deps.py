"""
Shared endpoint dependencies.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cardkeeper.config import settings
from cardkeeper.db.database import get_session
from cardkeeper.db.store import SqlInventoryStore
from cardkeeper.services.card_lookup import ScryfallCardLookup
from cardkeeper.services.inventory import InventoryService


@lru_cache(maxsize=1)
def get_card_lookup() -> ScryfallCardLookup:
    """Process-wide lookup client so its cache is shared across requests."""
    return ScryfallCardLookup()


async def get_inventory(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> InventoryService:
    """Load the path user's inventory for the duration of one request."""
    lookup = get_card_lookup() if settings.enrich_missing_metadata else None
    return await InventoryService.load(SqlInventoryStore(session), user_id, lookup)


Inventory = Annotated[InventoryService, Depends(get_inventory)]
