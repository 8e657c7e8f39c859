"""
Inventory service - one user's inventory, wired together.

Loads the user's cards, decks and binders into an InventoryContext and
builds the collection store, allocation engine and container stores on top
of it. Also hosts the user-initiated collection edits that must reconcile
container claims: lowering a card's quantity and deleting one or all cards.
"""

import logging

from cardkeeper.db.store import InventoryStore, load_inventory
from cardkeeper.models.card import Card
from cardkeeper.models.failure import PersistenceError
from cardkeeper.models.inventory import InventoryContext
from cardkeeper.models.results import ReconciliationResult
from cardkeeper.services.allocation_engine import AllocationEngine
from cardkeeper.services.card_lookup import CardLookup
from cardkeeper.services.collection_store import CollectionStore
from cardkeeper.services.container_stores import BinderStore, DeckStore

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(
        self,
        context: InventoryContext,
        store: InventoryStore,
        lookup: CardLookup | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.collection = CollectionStore(context, store)
        self.engine = AllocationEngine(context, store, self.collection)
        self.decks = DeckStore(context, store, self.engine, lookup)
        self.binders = BinderStore(context, store, self.engine, lookup)

    @classmethod
    async def load(
        cls,
        store: InventoryStore,
        user_id: str,
        lookup: CardLookup | None = None,
    ) -> "InventoryService":
        context = await load_inventory(store, user_id)
        logger.debug(
            "Loaded inventory for %s: %d cards, %d decks, %d binders",
            user_id,
            len(context.cards),
            len(context.decks),
            len(context.binders),
        )
        return cls(context, store, lookup)

    async def set_card_quantity(
        self, card_id: str, new_quantity: int
    ) -> tuple[Card | None, ReconciliationResult]:
        """
        Change how many copies of a card are owned.

        Claims the new quantity cannot cover are converted to wishlist claims
        before the card is written, so the conservation invariant holds once
        both steps complete.

        Returns:
            (updated card or None if missing, reconciliation result)

        Raises:
            ValueError: If new_quantity is negative
        """
        if new_quantity < 0:
            raise ValueError(f"Quantity must not be negative, got {new_quantity}")

        card = self.collection.get_card_by_id(card_id)
        if card is None:
            return None, ReconciliationResult(card_id=card_id)

        reconciliation = ReconciliationResult(card_id=card_id)
        if new_quantity < card.quantity:
            reconciliation = await self.engine.reduce_allocations_for_card(card_id, new_quantity)

        updated = await self.collection.update_card(card_id, quantity=new_quantity)
        return updated, reconciliation

    async def delete_card(self, card_id: str) -> tuple[Card | None, ReconciliationResult]:
        """
        Delete a card, repointing every claim on it at a wishlist card.

        Returns:
            (removed card or None if missing, reconciliation result)
        """
        card = await self.collection.remove_card(card_id)
        if card is None:
            return None, ReconciliationResult(card_id=card_id)

        reconciliation = await self.engine.convert_allocations_to_wishlist(card)
        return card, reconciliation

    async def delete_all_cards(self) -> tuple[list[Card], list[ReconciliationResult]]:
        """
        Empty the collection, repointing every claim at wishlist cards.

        All cards leave the snapshot before any claim is converted, so the
        wishlist cards created here are the only cards left afterwards.
        Claims are converted even when some deletes failed; the
        PersistenceError is re-raised afterwards with the reconciliation
        results as its ``result``.

        Returns:
            (removed cards, one reconciliation result per removed card)
        """
        failure: PersistenceError | None = None
        try:
            removed = await self.collection.remove_all_cards()
        except PersistenceError as e:
            failure, removed = e, e.result

        reconciliations = [
            await self.engine.convert_allocations_to_wishlist(card) for card in removed
        ]

        if failure is not None:
            failure.result = reconciliations
            raise failure
        return removed, reconciliations
