"""
Allocation engine - claims collection cards for decks and binders.

Enforces the conservation invariant across every container of a user: the
copies of a card claimed by all decks and binders together never exceed
the copies owned. Claims that cannot be met from stock become claims on a
wishlist card instead, and the same happens when stock shrinks or a card
is deleted, so a container never silently loses a card it needs.

Every mutation runs the same pipeline:

    mutate ledger -> recompute stats -> persist container

The in-memory context is changed first. If the write then fails the change
stays in place, the result is marked LOCAL and the PersistenceError is
raised to the caller, who should reload when strict consistency matters.
"""

import logging
from collections.abc import Iterable
from typing import TypeVar

from cardkeeper.db.store import InventoryStore
from cardkeeper.models.card import Card, utcnow
from cardkeeper.models.container import (
    Allocation,
    Container,
    ContainerKind,
    ContainerStats,
    Deck,
)
from cardkeeper.models.failure import CapacityExceededError, PersistenceError
from cardkeeper.models.inventory import InventoryContext
from cardkeeper.models.results import (
    AllocationResult,
    LedgerUpdateResult,
    MutationOutcome,
    ReconciliationResult,
)
from cardkeeper.services.collection_store import CollectionStore
from cardkeeper.services.stats import calculate_stats

logger = logging.getLogger(__name__)

R = TypeVar("R", AllocationResult, LedgerUpdateResult)


def add_claim(
    container: Container,
    card_id: str,
    quantity: int,
    is_in_sideboard: bool = False,
    notes: str | None = None,
) -> Allocation:
    """Grow the (card_id, sideboard) row of a container, or append a new one."""
    existing = container.find_allocation(card_id, is_in_sideboard)
    if existing is not None:
        existing.quantity += quantity
        return existing

    alloc = Allocation(
        card_id=card_id,
        quantity=quantity,
        is_in_sideboard=is_in_sideboard,
        notes=notes,
        added_at=utcnow(),
    )
    container.allocations.append(alloc)
    return alloc


class AllocationEngine:
    """
    Allocate, release and resize claims within one user's inventory.

    Decks and binders share a single claim pool per card. Allocation is
    first-come-first-served: the container named in a call gets all the
    free stock it asks for, with no fairness between containers.
    """

    def __init__(
        self,
        context: InventoryContext,
        store: InventoryStore,
        collection: CollectionStore | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.collection = collection or CollectionStore(context, store)

    # --- Queries ---

    def total_claimed(self, card_id: str) -> int:
        """Copies of a card claimed across all decks and binders."""
        return self.context.total_claimed(card_id)

    def available(self, card_id: str) -> int:
        return self.context.available_quantity(card_id)

    def recalculate_stats(self, container: Container) -> ContainerStats:
        legacy = container.wishlist if isinstance(container, Deck) else ()
        return calculate_stats(container.allocations, self.context.cards, legacy)

    # --- Pipeline ---

    async def commit(self, container: Container, result: R) -> R:
        """
        Recompute stats and write the container document.

        Call after mutating a container in memory. On a failed write the
        result is marked LOCAL, attached to the error and the error raised.
        """
        return await self._finish(container, result)

    async def _finish(
        self,
        container: Container,
        result: R,
        pending_error: PersistenceError | None = None,
    ) -> R:
        container.stats = self.recalculate_stats(container)
        container.updated_at = utcnow()

        # A failed card write means the ledger would point at a card the
        # store never saw; keep the container local too.
        if pending_error is None:
            try:
                await self.store.put_container(container)
            except PersistenceError as e:
                pending_error = e

        if pending_error is not None:
            result.outcome = MutationOutcome.LOCAL
            pending_error.result = result
            logger.error(
                "%s %s changed locally but was not saved: %s",
                container.kind.value.capitalize(),
                container.id,
                pending_error.message,
            )
            raise pending_error

        result.outcome = MutationOutcome.PERSISTED
        return result

    # --- Allocation ---

    async def allocate(
        self,
        kind: ContainerKind,
        container_id: str,
        card_id: str,
        quantity: int,
        is_in_sideboard: bool = False,
        notes: str | None = None,
    ) -> AllocationResult:
        """
        Claim ``quantity`` more copies of a card for a container.

        Free copies are claimed directly; the rest is claimed on the card's
        wishlist twin, which is created or grown as needed. The container
        then holds one row for the real card and one for the wishlist card.

        Returns:
            AllocationResult with allocated + wishlisted == quantity, or a
            zeroed NOOP result when the container or card does not exist.

        Raises:
            ValueError: If quantity is negative
            PersistenceError: If a write fails (in-memory change kept)
        """
        if quantity < 0:
            raise ValueError(f"Quantity must not be negative, got {quantity}")

        container = self.context.find_container(kind, container_id)
        card = self.context.card_by_id(card_id)
        if container is None or card is None:
            logger.debug(
                "allocate: nothing to do for %s %s / card %s", kind.value, container_id, card_id
            )
            return AllocationResult()
        if quantity == 0:
            return AllocationResult()

        if not container.supports_sideboard:
            is_in_sideboard = False

        available = max(0, card.quantity - self.total_claimed(card_id))
        to_allocate = min(quantity, available)
        to_wishlist = quantity - to_allocate

        result = AllocationResult(allocated=to_allocate, wishlisted=to_wishlist)

        if to_allocate > 0:
            add_claim(container, card_id, to_allocate, is_in_sideboard, notes)

        pending_error: PersistenceError | None = None
        if to_wishlist > 0:
            try:
                wish_card = await self.collection.ensure_wishlist_card(
                    card.to_card_data(), to_wishlist
                )
            except PersistenceError as e:
                # The wishlist card was still updated in memory
                wish_card = e.result
                pending_error = e

            add_claim(container, wish_card.id, to_wishlist, is_in_sideboard, notes)
            result.wishlist_card_id = wish_card.id
            logger.info(
                "%d of %d '%s' claimed from collection for %s %s, %d wishlisted",
                to_allocate,
                quantity,
                card.name,
                kind.value,
                container_id,
                to_wishlist,
            )

        return await self._finish(container, result, pending_error)

    async def allocate_available(
        self,
        kind: ContainerKind,
        container_id: str,
        items: Iterable[tuple[str, int]],
    ) -> LedgerUpdateResult:
        """
        Claim as much of each (card_id, quantity) as is free. No wishlist.

        Unknown cards and cards with no free copies are skipped. The
        container is written once, and only if something was claimed.
        """
        container = self.context.find_container(kind, container_id)
        if container is None:
            return LedgerUpdateResult()

        total = 0
        for card_id, quantity in items:
            card = self.context.card_by_id(card_id)
            if card is None or quantity <= 0:
                continue
            to_allocate = min(quantity, self.available(card_id))
            if to_allocate <= 0:
                continue
            add_claim(container, card_id, to_allocate)
            total += to_allocate

        if total == 0:
            return LedgerUpdateResult(container_id=container.id)

        return await self._finish(
            container, LedgerUpdateResult(container_id=container.id, quantity=total)
        )

    # --- Release / resize ---

    async def deallocate(
        self,
        kind: ContainerKind,
        container_id: str,
        card_id: str,
        is_in_sideboard: bool = False,
    ) -> LedgerUpdateResult:
        """
        Drop a container's (card_id, sideboard) row.

        The card itself is untouched; only the claim is released.
        """
        container = self.context.find_container(kind, container_id)
        if container is None:
            return LedgerUpdateResult()

        if not container.supports_sideboard:
            is_in_sideboard = False

        alloc = container.find_allocation(card_id, is_in_sideboard)
        if alloc is None:
            return LedgerUpdateResult(container_id=container.id)

        container.remove_allocation(card_id, is_in_sideboard)
        return await self._finish(
            container, LedgerUpdateResult(container_id=container.id, quantity=alloc.quantity)
        )

    async def deallocate_many(
        self, kind: ContainerKind, container_id: str, card_ids: Iterable[str]
    ) -> LedgerUpdateResult:
        """Drop every row of the given cards from a container with one write."""
        container = self.context.find_container(kind, container_id)
        if container is None:
            return LedgerUpdateResult()

        targets = set(card_ids)
        before = len(container.allocations)
        container.allocations = [a for a in container.allocations if a.card_id not in targets]
        removed = before - len(container.allocations)

        if removed == 0:
            return LedgerUpdateResult(container_id=container.id)

        return await self._finish(
            container, LedgerUpdateResult(container_id=container.id, quantity=removed)
        )

    async def update_allocation(
        self,
        kind: ContainerKind,
        container_id: str,
        card_id: str,
        is_in_sideboard: bool,
        new_quantity: int,
    ) -> LedgerUpdateResult:
        """
        Resize a container's row to exactly ``new_quantity``.

        Bounded by the copies not claimed by anyone else; never overflows to
        the wishlist. A quantity of 0 or less releases the row.

        Raises:
            CapacityExceededError: If new_quantity exceeds what is free,
                carrying the largest permissible quantity. Nothing changes.
            PersistenceError: If the write fails (in-memory change kept)
        """
        if new_quantity <= 0:
            return await self.deallocate(kind, container_id, card_id, is_in_sideboard)

        container = self.context.find_container(kind, container_id)
        if container is None:
            return LedgerUpdateResult()

        if not container.supports_sideboard:
            is_in_sideboard = False

        alloc = container.find_allocation(card_id, is_in_sideboard)
        card = self.context.card_by_id(card_id)
        if alloc is None or card is None:
            return LedgerUpdateResult(container_id=container.id)

        other_claims = self.total_claimed(card_id) - alloc.quantity
        max_available = card.quantity - other_claims
        if new_quantity > max_available:
            raise CapacityExceededError(card_id, new_quantity, max(0, max_available))

        if new_quantity == alloc.quantity:
            return LedgerUpdateResult(container_id=container.id, quantity=new_quantity)

        alloc.quantity = new_quantity
        return await self._finish(
            container, LedgerUpdateResult(container_id=container.id, quantity=new_quantity)
        )

    # --- Reconciliation ---

    async def reduce_allocations_for_card(
        self, card_id: str, new_quantity: int
    ) -> ReconciliationResult:
        """
        Convert claims a card can no longer cover to wishlist claims.

        Called before a card's quantity is lowered. If the new quantity
        still covers every claim this is a no-op; otherwise exactly the
        deficit is moved onto one wishlist card, taking containers in
        creation order and rows in ledger order. Wishlist cards are never
        reduced this way: their quantity is defined by their claims.
        """
        card = self.context.card_by_id(card_id)
        if card is None:
            logger.debug("reduce_allocations_for_card: card %s not found", card_id)
            return ReconciliationResult(card_id=card_id)
        if card.is_wishlist:
            logger.debug("reduce_allocations_for_card: %s is a wishlist card", card_id)
            return ReconciliationResult(card_id=card_id)

        return await self._reconcile(card, max(0, new_quantity))

    async def convert_allocations_to_wishlist(self, deleted_card: Card) -> ReconciliationResult:
        """
        Repoint every claim on a deleted card at one new wishlist card.

        Each container keeps its claimed quantities and sideboard flags.
        The card must already be gone from the collection snapshot.
        """
        return await self._reconcile(deleted_card, 0)

    async def _reconcile(self, card: Card, keep: int) -> ReconciliationResult:
        result = ReconciliationResult(card_id=card.id)

        total_allocated = self.total_claimed(card.id)
        if keep >= total_allocated:
            return result

        excess = total_allocated - keep
        result.excess = excess

        try:
            wish_card = await self.collection.ensure_wishlist_card(card.to_card_data(), excess)
        except PersistenceError as e:
            logger.error("Could not save wishlist card for '%s': %s", card.name, e.message)
            e.result = result
            raise
        result.wishlist_card_id = wish_card.id

        remaining = excess
        for container in self.context.containers_in_reconciliation_order():
            if remaining <= 0:
                break

            touched = False
            for alloc in container.allocations_for(card.id):
                if remaining <= 0:
                    break
                to_convert = min(alloc.quantity, remaining)
                alloc.quantity -= to_convert
                remaining -= to_convert
                add_claim(container, wish_card.id, to_convert, alloc.is_in_sideboard, alloc.notes)
                touched = True

            if not touched:
                continue

            container.allocations = [a for a in container.allocations if a.quantity > 0]
            container.stats = self.recalculate_stats(container)
            container.updated_at = utcnow()

            # Containers are written independently; one failure does not
            # stop or undo the others.
            try:
                await self.store.put_container(container)
                result.persisted_ids.append(container.id)
            except PersistenceError as e:
                result.failed[container.id] = e.message
                logger.warning(
                    "Reconciliation of '%s' not saved for %s %s: %s",
                    card.name,
                    container.kind.value,
                    container.id,
                    e.message,
                )

        result.converted = excess - remaining
        logger.info(
            "Moved %d claims on '%s' to wishlist card %s across %d containers",
            result.converted,
            card.name,
            wish_card.id,
            len(result.touched_ids),
        )
        return result
