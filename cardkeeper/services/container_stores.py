"""
Deck and binder stores.

Container CRUD and display hydration. Ledger mutations are delegated to the
allocation engine so decks and binders share one claim pool per card.
"""

import logging
from collections.abc import Iterable
from typing import Any, ClassVar

from cardkeeper.config import DEFAULT_CONTAINER_NAME_MAX, MAX_BULK_ALLOCATION_ITEMS
from cardkeeper.db.store import InventoryStore
from cardkeeper.models.card import CardCondition, utcnow
from cardkeeper.models.container import (
    Binder,
    Container,
    ContainerKind,
    Deck,
    DeckFormat,
    WishlistItem,
)
from cardkeeper.models.failure import FailureKind, KnownError
from cardkeeper.models.hydrated import HydratedCard, HydratedDeckCard, HydratedWishlistCard
from cardkeeper.models.inventory import InventoryContext
from cardkeeper.models.results import AllocationResult, LedgerUpdateResult
from cardkeeper.services.allocation_engine import AllocationEngine
from cardkeeper.services.card_lookup import CardLookup, CardMetadata
from cardkeeper.services.collection_store import new_id
from cardkeeper.services.stats import empty_stats

logger = logging.getLogger(__name__)


def validate_container_name(name: str) -> str:
    """
    Strip and check a deck or binder name.

    Raises:
        KnownError: If the name is blank or too long
    """
    cleaned = name.strip()
    if not cleaned:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="Name is required",
        )
    if len(cleaned) > DEFAULT_CONTAINER_NAME_MAX:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message=f"Name must be at most {DEFAULT_CONTAINER_NAME_MAX} characters",
            detail=f"Got {len(cleaned)} characters",
        )
    return cleaned


class ContainerStore:
    """Behaviour shared by the deck and binder stores."""

    kind: ClassVar[ContainerKind]
    editable_fields: ClassVar[frozenset[str]]

    def __init__(
        self,
        context: InventoryContext,
        store: InventoryStore,
        engine: AllocationEngine,
        lookup: CardLookup | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.engine = engine
        self.lookup = lookup

    @property
    def containers(self) -> list[Container]:
        return self.context.containers_of(self.kind)

    def get(self, container_id: str) -> Container | None:
        return self.context.find_container(self.kind, container_id)

    async def load(self) -> list[Container]:
        """Replace this kind's containers in the context with the stored ones."""
        containers = await self.store.list_containers(self.context.user_id, self.kind)
        if self.kind == ContainerKind.DECK:
            self.context.decks = [c for c in containers if isinstance(c, Deck)]
        else:
            self.context.binders = [c for c in containers if isinstance(c, Binder)]
        return self.containers

    async def _create(self, container: Container) -> Container:
        self.context.add_container(container)
        await self.store.put_container(container)
        logger.info("Created %s %s ('%s')", self.kind.value, container.id, container.name)
        return container

    async def _update(self, container_id: str, updates: dict[str, Any]) -> Container | None:
        unknown = set(updates) - self.editable_fields
        if unknown:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message=f"Cannot update {self.kind.value} fields: {sorted(unknown)}",
            )

        container = self.get(container_id)
        if container is None:
            return None

        if "name" in updates:
            updates["name"] = validate_container_name(updates["name"])
        for field_name, value in updates.items():
            setattr(container, field_name, value)

        await self.engine.commit(container, LedgerUpdateResult(container_id=container.id))
        return container

    async def delete(self, container_id: str) -> bool:
        """
        Delete a container. Cards it claimed stay in the collection.

        Returns False if the container does not exist.
        """
        container = self.context.drop_container(self.kind, container_id)
        if container is None:
            return False
        await self.store.delete_container(self.context.user_id, self.kind, container_id)
        logger.info("Deleted %s %s", self.kind.value, container_id)
        return True

    async def deallocate(
        self, container_id: str, card_id: str, is_in_sideboard: bool = False
    ) -> LedgerUpdateResult:
        return await self.engine.deallocate(self.kind, container_id, card_id, is_in_sideboard)

    async def update_allocation(
        self,
        container_id: str,
        card_id: str,
        new_quantity: int,
        is_in_sideboard: bool = False,
    ) -> LedgerUpdateResult:
        return await self.engine.update_allocation(
            self.kind, container_id, card_id, is_in_sideboard, new_quantity
        )

    # --- Hydration ---

    def hydrate(self, container: Container) -> list[HydratedCard]:
        """
        Display view of a container's ledger.

        Rows on owned cards become HydratedDeckCard, rows on wishlist cards
        and legacy deck wishlist items become HydratedWishlistCard. Rows
        whose card no longer exists are skipped.
        """
        result: list[HydratedCard] = []

        for alloc in container.allocations:
            card = self.context.card_by_id(alloc.card_id)
            if card is None:
                continue

            is_in_sideboard = alloc.is_in_sideboard and container.supports_sideboard
            if card.is_wishlist:
                result.append(
                    HydratedWishlistCard(
                        card_id=card.id,
                        scryfall_id=card.scryfall_id,
                        name=card.name,
                        edition=card.edition,
                        condition=card.condition,
                        foil=card.foil,
                        price=card.price,
                        image=card.image,
                        requested_quantity=alloc.quantity,
                        is_in_sideboard=is_in_sideboard,
                        added_at=alloc.added_at,
                        notes=alloc.notes,
                        mana_value=card.mana_value,
                        type_line=card.type_line,
                        colors=card.colors,
                    )
                )
                continue

            result.append(
                HydratedDeckCard(
                    card_id=card.id,
                    scryfall_id=card.scryfall_id,
                    name=card.name,
                    edition=card.edition,
                    condition=card.condition,
                    foil=card.foil,
                    price=card.price,
                    image=card.image,
                    allocated_quantity=alloc.quantity,
                    is_in_sideboard=is_in_sideboard,
                    added_at=alloc.added_at,
                    available_in_collection=self.context.available_quantity(card.id),
                    total_in_collection=card.quantity,
                    language=card.language,
                    notes=alloc.notes,
                    mana_value=card.mana_value,
                    type_line=card.type_line,
                    colors=card.colors,
                )
            )

        if isinstance(container, Deck):
            for item in container.wishlist:
                result.append(
                    HydratedWishlistCard(
                        scryfall_id=item.scryfall_id,
                        name=item.name,
                        edition=item.edition,
                        condition=item.condition,
                        foil=item.foil,
                        price=item.price,
                        image=item.image,
                        requested_quantity=item.quantity,
                        is_in_sideboard=item.is_in_sideboard,
                        added_at=item.added_at,
                        notes=item.notes,
                    )
                )

        return result

    async def hydrate_with_metadata(self, container: Container) -> list[HydratedCard]:
        """
        Hydrate, then fill missing type line, colors and mana value.

        Without a lookup collaborator this is plain hydration. Failed lookups
        leave the fields as None.
        """
        cards = self.hydrate(container)
        if self.lookup is None:
            return cards

        wanted = {
            c.scryfall_id
            for c in cards
            if c.type_line is None or c.colors is None or c.mana_value is None
        }
        found: dict[str, CardMetadata] = {}
        for scryfall_id in sorted(wanted):
            metadata = await self.lookup.lookup_card_by_id(scryfall_id)
            if metadata is not None:
                found[scryfall_id] = metadata

        for card in cards:
            metadata = found.get(card.scryfall_id)
            if metadata is None:
                continue
            if card.type_line is None:
                card.type_line = metadata.type_line
            if card.colors is None:
                card.colors = metadata.colors
            if card.mana_value is None:
                card.mana_value = metadata.mana_value

        return cards


class DeckStore(ContainerStore):
    """A user's decks."""

    kind = ContainerKind.DECK
    editable_fields = frozenset(
        {"name", "description", "format", "colors", "commander", "thumbnail", "is_public"}
    )

    @property
    def decks(self) -> list[Deck]:
        return self.context.decks

    def total_decks(self) -> int:
        return len(self.context.decks)

    def get_deck(self, deck_id: str) -> Deck | None:
        deck = self.get(deck_id)
        return deck if isinstance(deck, Deck) else None

    async def create_deck(
        self,
        name: str,
        format: DeckFormat = DeckFormat.CUSTOM,
        description: str = "",
        colors: list[str] | None = None,
        commander: str | None = None,
    ) -> Deck:
        now = utcnow()
        deck = Deck(
            id=new_id(),
            user_id=self.context.user_id,
            name=validate_container_name(name),
            description=description,
            format=format,
            colors=list(colors or []),
            commander=commander,
            stats=empty_stats(),
            created_at=now,
            updated_at=now,
        )
        await self._create(deck)
        return deck

    async def update_deck(self, deck_id: str, **updates: Any) -> Deck | None:
        deck = await self._update(deck_id, updates)
        return deck if isinstance(deck, Deck) else None

    async def delete_deck(self, deck_id: str) -> bool:
        return await self.delete(deck_id)

    async def allocate(
        self,
        deck_id: str,
        card_id: str,
        quantity: int,
        is_in_sideboard: bool = False,
        notes: str | None = None,
    ) -> AllocationResult:
        return await self.engine.allocate(
            self.kind, deck_id, card_id, quantity, is_in_sideboard, notes
        )

    async def add_to_wishlist(self, deck_id: str, item: WishlistItem) -> LedgerUpdateResult:
        """
        Add a legacy wishlist item to a deck, merging with an equal one.

        Items are equal when printing, condition, finish and sideboard flag
        all match; their quantities are summed.
        """
        deck = self.get_deck(deck_id)
        if deck is None:
            return LedgerUpdateResult()

        existing = next(
            (
                w
                for w in deck.wishlist
                if w.matches(
                    item.scryfall_id, item.edition, item.condition, item.foil, item.is_in_sideboard
                )
            ),
            None,
        )
        if existing is not None:
            existing.quantity += item.quantity
        else:
            deck.wishlist.append(item)

        return await self.engine.commit(
            deck, LedgerUpdateResult(container_id=deck.id, quantity=item.quantity)
        )

    async def remove_from_wishlist(
        self,
        deck_id: str,
        scryfall_id: str,
        edition: str,
        condition: CardCondition,
        foil: bool,
        is_in_sideboard: bool,
    ) -> LedgerUpdateResult:
        deck = self.get_deck(deck_id)
        if deck is None:
            return LedgerUpdateResult()

        kept = [
            w
            for w in deck.wishlist
            if not w.matches(scryfall_id, edition, condition, foil, is_in_sideboard)
        ]
        removed = sum(w.quantity for w in deck.wishlist) - sum(w.quantity for w in kept)
        if len(kept) == len(deck.wishlist):
            return LedgerUpdateResult(container_id=deck.id)

        deck.wishlist = kept
        return await self.engine.commit(
            deck, LedgerUpdateResult(container_id=deck.id, quantity=removed)
        )

    def hydrate_deck_cards(self, deck: Deck) -> list[HydratedCard]:
        return self.hydrate(deck)

    def mainboard_cards(self, deck: Deck) -> list[HydratedCard]:
        return [c for c in self.hydrate(deck) if not c.is_in_sideboard]

    def sideboard_cards(self, deck: Deck) -> list[HydratedCard]:
        return [c for c in self.hydrate(deck) if c.is_in_sideboard]


class BinderStore(ContainerStore):
    """A user's binders. Binders have no sideboard."""

    kind = ContainerKind.BINDER
    editable_fields = frozenset({"name", "description", "thumbnail", "is_public", "for_sale"})

    @property
    def binders(self) -> list[Binder]:
        return self.context.binders

    def get_binder(self, binder_id: str) -> Binder | None:
        binder = self.get(binder_id)
        return binder if isinstance(binder, Binder) else None

    async def create_binder(
        self,
        name: str,
        description: str = "",
        is_public: bool = True,
        for_sale: bool = True,
    ) -> Binder:
        now = utcnow()
        binder = Binder(
            id=new_id(),
            user_id=self.context.user_id,
            name=validate_container_name(name),
            description=description,
            is_public=is_public,
            for_sale=for_sale,
            stats=empty_stats(),
            created_at=now,
            updated_at=now,
        )
        await self._create(binder)
        return binder

    async def update_binder(self, binder_id: str, **updates: Any) -> Binder | None:
        binder = await self._update(binder_id, updates)
        return binder if isinstance(binder, Binder) else None

    async def delete_binder(self, binder_id: str) -> bool:
        return await self.delete(binder_id)

    async def allocate(
        self,
        binder_id: str,
        card_id: str,
        quantity: int,
        notes: str | None = None,
    ) -> AllocationResult:
        return await self.engine.allocate(self.kind, binder_id, card_id, quantity, False, notes)

    async def bulk_allocate(
        self, binder_id: str, items: Iterable[tuple[str, int]]
    ) -> LedgerUpdateResult:
        """
        Claim free copies of many cards at once, capped at what is free.

        Raises:
            KnownError: If more than MAX_BULK_ALLOCATION_ITEMS items are given
        """
        items = list(items)
        if len(items) > MAX_BULK_ALLOCATION_ITEMS:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message=f"At most {MAX_BULK_ALLOCATION_ITEMS} cards per bulk allocation",
                detail=f"Got {len(items)} items",
                suggestion="Split the request into smaller batches.",
            )
        return await self.engine.allocate_available(self.kind, binder_id, items)

    async def bulk_deallocate(
        self, binder_id: str, card_ids: Iterable[str]
    ) -> LedgerUpdateResult:
        return await self.engine.deallocate_many(self.kind, binder_id, card_ids)

    def hydrate_binder_cards(self, binder: Binder) -> list[HydratedCard]:
        return self.hydrate(binder)
