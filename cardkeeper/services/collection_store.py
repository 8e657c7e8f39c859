"""
Collection store - the authoritative list of a user's cards.

Owns lookups and card writes. Wishlist cards are only grown or created here
through ensure_wishlist_card, which the allocation engine calls when a claim
cannot be satisfied from stock.
"""

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from cardkeeper.config import MAX_IMPORT_CARDS
from cardkeeper.db.store import InventoryStore
from cardkeeper.models.card import Card, CardCondition, CardData, CardStatus, utcnow
from cardkeeper.models.failure import FailureKind, KnownError, PersistenceError
from cardkeeper.models.inventory import InventoryContext

logger = logging.getLogger(__name__)

# Fields callers may change through update_card
EDITABLE_CARD_FIELDS = frozenset(
    {
        "name",
        "edition",
        "quantity",
        "condition",
        "foil",
        "status",
        "price",
        "image",
        "language",
        "mana_value",
        "type_line",
        "colors",
    }
)


def new_id() -> str:
    return uuid.uuid4().hex


class CollectionStore:
    """
    A user's cards, read from the inventory context and written to the store.

    Local state is updated before the store write is awaited, so lookups see
    the change immediately even if the write later fails.
    """

    def __init__(self, context: InventoryContext, store: InventoryStore) -> None:
        self.context = context
        self.store = store

    @property
    def cards(self) -> list[Card]:
        return self.context.cards

    # --- Lookups ---

    def get_card_by_id(self, card_id: str) -> Card | None:
        return self.context.card_by_id(card_id)

    def find_cards(
        self,
        scryfall_id: str | None = None,
        name: str | None = None,
        edition: str | None = None,
        condition: CardCondition | None = None,
        foil: bool | None = None,
    ) -> list[Card]:
        """
        Cards matching every given criterion.

        ``name`` is a case-insensitive substring match; the rest are exact.
        """
        needle = name.lower() if name else None
        matches = []
        for card in self.cards:
            if scryfall_id and card.scryfall_id != scryfall_id:
                continue
            if needle and needle not in card.name.lower():
                continue
            if edition and card.edition != edition:
                continue
            if condition and card.condition != condition:
                continue
            if foil is not None and card.foil != foil:
                continue
            matches.append(card)
        return matches

    def find_exact_match(
        self, scryfall_id: str, edition: str, condition: CardCondition, foil: bool
    ) -> Card | None:
        """First card with this exact printing, condition and finish, any status."""
        key = (scryfall_id, edition, condition, foil)
        for card in self.cards:
            if card.identity_key == key:
                return card
        return None

    def total_cards(self) -> int:
        """Number of distinct card entries."""
        return len(self.cards)

    def total_value(self) -> float:
        return sum(card.price * card.quantity for card in self.cards)

    def cards_by_status(self) -> dict[CardStatus, list[Card]]:
        grouped: dict[CardStatus, list[Card]] = {status: [] for status in CardStatus}
        for card in self.cards:
            grouped[card.status].append(card)
        return grouped

    # --- Writes ---

    async def add_card(
        self,
        data: CardData,
        quantity: int,
        status: CardStatus = CardStatus.COLLECTION,
    ) -> Card:
        """
        Add a new card entry to the collection.

        Raises:
            ValueError: If quantity is negative
            PersistenceError: If the store write fails (the card stays in memory)
        """
        if quantity < 0:
            raise ValueError(f"Quantity must not be negative, got {quantity}")

        card = _card_from_data(self.context.user_id, data, quantity, status)
        self.context.cards.append(card)
        await self.store.put_card(card)

        logger.info("Added card %s (%s x%d)", card.id, card.name, quantity)
        return card

    async def update_card(self, card_id: str, **updates: Any) -> Card | None:
        """
        Apply field updates to a card and write it.

        Does not reconcile allocations; quantity decreases go through
        InventoryService.set_card_quantity so claims are converted first.

        Returns the updated card, or None if it does not exist.

        Raises:
            ValueError: On unknown fields or a negative quantity
        """
        unknown = set(updates) - EDITABLE_CARD_FIELDS
        if unknown:
            raise ValueError(f"Cannot update card fields: {sorted(unknown)}")
        if updates.get("quantity", 0) < 0:
            raise ValueError(f"Quantity must not be negative, got {updates['quantity']}")

        card = self.get_card_by_id(card_id)
        if card is None:
            logger.debug("update_card: card %s not found", card_id)
            return None

        for field_name, value in updates.items():
            setattr(card, field_name, value)
        card.updated_at = utcnow()

        await self.store.put_card(card)
        return card

    async def remove_card(self, card_id: str) -> Card | None:
        """
        Delete a card from the collection.

        Allocations pointing at it are left alone here; the caller converts
        them to wishlist claims afterwards. Returns the removed card.
        """
        card = self.get_card_by_id(card_id)
        if card is None:
            logger.debug("remove_card: card %s not found", card_id)
            return None

        self.context.cards = [c for c in self.context.cards if c.id != card_id]
        await self.store.delete_card(self.context.user_id, card_id)

        logger.info("Removed card %s (%s)", card.id, card.name)
        return card

    async def import_cards(
        self, entries: Iterable[tuple[CardData, int, CardStatus]]
    ) -> list[Card]:
        """
        Add many cards at once, one new entry and one store write per card.

        Entries are not merged with existing cards, matching add_card. The
        whole batch is validated before anything changes. Every write is
        attempted even after one fails.

        Returns:
            The new cards, in input order

        Raises:
            KnownError: If the batch is larger than MAX_IMPORT_CARDS or has a
                negative quantity
            PersistenceError: If any write fails. All imported cards stay in
                memory and are attached as the error's ``result``.
        """
        entries = list(entries)
        if len(entries) > MAX_IMPORT_CARDS:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message=f"At most {MAX_IMPORT_CARDS} cards per import",
                detail=f"Got {len(entries)} cards",
                suggestion="Split the import into smaller files.",
            )
        for data, quantity, _ in entries:
            if quantity < 0:
                raise KnownError(
                    kind=FailureKind.INVALID_INPUT,
                    message=f"Import has a negative quantity for '{data.name}'",
                )

        cards = [
            _card_from_data(self.context.user_id, data, quantity, status)
            for data, quantity, status in entries
        ]
        self.context.cards.extend(cards)

        failed: dict[str, str] = {}
        for card in cards:
            try:
                await self.store.put_card(card)
            except PersistenceError as e:
                failed[card.id] = e.message

        if failed:
            logger.error("Import saved %d of %d cards", len(cards) - len(failed), len(cards))
            raise PersistenceError(
                f"Could not save {len(failed)} of {len(cards)} imported cards",
                detail=", ".join(failed),
                result=cards,
            )

        logger.info("Imported %d cards", len(cards))
        return cards

    async def remove_all_cards(self) -> list[Card]:
        """
        Delete every card in the collection.

        Claims on the removed cards are left alone here, as in remove_card.
        Every delete is attempted even after one fails.

        Returns:
            The removed cards

        Raises:
            PersistenceError: If any delete fails. The snapshot is still
                emptied and the removed cards are the error's ``result``.
        """
        removed = list(self.context.cards)
        self.context.cards = []

        failed: dict[str, str] = {}
        for card in removed:
            try:
                await self.store.delete_card(self.context.user_id, card.id)
            except PersistenceError as e:
                failed[card.id] = e.message

        if failed:
            raise PersistenceError(
                f"Could not delete {len(failed)} of {len(removed)} cards",
                detail=", ".join(failed),
                result=removed,
            )

        logger.info("Removed all %d cards", len(removed))
        return removed

    async def ensure_wishlist_card(self, data: CardData, quantity: int) -> Card:
        """
        Grow or create the wishlist card for a kind of card.

        Upsert keyed on (scryfall_id, edition, condition, foil) among cards
        with wishlist status: repeated calls for the same missing card merge
        into one wishlist card. An existing card keeps its own price and
        display data.

        Args:
            data: Identity and display data of the card that is wanted
            quantity: Copies to add to the wishlist

        Returns:
            The wishlist card (existing or newly created)

        Raises:
            PersistenceError: If the write fails. The card is still updated
                in memory and is attached as the error's ``result``.
        """
        existing = await self._find_wishlist_card(data)

        if existing is not None:
            existing.quantity += quantity
            existing.updated_at = utcnow()
            await self._put_wishlist_card(existing)
            logger.debug(
                "Wishlist card %s grown by %d to %d", existing.id, quantity, existing.quantity
            )
            return existing

        card = _card_from_data(self.context.user_id, data, quantity, CardStatus.WISHLIST)
        self.context.cards.append(card)
        await self._put_wishlist_card(card)

        logger.info("Created wishlist card %s (%s x%d)", card.id, card.name, quantity)
        return card

    async def _put_wishlist_card(self, card: Card) -> None:
        try:
            await self.store.put_card(card)
        except PersistenceError as e:
            e.result = card
            raise

    async def _find_wishlist_card(self, data: CardData) -> Card | None:
        """
        Locate the wishlist card matching data's identity.

        The in-memory snapshot is authoritative; the store is queried only
        when the snapshot has no match, to pick up wishlist cards written by
        another session.
        """
        for card in self.cards:
            if card.is_wishlist and card.identity_key == data.identity_key:
                return card

        for candidate in await self.store.query_cards_by_field(
            self.context.user_id, "scryfall_id", data.scryfall_id
        ):
            if (
                candidate.is_wishlist
                and candidate.identity_key == data.identity_key
                and self.context.card_by_id(candidate.id) is None
            ):
                # Adopt the stored card into the snapshot so later lookups see it
                self.context.cards.append(candidate)
                return candidate

        return None


def _card_from_data(user_id: str, data: CardData, quantity: int, status: CardStatus) -> Card:
    now = utcnow()
    return Card(
        id=new_id(),
        user_id=user_id,
        scryfall_id=data.scryfall_id,
        name=data.name,
        edition=data.edition,
        quantity=quantity,
        condition=data.condition,
        foil=data.foil,
        status=status,
        price=data.price,
        image=data.image,
        language=data.language,
        mana_value=data.mana_value,
        type_line=data.type_line,
        colors=list(data.colors) if data.colors is not None else None,
        created_at=now,
        updated_at=now,
    )

