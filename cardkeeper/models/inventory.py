"""
Inventory context - one user's cards and containers, held explicitly.

Every allocation engine call receives the context it operates on. Nothing
about a user's inventory lives in module-level state.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

from cardkeeper.models.card import Card
from cardkeeper.models.container import Binder, Container, ContainerKind, Deck


@dataclass
class InventoryContext:
    """
    Snapshot of a user's collection and every container claiming from it.

    INVARIANT: For every non-wishlist Card c, the sum of allocation
    quantities pointing at c.id across decks and binders is <= c.quantity
    once an engine operation has completed.
    """

    user_id: str
    cards: list[Card] = field(default_factory=list)
    decks: list[Deck] = field(default_factory=list)
    binders: list[Binder] = field(default_factory=list)

    def card_by_id(self, card_id: str) -> Card | None:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def containers(self) -> Iterator[Container]:
        """Decks then binders, in listing order."""
        yield from self.decks
        yield from self.binders

    def containers_in_reconciliation_order(self) -> list[Container]:
        """All containers ordered by creation time, then id."""
        return sorted(self.containers(), key=lambda c: (c.created_at, c.id))

    def containers_of(self, kind: ContainerKind) -> list[Container]:
        if kind == ContainerKind.DECK:
            return list(self.decks)
        return list(self.binders)

    def find_container(self, kind: ContainerKind, container_id: str) -> Container | None:
        for container in self.containers_of(kind):
            if container.id == container_id:
                return container
        return None

    def total_claimed(self, card_id: str) -> int:
        """Copies of card_id claimed by all decks and binders together."""
        return sum(c.claimed_quantity(card_id) for c in self.containers())

    def claimed_by_kind(self, card_id: str, kind: ContainerKind) -> int:
        return sum(c.claimed_quantity(card_id) for c in self.containers_of(kind))

    def available_quantity(self, card_id: str) -> int:
        """Unclaimed copies of a card, floored at 0. 0 for unknown ids."""
        card = self.card_by_id(card_id)
        if card is None:
            return 0
        return max(0, card.quantity - self.total_claimed(card_id))

    def add_container(self, container: Container) -> None:
        if isinstance(container, Deck):
            self.decks.append(container)
        elif isinstance(container, Binder):
            self.binders.append(container)
        else:
            raise TypeError(f"Unsupported container type: {type(container).__name__}")

    def drop_container(self, kind: ContainerKind, container_id: str) -> Container | None:
        """Remove a container from the snapshot. Cards are not touched."""
        container = self.find_container(kind, container_id)
        if container is None:
            return None
        if kind == ContainerKind.DECK:
            self.decks = [d for d in self.decks if d.id != container_id]
        else:
            self.binders = [b for b in self.binders if b.id != container_id]
        return container
