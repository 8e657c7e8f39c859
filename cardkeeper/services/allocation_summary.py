"""
Allocation summary service.

Read-only per-card views over a user's inventory: which decks and binders
claim a card, how many copies are still free, and what a quantity change
would do to existing claims.

Supports questions like:
- "Which decks use my Lightning Bolts?" -> allocations_for_card(card_id)
- "Can I sell two of these?" -> check_quantity_reduction(card_id, qty - 2)
- "Do I already own this printing?" -> find_matching_collection_cards(...)
"""

from dataclasses import dataclass, field

from cardkeeper.models.card import Card, CardCondition
from cardkeeper.models.container import ContainerKind
from cardkeeper.models.inventory import InventoryContext


@dataclass
class ContainerAllocation:
    """One container's claim on a card, as seen from the card."""

    container_id: str
    container_name: str
    kind: ContainerKind
    quantity: int
    is_in_sideboard: bool = False


@dataclass
class AllocationSummary:
    """How a card's copies are spread across containers."""

    card: Card
    owned: int
    allocated: int
    available: int
    allocations: list[ContainerAllocation] = field(default_factory=list)


@dataclass
class CardWithAllocations:
    """A collection card together with its claims."""

    card: Card
    allocated_quantity: int
    available_quantity: int
    allocations: list[ContainerAllocation] = field(default_factory=list)


@dataclass
class QuantityReductionCheck:
    """What lowering a card to ``new_quantity`` would do to its claims."""

    can_reduce: bool
    current_allocated: int
    excess_amount: int
    affected: list[ContainerAllocation] = field(default_factory=list)


def build_allocation_index(context: InventoryContext) -> dict[str, list[ContainerAllocation]]:
    """
    Map card id -> claims on it, across every deck and binder.

    Build once and pass the index to the lookups below when summarizing many
    cards; each lookup builds its own otherwise.
    """
    index: dict[str, list[ContainerAllocation]] = {}
    for container in context.containers():
        for alloc in container.allocations:
            index.setdefault(alloc.card_id, []).append(
                ContainerAllocation(
                    container_id=container.id,
                    container_name=container.name,
                    kind=container.kind,
                    quantity=alloc.quantity,
                    is_in_sideboard=alloc.is_in_sideboard and container.supports_sideboard,
                )
            )
    return index


def allocations_for_card(
    context: InventoryContext,
    card_id: str,
    index: dict[str, list[ContainerAllocation]] | None = None,
) -> list[ContainerAllocation]:
    if index is None:
        index = build_allocation_index(context)
    return list(index.get(card_id, []))


def total_allocated(
    context: InventoryContext,
    card_id: str,
    index: dict[str, list[ContainerAllocation]] | None = None,
) -> int:
    return sum(a.quantity for a in allocations_for_card(context, card_id, index))


def available_quantity(
    context: InventoryContext,
    card_id: str,
    index: dict[str, list[ContainerAllocation]] | None = None,
) -> int:
    """Owned minus claimed, floored at 0. 0 for unknown cards."""
    card = context.card_by_id(card_id)
    if card is None:
        return 0
    return max(0, card.quantity - total_allocated(context, card_id, index))


def card_allocation_summary(
    context: InventoryContext,
    card_id: str,
    index: dict[str, list[ContainerAllocation]] | None = None,
) -> AllocationSummary | None:
    """Full summary for a card, or None if it is not in the collection."""
    card = context.card_by_id(card_id)
    if card is None:
        return None

    allocations = allocations_for_card(context, card_id, index)
    allocated = sum(a.quantity for a in allocations)
    return AllocationSummary(
        card=card,
        owned=card.quantity,
        allocated=allocated,
        available=max(0, card.quantity - allocated),
        allocations=allocations,
    )


def _with_allocations(
    card: Card, index: dict[str, list[ContainerAllocation]]
) -> CardWithAllocations:
    allocations = list(index.get(card.id, []))
    allocated = sum(a.quantity for a in allocations)
    return CardWithAllocations(
        card=card,
        allocated_quantity=allocated,
        available_quantity=max(0, card.quantity - allocated),
        allocations=allocations,
    )


def find_matching_collection_cards(
    context: InventoryContext,
    scryfall_id: str,
    edition: str | None = None,
    condition: CardCondition | None = None,
    foil: bool | None = None,
) -> list[CardWithAllocations]:
    """
    Collection cards of a printing, with their claims.

    ``scryfall_id`` must match; edition, condition and foil only narrow the
    result when given. Used to check for owned copies before claiming.
    """
    index = build_allocation_index(context)
    matches = []
    for card in context.cards:
        if card.scryfall_id != scryfall_id:
            continue
        if edition and card.edition != edition:
            continue
        if condition and card.condition != condition:
            continue
        if foil is not None and card.foil != foil:
            continue
        matches.append(_with_allocations(card, index))
    return matches


def find_card_variants(context: InventoryContext, scryfall_id: str) -> list[CardWithAllocations]:
    """Every entry for a card id in any edition, condition or finish."""
    return find_matching_collection_cards(context, scryfall_id)


def check_quantity_reduction(
    context: InventoryContext, card_id: str, new_quantity: int
) -> QuantityReductionCheck:
    """Preview a quantity decrease without changing anything."""
    allocations = allocations_for_card(context, card_id)
    current = sum(a.quantity for a in allocations)
    excess = max(0, current - new_quantity)
    return QuantityReductionCheck(
        can_reduce=new_quantity >= current,
        current_allocated=current,
        excess_amount=excess,
        affected=allocations if excess > 0 else [],
    )


def cards_with_allocations(context: InventoryContext) -> list[CardWithAllocations]:
    index = build_allocation_index(context)
    return [_with_allocations(card, index) for card in context.cards]
