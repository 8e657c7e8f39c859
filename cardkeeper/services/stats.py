"""
Container statistics.

Pure functions deriving a container's aggregate counters from its ledger
and the current collection snapshot. No side effects, no failure modes.
"""

from collections.abc import Iterable, Mapping, Sequence

from cardkeeper.models.card import Card
from cardkeeper.models.container import Allocation, ContainerStats, WishlistItem


def empty_stats() -> ContainerStats:
    """Stats of a container with nothing in it."""
    return ContainerStats(
        total_cards=0,
        sideboard_cards=0,
        owned_cards=0,
        wishlist_cards=0,
        avg_price=0.0,
        total_price=0.0,
        completion_percentage=100.0,
    )


def calculate_stats(
    allocations: Iterable[Allocation],
    cards: Sequence[Card] | Mapping[str, Card],
    legacy_wishlist: Iterable[WishlistItem] = (),
) -> ContainerStats:
    """
    Calculate stats for a container.

    Allocations pointing at wishlist cards count as wanted, all others as
    owned. Allocations whose card no longer exists are skipped: they are
    stale rows waiting to be reconciled, not errors.

    Args:
        allocations: The container's ledger rows
        cards: Collection snapshot, as a list or an id -> Card mapping
        legacy_wishlist: Deck wishlist items not backed by a card

    Returns:
        ContainerStats with completion_percentage 100 for empty containers
    """
    card_map = cards if isinstance(cards, Mapping) else {c.id: c for c in cards}

    owned_cards = 0
    owned_price = 0.0
    wishlist_cards = 0
    wishlist_price = 0.0
    sideboard_cards = 0

    for alloc in allocations:
        card = card_map.get(alloc.card_id)
        if card is None:
            continue

        if card.is_wishlist:
            wishlist_cards += alloc.quantity
            wishlist_price += card.price * alloc.quantity
        else:
            owned_cards += alloc.quantity
            owned_price += card.price * alloc.quantity

        if alloc.is_in_sideboard:
            sideboard_cards += alloc.quantity

    for item in legacy_wishlist:
        wishlist_cards += item.quantity
        wishlist_price += item.price * item.quantity
        if item.is_in_sideboard:
            sideboard_cards += item.quantity

    total_cards = owned_cards + wishlist_cards
    total_price = owned_price + wishlist_price

    if total_cards == 0:
        return empty_stats()

    return ContainerStats(
        total_cards=total_cards,
        sideboard_cards=sideboard_cards,
        owned_cards=owned_cards,
        wishlist_cards=wishlist_cards,
        avg_price=total_price / total_cards,
        total_price=total_price,
        completion_percentage=owned_cards / total_cards * 100,
    )
