"""
Database CRUD operations.

Provides async functions for reading and writing collection cards and
containers, plus conversions between ORM rows and domain models.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardkeeper.models.card import Card, CardCondition, CardStatus, utcnow
from cardkeeper.models.container import (
    Allocation,
    Binder,
    Container,
    ContainerKind,
    ContainerStats,
    Deck,
    DeckFormat,
    WishlistItem,
)
from cardkeeper.models.db import CardDB, ContainerDB

# Card columns that query_cards_by_field may filter on
QUERYABLE_CARD_FIELDS = frozenset(
    {"scryfall_id", "name", "edition", "condition", "foil", "status", "language"}
)

# --- Card Operations ---


async def get_card(session: AsyncSession, user_id: str, card_id: str) -> CardDB | None:
    """
    Get a card by id within a user's collection.

    Returns None if the card does not exist or belongs to another user.
    """
    result = await session.execute(
        select(CardDB).where(CardDB.id == card_id, CardDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_cards(session: AsyncSession, user_id: str) -> list[CardDB]:
    """Get every card in a user's collection, oldest first."""
    result = await session.execute(
        select(CardDB).where(CardDB.user_id == user_id).order_by(CardDB.created_at, CardDB.id)
    )
    return list(result.scalars().all())


async def query_cards_by_field(
    session: AsyncSession, user_id: str, field: str, value: Any
) -> list[CardDB]:
    """
    Get a user's cards whose column ``field`` equals ``value``.

    Raises:
        ValueError: If field is not a queryable card column
    """
    if field not in QUERYABLE_CARD_FIELDS:
        raise ValueError(f"Cannot query cards by '{field}'")

    if isinstance(value, CardCondition | CardStatus):
        value = value.value

    column = getattr(CardDB, field)
    result = await session.execute(
        select(CardDB).where(CardDB.user_id == user_id, column == value).order_by(CardDB.id)
    )
    return list(result.scalars().all())


async def upsert_card(session: AsyncSession, card: Card) -> CardDB:
    """
    Insert or replace a card row.

    Full-document semantics: every column is overwritten from the model.
    """
    existing = await session.get(CardDB, card.id)

    if existing is None:
        existing = CardDB(id=card.id, user_id=card.user_id, created_at=card.created_at)
        session.add(existing)

    existing.scryfall_id = card.scryfall_id
    existing.name = card.name
    existing.edition = card.edition
    existing.quantity = card.quantity
    existing.condition = card.condition.value
    existing.foil = card.foil
    existing.status = card.status.value
    existing.price = card.price
    existing.image = card.image
    existing.language = card.language
    existing.mana_value = card.mana_value
    existing.type_line = card.type_line
    existing.colors = list(card.colors) if card.colors is not None else None
    existing.updated_at = card.updated_at

    await session.flush()
    return existing


async def delete_card(session: AsyncSession, user_id: str, card_id: str) -> bool:
    """
    Delete a card from a user's collection.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(CardDB).where(CardDB.id == card_id, CardDB.user_id == user_id)
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


def card_to_model(db_card: CardDB) -> Card:
    """Convert a database card to a domain model."""
    return Card(
        id=db_card.id,
        user_id=db_card.user_id,
        scryfall_id=db_card.scryfall_id,
        name=db_card.name,
        edition=db_card.edition,
        quantity=db_card.quantity,
        condition=CardCondition(db_card.condition),
        foil=db_card.foil,
        status=CardStatus(db_card.status),
        price=db_card.price,
        image=db_card.image,
        language=db_card.language,
        mana_value=db_card.mana_value,
        type_line=db_card.type_line,
        colors=list(db_card.colors) if db_card.colors is not None else None,
        created_at=_aware(db_card.created_at),
        updated_at=_aware(db_card.updated_at),
    )


# --- Container Operations ---


async def get_container(
    session: AsyncSession, user_id: str, kind: ContainerKind, container_id: str
) -> ContainerDB | None:
    """Get a deck or binder by id. Returns None if not found."""
    result = await session.execute(
        select(ContainerDB).where(
            ContainerDB.id == container_id,
            ContainerDB.user_id == user_id,
            ContainerDB.kind == kind.value,
        )
    )
    return result.scalar_one_or_none()


async def list_containers(
    session: AsyncSession, user_id: str, kind: ContainerKind
) -> list[ContainerDB]:
    """Get all of a user's decks or binders, in creation order."""
    result = await session.execute(
        select(ContainerDB)
        .where(ContainerDB.user_id == user_id, ContainerDB.kind == kind.value)
        .order_by(ContainerDB.created_at, ContainerDB.id)
    )
    return list(result.scalars().all())


async def upsert_container(session: AsyncSession, container: Container) -> ContainerDB:
    """
    Insert or replace a container document.

    The ledger, wishlist and stats are always written whole; there is no
    row-level patching of allocations.
    """
    existing = await session.get(ContainerDB, container.id)

    if existing is None:
        existing = ContainerDB(
            id=container.id,
            user_id=container.user_id,
            kind=container.kind.value,
            created_at=container.created_at,
        )
        session.add(existing)

    existing.name = container.name
    existing.description = container.description
    existing.thumbnail = container.thumbnail
    existing.is_public = container.is_public
    existing.allocations = [_allocation_to_doc(a) for a in container.allocations]
    existing.stats = _stats_to_doc(container.stats)
    existing.updated_at = container.updated_at

    if isinstance(container, Deck):
        existing.format = container.format.value
        existing.colors = list(container.colors)
        existing.commander = container.commander
        existing.wishlist = [_wishlist_item_to_doc(w) for w in container.wishlist]
        existing.for_sale = False
    elif isinstance(container, Binder):
        existing.for_sale = container.for_sale
        existing.wishlist = []

    await session.flush()
    return existing


async def delete_container(
    session: AsyncSession, user_id: str, kind: ContainerKind, container_id: str
) -> bool:
    """
    Delete a deck or binder.

    Only the container document is removed; cards it referenced stay.
    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(ContainerDB).where(
            ContainerDB.id == container_id,
            ContainerDB.user_id == user_id,
            ContainerDB.kind == kind.value,
        )
    )
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


def container_to_model(db_container: ContainerDB) -> Container:
    """Convert a database container to a Deck or Binder."""
    allocations = [_allocation_from_doc(doc) for doc in db_container.allocations or []]
    stats = _stats_from_doc(db_container.stats or {})
    created_at = _aware(db_container.created_at)
    updated_at = _aware(db_container.updated_at)

    if db_container.kind == ContainerKind.DECK.value:
        return Deck(
            id=db_container.id,
            user_id=db_container.user_id,
            name=db_container.name,
            description=db_container.description or "",
            allocations=allocations,
            stats=stats,
            thumbnail=db_container.thumbnail or "",
            is_public=db_container.is_public,
            created_at=created_at,
            updated_at=updated_at,
            format=DeckFormat(db_container.format or DeckFormat.CUSTOM.value),
            colors=list(db_container.colors or []),
            wishlist=[_wishlist_item_from_doc(doc) for doc in db_container.wishlist or []],
            commander=db_container.commander,
        )

    return Binder(
        id=db_container.id,
        user_id=db_container.user_id,
        name=db_container.name,
        description=db_container.description or "",
        # Binders have no sideboard; older documents may lack the flag
        allocations=[
            Allocation(a.card_id, a.quantity, False, a.notes, a.added_at) for a in allocations
        ],
        stats=stats,
        thumbnail=db_container.thumbnail or "",
        is_public=db_container.is_public,
        created_at=created_at,
        updated_at=updated_at,
        for_sale=db_container.for_sale,
    )


# --- Document helpers ---


def _aware(value: datetime | None) -> datetime:
    """SQLite hands back naive datetimes; everything in memory is UTC-aware."""
    if value is None:
        return utcnow()
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, str) and value:
        return _aware(datetime.fromisoformat(value))
    return utcnow()


def _allocation_to_doc(alloc: Allocation) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "card_id": alloc.card_id,
        "quantity": alloc.quantity,
        "is_in_sideboard": alloc.is_in_sideboard,
        "added_at": alloc.added_at.isoformat(),
    }
    # JSON documents never carry explicit nulls for optional fields
    if alloc.notes is not None:
        doc["notes"] = alloc.notes
    return doc


def _allocation_from_doc(doc: dict[str, Any]) -> Allocation:
    return Allocation(
        card_id=str(doc["card_id"]),
        quantity=int(doc["quantity"]),
        is_in_sideboard=bool(doc.get("is_in_sideboard", False)),
        notes=doc.get("notes"),
        added_at=_parse_timestamp(doc.get("added_at")),
    )


def _wishlist_item_to_doc(item: WishlistItem) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "scryfall_id": item.scryfall_id,
        "name": item.name,
        "edition": item.edition,
        "quantity": item.quantity,
        "condition": item.condition.value,
        "foil": item.foil,
        "is_in_sideboard": item.is_in_sideboard,
        "price": item.price,
        "image": item.image,
        "added_at": item.added_at.isoformat(),
    }
    if item.notes is not None:
        doc["notes"] = item.notes
    return doc


def _wishlist_item_from_doc(doc: dict[str, Any]) -> WishlistItem:
    return WishlistItem(
        scryfall_id=str(doc["scryfall_id"]),
        name=str(doc.get("name", "")),
        edition=str(doc.get("edition", "")),
        quantity=int(doc.get("quantity", 0)),
        condition=CardCondition(doc.get("condition", CardCondition.NEAR_MINT.value)),
        foil=bool(doc.get("foil", False)),
        is_in_sideboard=bool(doc.get("is_in_sideboard", False)),
        price=float(doc.get("price", 0.0)),
        image=str(doc.get("image", "")),
        notes=doc.get("notes"),
        added_at=_parse_timestamp(doc.get("added_at")),
    )


def _stats_to_doc(stats: ContainerStats) -> dict[str, Any]:
    return {
        "total_cards": stats.total_cards,
        "sideboard_cards": stats.sideboard_cards,
        "owned_cards": stats.owned_cards,
        "wishlist_cards": stats.wishlist_cards,
        "avg_price": stats.avg_price,
        "total_price": stats.total_price,
        "completion_percentage": stats.completion_percentage,
    }


def _stats_from_doc(doc: dict[str, Any]) -> ContainerStats:
    defaults = ContainerStats()
    return ContainerStats(
        total_cards=int(doc.get("total_cards", defaults.total_cards)),
        sideboard_cards=int(doc.get("sideboard_cards", defaults.sideboard_cards)),
        owned_cards=int(doc.get("owned_cards", defaults.owned_cards)),
        wishlist_cards=int(doc.get("wishlist_cards", defaults.wishlist_cards)),
        avg_price=float(doc.get("avg_price", defaults.avg_price)),
        total_price=float(doc.get("total_price", defaults.total_price)),
        completion_percentage=float(
            doc.get("completion_percentage", defaults.completion_percentage)
        ),
    )
