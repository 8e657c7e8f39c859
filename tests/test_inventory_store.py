"""Tests for the SQL-backed inventory store and inventory loading."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from cardkeeper.db import operations
from cardkeeper.db.store import SqlInventoryStore, load_inventory
from cardkeeper.models.card import Card, CardStatus
from cardkeeper.models.container import Allocation, Binder, ContainerKind, Deck
from cardkeeper.models.failure import PersistenceError
from cardkeeper.services.inventory import InventoryService

CREATED = datetime(2024, 3, 1, tzinfo=UTC)


def card(card_id: str, quantity: int = 4, status: CardStatus = CardStatus.COLLECTION) -> Card:
    return Card(
        id=card_id,
        user_id="user-123",
        scryfall_id=f"s-{card_id}",
        name=card_id.title(),
        edition="LEA",
        quantity=quantity,
        status=status,
        created_at=CREATED,
        updated_at=CREATED,
    )


def deck(deck_id: str, minutes: int = 0, allocations: list[Allocation] | None = None) -> Deck:
    created = CREATED.replace(minute=minutes)
    return Deck(
        id=deck_id,
        user_id="user-123",
        name=f"Deck {deck_id}",
        allocations=allocations or [],
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def sql_store(session: AsyncSession) -> SqlInventoryStore:
    return SqlInventoryStore(session)


class TestSqlInventoryStore:
    async def test_card_round_trip(self, sql_store: SqlInventoryStore) -> None:
        await sql_store.put_card(card("bolt"))

        loaded = await sql_store.get_card("user-123", "bolt")

        assert loaded == card("bolt")
        assert await sql_store.get_card("user-123", "missing") is None

    async def test_query_cards_by_field(self, sql_store: SqlInventoryStore) -> None:
        await sql_store.put_card(card("bolt"))
        await sql_store.put_card(card("wish", status=CardStatus.WISHLIST))

        found = await sql_store.query_cards_by_field("user-123", "status", CardStatus.WISHLIST)

        assert [c.id for c in found] == ["wish"]

    async def test_container_round_trip(self, sql_store: SqlInventoryStore) -> None:
        original = deck("a", allocations=[Allocation("bolt", 2, added_at=CREATED)])
        await sql_store.put_container(original)

        loaded = await sql_store.get_container("user-123", ContainerKind.DECK, "a")

        assert loaded == original

    async def test_deletes(self, sql_store: SqlInventoryStore) -> None:
        await sql_store.put_card(card("bolt"))
        await sql_store.put_container(deck("a"))

        assert await sql_store.delete_card("user-123", "bolt") is True
        assert await sql_store.delete_container("user-123", ContainerKind.DECK, "a") is True
        assert await sql_store.list_cards("user-123") == []

    async def test_failed_write_keeps_other_writes(
        self,
        sql_store: SqlInventoryStore,
        session: AsyncSession,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Each write has its own savepoint; one failure leaves the rest committed."""
        original_upsert = operations.upsert_container

        async def flaky_upsert(session, container):
            if container.id == "bad":
                raise OperationalError("UPDATE containers", {}, Exception("disk I/O error"))
            return await original_upsert(session, container)

        monkeypatch.setattr(operations, "upsert_container", flaky_upsert)

        await sql_store.put_container(deck("good"))
        with pytest.raises(PersistenceError) as exc_info:
            await sql_store.put_container(deck("bad"))
        await session.commit()

        assert "Deck bad" in exc_info.value.message
        stored = await sql_store.list_containers("user-123", ContainerKind.DECK)
        assert [d.id for d in stored] == ["good"]


class TestLoadInventory:
    async def test_loads_cards_and_containers(self, sql_store: SqlInventoryStore) -> None:
        await sql_store.put_card(card("bolt"))
        await sql_store.put_container(deck("b", minutes=5))
        await sql_store.put_container(deck("a"))
        await sql_store.put_container(
            Binder(id="x", user_id="user-123", name="Trades", created_at=CREATED)
        )
        await sql_store.put_card(
            Card(id="other", user_id="someone-else", scryfall_id="s", name="X", edition="LEA")
        )

        context = await load_inventory(sql_store, "user-123")

        assert [c.id for c in context.cards] == ["bolt"]
        assert [d.id for d in context.decks] == ["a", "b"]
        assert [b.id for b in context.binders] == ["x"]

    async def test_engine_against_database(self, sql_store: SqlInventoryStore) -> None:
        """Allocation overflow writes the wishlist card and the deck."""
        await sql_store.put_card(card("bolt", quantity=2))
        await sql_store.put_container(deck("a"))
        service = await InventoryService.load(sql_store, "user-123")

        result = await service.decks.allocate("a", "bolt", 3)

        assert result.allocated == 2
        assert result.wishlisted == 1
        wish = await sql_store.get_card("user-123", result.wishlist_card_id)
        assert wish.status == CardStatus.WISHLIST
        assert wish.quantity == 1
        stored = await sql_store.get_container("user-123", ContainerKind.DECK, "a")
        assert stored.claimed_quantity("bolt") == 2
        assert stored.claimed_quantity(wish.id) == 1
        assert stored.stats.owned_cards == 2
        assert stored.stats.wishlist_cards == 1
