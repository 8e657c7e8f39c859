from collections.abc import Callable
from copy import deepcopy
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardkeeper.main import app
from cardkeeper.models.card import Card, CardCondition, CardStatus
from cardkeeper.models.container import Allocation, Binder, Container, ContainerKind, Deck
from cardkeeper.models.db import Base
from cardkeeper.models.failure import PersistenceError
from cardkeeper.models.inventory import InventoryContext
from cardkeeper.services.inventory import InventoryService

USER_ID = "user-123"
BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class FakeInventoryStore:
    """
    InventoryStore keeping documents in dicts.

    Stores copies so tests can tell what was written from what only changed
    in memory. Writes can be made to fail per container id or globally.
    """

    def __init__(self) -> None:
        self.cards: dict[str, Card] = {}
        self.containers: dict[tuple[ContainerKind, str], Container] = {}
        self.fail_card_writes = False
        self.fail_card_deletes: set[str] = set()
        self.fail_container_writes = False
        self.fail_container_ids: set[str] = set()
        self.card_writes: list[str] = []
        self.container_writes: list[str] = []

    async def get_card(self, user_id: str, card_id: str) -> Card | None:
        card = self.cards.get(card_id)
        if card is None or card.user_id != user_id:
            return None
        return deepcopy(card)

    async def list_cards(self, user_id: str) -> list[Card]:
        return [deepcopy(c) for c in self.cards.values() if c.user_id == user_id]

    async def put_card(self, card: Card) -> None:
        if self.fail_card_writes:
            raise PersistenceError("Could not save card", detail="simulated failure")
        self.cards[card.id] = deepcopy(card)
        self.card_writes.append(card.id)

    async def delete_card(self, user_id: str, card_id: str) -> bool:
        if card_id in self.fail_card_deletes:
            raise PersistenceError("Could not delete card", detail="simulated failure")
        return self.cards.pop(card_id, None) is not None

    async def query_cards_by_field(self, user_id: str, field: str, value: Any) -> list[Card]:
        return [
            deepcopy(c)
            for c in self.cards.values()
            if c.user_id == user_id and getattr(c, field) == value
        ]

    async def get_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> Container | None:
        container = self.containers.get((kind, container_id))
        return deepcopy(container) if container is not None else None

    async def list_containers(self, user_id: str, kind: ContainerKind) -> list[Container]:
        return [
            deepcopy(c)
            for (k, _), c in self.containers.items()
            if k == kind and c.user_id == user_id
        ]

    async def put_container(self, container: Container) -> None:
        if self.fail_container_writes or container.id in self.fail_container_ids:
            raise PersistenceError(
                f"Could not save {container.kind.value} '{container.name}'",
                detail="simulated failure",
            )
        self.containers[(container.kind, container.id)] = deepcopy(container)
        self.container_writes.append(container.id)

    async def delete_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> bool:
        return self.containers.pop((kind, container_id), None) is not None

    def stored_container(self, kind: ContainerKind, container_id: str) -> Container | None:
        return self.containers.get((kind, container_id))


@pytest.fixture
def store() -> FakeInventoryStore:
    return FakeInventoryStore()


@pytest.fixture
def context() -> InventoryContext:
    return InventoryContext(user_id=USER_ID)


@pytest.fixture
def service(context: InventoryContext, store: FakeInventoryStore) -> InventoryService:
    return InventoryService(context, store)


@pytest.fixture
def make_card(context: InventoryContext, store: FakeInventoryStore) -> Callable[..., Card]:
    """Add a card to both the context and the store."""

    def _make(
        card_id: str,
        quantity: int = 4,
        name: str = "Lightning Bolt",
        scryfall_id: str | None = None,
        edition: str = "LEA",
        condition: CardCondition = CardCondition.NEAR_MINT,
        foil: bool = False,
        status: CardStatus = CardStatus.COLLECTION,
        price: float = 1.0,
    ) -> Card:
        card = Card(
            id=card_id,
            user_id=USER_ID,
            scryfall_id=scryfall_id or f"scry-{card_id}",
            name=name,
            edition=edition,
            quantity=quantity,
            condition=condition,
            foil=foil,
            status=status,
            price=price,
        )
        context.cards.append(card)
        store.cards[card.id] = deepcopy(card)
        return card

    return _make


@pytest.fixture
def make_deck(context: InventoryContext, store: FakeInventoryStore) -> Callable[..., Deck]:
    """Add a deck created ``minutes`` after a fixed base time."""

    def _make(
        deck_id: str,
        minutes: int = 0,
        allocations: list[Allocation] | None = None,
    ) -> Deck:
        created = BASE_TIME + timedelta(minutes=minutes)
        deck = Deck(
            id=deck_id,
            user_id=USER_ID,
            name=f"Deck {deck_id}",
            allocations=list(allocations or []),
            created_at=created,
            updated_at=created,
        )
        context.add_container(deck)
        store.containers[(ContainerKind.DECK, deck.id)] = deepcopy(deck)
        return deck

    return _make


@pytest.fixture
def make_binder(context: InventoryContext, store: FakeInventoryStore) -> Callable[..., Binder]:
    """Add a binder created ``minutes`` after a fixed base time."""

    def _make(
        binder_id: str,
        minutes: int = 0,
        allocations: list[Allocation] | None = None,
    ) -> Binder:
        created = BASE_TIME + timedelta(minutes=minutes)
        binder = Binder(
            id=binder_id,
            user_id=USER_ID,
            name=f"Binder {binder_id}",
            allocations=list(allocations or []),
            created_at=created,
            updated_at=created,
        )
        context.add_container(binder)
        store.containers[(ContainerKind.BINDER, binder.id)] = deepcopy(binder)
        return binder

    return _make


@pytest.fixture
def assert_conserved(context: InventoryContext) -> Callable[[], None]:
    """Check that claims on every owned card are within its quantity."""

    def _check() -> None:
        for card in context.cards:
            if card.is_wishlist:
                continue
            assert context.total_claimed(card.id) <= card.quantity, card.id

    return _check


# --- Database fixtures ---


@pytest.fixture
async def async_engine():
    """In-memory SQLite engine with working SAVEPOINTs."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    # pysqlite defers BEGIN, which breaks begin_nested(); emit it ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, monkeypatch: pytest.MonkeyPatch):
    """Async test client whose requests use the in-memory database."""
    monkeypatch.setattr("cardkeeper.db.database.async_session_factory", session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
