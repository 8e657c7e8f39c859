"""
Document store collaborator used by the allocation engine.

The engine only needs get / list / full-document put / delete for cards and
containers, plus one field query used to find wishlist cards. Any backend
offering those can be plugged in; ``SqlInventoryStore`` is the SQLAlchemy one.
"""

import logging
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardkeeper.db import operations
from cardkeeper.models.card import Card
from cardkeeper.models.container import Binder, Container, ContainerKind, Deck
from cardkeeper.models.failure import PersistenceError
from cardkeeper.models.inventory import InventoryContext

logger = logging.getLogger(__name__)


class InventoryStore(Protocol):
    """
    Persistence operations required by the engine and container stores.

    Write methods raise PersistenceError on failure.
    """

    async def get_card(self, user_id: str, card_id: str) -> Card | None: ...

    async def list_cards(self, user_id: str) -> list[Card]: ...

    async def put_card(self, card: Card) -> None: ...

    async def delete_card(self, user_id: str, card_id: str) -> bool: ...

    async def query_cards_by_field(self, user_id: str, field: str, value: Any) -> list[Card]: ...

    async def get_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> Container | None: ...

    async def list_containers(self, user_id: str, kind: ContainerKind) -> list[Container]: ...

    async def put_container(self, container: Container) -> None: ...

    async def delete_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> bool: ...


async def load_inventory(store: InventoryStore, user_id: str) -> InventoryContext:
    """Read a user's cards, decks and binders into a fresh context."""
    cards = await store.list_cards(user_id)
    decks = await store.list_containers(user_id, ContainerKind.DECK)
    binders = await store.list_containers(user_id, ContainerKind.BINDER)
    return InventoryContext(
        user_id=user_id,
        cards=cards,
        decks=[d for d in decks if isinstance(d, Deck)],
        binders=[b for b in binders if isinstance(b, Binder)],
    )


class SqlInventoryStore:
    """
    InventoryStore backed by an AsyncSession.

    Each write runs in its own SAVEPOINT so a failed write does not poison
    the writes around it; the surrounding transaction is committed by the
    session owner (see get_session).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_card(self, user_id: str, card_id: str) -> Card | None:
        db_card = await operations.get_card(self.session, user_id, card_id)
        return operations.card_to_model(db_card) if db_card else None

    async def list_cards(self, user_id: str) -> list[Card]:
        rows = await operations.list_cards(self.session, user_id)
        return [operations.card_to_model(c) for c in rows]

    async def query_cards_by_field(self, user_id: str, field: str, value: Any) -> list[Card]:
        rows = await operations.query_cards_by_field(self.session, user_id, field, value)
        return [operations.card_to_model(c) for c in rows]

    async def put_card(self, card: Card) -> None:
        try:
            async with self.session.begin_nested():
                await operations.upsert_card(self.session, card)
        except SQLAlchemyError as e:
            logger.error("Failed to write card %s: %s", card.id, e)
            raise PersistenceError("Could not save card", detail=str(e)) from e

    async def delete_card(self, user_id: str, card_id: str) -> bool:
        try:
            async with self.session.begin_nested():
                return await operations.delete_card(self.session, user_id, card_id)
        except SQLAlchemyError as e:
            logger.error("Failed to delete card %s: %s", card_id, e)
            raise PersistenceError("Could not delete card", detail=str(e)) from e

    async def get_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> Container | None:
        db_container = await operations.get_container(self.session, user_id, kind, container_id)
        return operations.container_to_model(db_container) if db_container else None

    async def list_containers(self, user_id: str, kind: ContainerKind) -> list[Container]:
        rows = await operations.list_containers(self.session, user_id, kind)
        return [operations.container_to_model(c) for c in rows]

    async def put_container(self, container: Container) -> None:
        try:
            async with self.session.begin_nested():
                await operations.upsert_container(self.session, container)
        except SQLAlchemyError as e:
            logger.error("Failed to write %s %s: %s", container.kind.value, container.id, e)
            raise PersistenceError(
                f"Could not save {container.kind.value} '{container.name}'", detail=str(e)
            ) from e

    async def delete_container(
        self, user_id: str, kind: ContainerKind, container_id: str
    ) -> bool:
        try:
            async with self.session.begin_nested():
                return await operations.delete_container(
                    self.session, user_id, kind, container_id
                )
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s %s: %s", kind.value, container_id, e)
            raise PersistenceError(f"Could not delete {kind.value}", detail=str(e)) from e
