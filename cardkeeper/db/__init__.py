from cardkeeper.db.database import get_session, init_db
from cardkeeper.db.operations import (
    card_to_model,
    container_to_model,
    delete_card,
    delete_container,
    get_card,
    get_container,
    list_cards,
    list_containers,
    query_cards_by_field,
    upsert_card,
    upsert_container,
)
from cardkeeper.db.store import InventoryStore, SqlInventoryStore, load_inventory

__all__ = [
    "InventoryStore",
    "SqlInventoryStore",
    "card_to_model",
    "container_to_model",
    "delete_card",
    "delete_container",
    "get_card",
    "get_container",
    "get_session",
    "init_db",
    "list_cards",
    "list_containers",
    "load_inventory",
    "query_cards_by_field",
    "upsert_card",
    "upsert_container",
]
