"""Tests for binder API endpoints."""

import pytest
from httpx import AsyncClient

USER = "/users/user-123"


async def add_card(client: AsyncClient, scryfall_id: str, quantity: int) -> dict:
    response = await client.post(
        f"{USER}/cards",
        json={
            "scryfall_id": scryfall_id,
            "name": scryfall_id.title(),
            "edition": "LEA",
            "quantity": quantity,
        },
    )
    return response.json()


@pytest.fixture
async def binder(client: AsyncClient) -> dict:
    response = await client.post(f"{USER}/binders", json={"name": "Trade binder"})
    assert response.status_code == 201
    return response.json()


class TestBinderCrud:
    async def test_create_defaults(self, binder: dict) -> None:
        assert binder["is_public"] is True
        assert binder["for_sale"] is True
        assert binder["allocations"] == []

    async def test_list_and_update(self, client: AsyncClient, binder: dict) -> None:
        await client.patch(f"{USER}/binders/{binder['id']}", json={"for_sale": False})

        data = (await client.get(f"{USER}/binders")).json()

        assert data["count"] == 1
        assert data["binders"][0]["for_sale"] is False

    async def test_delete(self, client: AsyncClient, binder: dict) -> None:
        response = await client.delete(f"{USER}/binders/{binder['id']}")

        assert response.json() == {"binder_id": binder["id"], "deleted": True}
        assert (await client.get(f"{USER}/binders/{binder['id']}")).status_code == 404


class TestBinderAllocations:
    async def test_shares_pool_with_decks(self, client: AsyncClient, binder: dict) -> None:
        card = await add_card(client, "s-bolt", 3)
        deck = (await client.post(f"{USER}/decks", json={"name": "Burn"})).json()
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 2},
        )

        response = await client.post(
            f"{USER}/binders/{binder['id']}/allocations",
            json={"card_id": card["id"], "quantity": 2},
        )

        data = response.json()
        assert data["allocated"] == 1
        assert data["wishlisted"] == 1

        detail = (await client.get(f"{USER}/binders/{binder['id']}")).json()
        assert sorted(c["is_wishlist"] for c in detail["cards"]) == [False, True]
        assert all(c["is_in_sideboard"] is False for c in detail["cards"])

    async def test_bulk_allocate_caps(self, client: AsyncClient, binder: dict) -> None:
        bolt = await add_card(client, "s-bolt", 2)
        counter = await add_card(client, "s-counter", 1)

        response = await client.post(
            f"{USER}/binders/{binder['id']}/allocations/bulk",
            json={
                "items": [
                    {"card_id": bolt["id"], "quantity": 5},
                    {"card_id": counter["id"], "quantity": 1},
                ]
            },
        )

        assert response.json()["quantity"] == 3
        cards = (await client.get(f"{USER}/cards", params={"card_status": "wishlist"})).json()
        assert cards == []

    async def test_bulk_remove(self, client: AsyncClient, binder: dict) -> None:
        bolt = await add_card(client, "s-bolt", 2)
        await client.post(
            f"{USER}/binders/{binder['id']}/allocations",
            json={"card_id": bolt["id"], "quantity": 2},
        )

        response = await client.post(
            f"{USER}/binders/{binder['id']}/allocations/bulk-remove",
            json={"card_ids": [bolt["id"]]},
        )

        assert response.json()["quantity"] == 1
        detail = (await client.get(f"{USER}/binders/{binder['id']}")).json()
        assert detail["allocations"] == []

    async def test_resize_and_remove(self, client: AsyncClient, binder: dict) -> None:
        bolt = await add_card(client, "s-bolt", 4)
        await client.post(
            f"{USER}/binders/{binder['id']}/allocations",
            json={"card_id": bolt["id"], "quantity": 1},
        )

        resized = await client.put(
            f"{USER}/binders/{binder['id']}/allocations/{bolt['id']}", json={"quantity": 3}
        )
        too_many = await client.put(
            f"{USER}/binders/{binder['id']}/allocations/{bolt['id']}", json={"quantity": 9}
        )
        removed = await client.delete(f"{USER}/binders/{binder['id']}/allocations/{bolt['id']}")

        assert resized.json()["quantity"] == 3
        assert too_many.status_code == 409
        assert too_many.json()["max_available"] == 4
        assert removed.json()["outcome"] == "persisted"
