"""Tests for collection API endpoints."""

from httpx import AsyncClient

USER = "/users/user-123"


async def add_card(client: AsyncClient, quantity: int = 4, **overrides) -> dict:
    payload = {
        "scryfall_id": "s-bolt",
        "name": "Lightning Bolt",
        "edition": "LEA",
        "quantity": quantity,
        "price": 2.0,
    }
    payload.update(overrides)
    response = await client.post(f"{USER}/cards", json=payload)
    assert response.status_code == 201
    return response.json()


async def add_deck(client: AsyncClient, name: str = "Burn") -> dict:
    response = await client.post(f"{USER}/decks", json={"name": name})
    assert response.status_code == 201
    return response.json()


class TestCards:
    async def test_list_empty(self, client: AsyncClient) -> None:
        response = await client.get(f"{USER}/cards")

        assert response.status_code == 200
        assert response.json() == []

    async def test_add_and_get(self, client: AsyncClient) -> None:
        created = await add_card(client, quantity=3)

        response = await client.get(f"{USER}/cards/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Lightning Bolt"
        assert data["quantity"] == 3
        assert data["condition"] == "NM"
        assert data["status"] == "collection"

    async def test_cards_are_per_user(self, client: AsyncClient) -> None:
        created = await add_card(client)

        response = await client.get(f"/users/other/cards/{created['id']}")

        assert response.status_code == 404

    async def test_filter_by_status(self, client: AsyncClient) -> None:
        await add_card(client)
        await add_card(client, scryfall_id="s-trade", status="trade")

        response = await client.get(f"{USER}/cards", params={"card_status": "trade"})

        assert [c["scryfall_id"] for c in response.json()] == ["s-trade"]

    async def test_rejects_negative_quantity(self, client: AsyncClient) -> None:
        response = await client.post(
            f"{USER}/cards",
            json={"scryfall_id": "s", "name": "X", "edition": "LEA", "quantity": -1},
        )

        assert response.status_code == 422

    async def test_update_fields(self, client: AsyncClient) -> None:
        created = await add_card(client)

        response = await client.patch(
            f"{USER}/cards/{created['id']}", json={"price": 5.5, "foil": True}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["card"]["price"] == 5.5
        assert data["card"]["foil"] is True
        assert data["reconciliation"]["outcome"] == "noop"

    async def test_update_missing_card(self, client: AsyncClient) -> None:
        response = await client.patch(f"{USER}/cards/missing", json={"price": 1.0})

        assert response.status_code == 404


class TestQuantityReconciliation:
    async def test_lowering_quantity_wishlists_deficit(self, client: AsyncClient) -> None:
        card = await add_card(client, quantity=4)
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 4},
        )

        response = await client.patch(f"{USER}/cards/{card['id']}", json={"quantity": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["card"]["quantity"] == 1
        recon = data["reconciliation"]
        assert recon["excess"] == 3
        assert recon["converted"] == 3
        assert recon["persisted_ids"] == [deck["id"]]
        assert recon["outcome"] == "persisted"

        wish = await client.get(f"{USER}/cards/{recon['wishlist_card_id']}")
        assert wish.json()["status"] == "wishlist"
        assert wish.json()["quantity"] == 3

    async def test_status_change_to_wishlist_still_reconciles(
        self, client: AsyncClient
    ) -> None:
        """Quantity drop is reconciled before the card becomes a wishlist card."""
        card = await add_card(client, quantity=4)
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 4},
        )

        response = await client.patch(
            f"{USER}/cards/{card['id']}", json={"status": "wishlist", "quantity": 1}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["card"]["status"] == "wishlist"
        assert data["card"]["quantity"] == 1
        recon = data["reconciliation"]
        assert recon["excess"] == 3
        assert recon["converted"] == 3
        assert recon["outcome"] == "persisted"

        detail = (await client.get(f"{USER}/decks/{deck['id']}")).json()
        rows = sorted((c["card_id"], c["requested_quantity"]) for c in detail["mainboard"])
        assert rows == sorted([(card["id"], 1), (recon["wishlist_card_id"], 3)])

    async def test_reduction_check(self, client: AsyncClient) -> None:
        card = await add_card(client, quantity=4)
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 3},
        )

        response = await client.get(
            f"{USER}/cards/{card['id']}/reduction-check", params={"new_quantity": 1}
        )

        data = response.json()
        assert data["can_reduce"] is False
        assert data["excess_amount"] == 2
        assert [a["container_id"] for a in data["affected"]] == [deck["id"]]

        # Nothing changed
        unchanged = await client.get(f"{USER}/cards/{card['id']}")
        assert unchanged.json()["quantity"] == 4

    async def test_allocation_summary(self, client: AsyncClient) -> None:
        card = await add_card(client, quantity=4)
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 1, "is_in_sideboard": True},
        )

        response = await client.get(f"{USER}/cards/{card['id']}/allocations")

        data = response.json()
        assert data["owned"] == 4
        assert data["allocated"] == 1
        assert data["available"] == 3
        assert data["allocations"][0]["kind"] == "deck"
        assert data["allocations"][0]["is_in_sideboard"] is True


class TestDeleteCard:
    async def test_delete_converts_claims(self, client: AsyncClient) -> None:
        card = await add_card(client, quantity=2)
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": card["id"], "quantity": 2},
        )

        response = await client.delete(f"{USER}/cards/{card['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] is True
        wish_id = data["reconciliation"]["wishlist_card_id"]
        assert wish_id is not None

        detail = (await client.get(f"{USER}/decks/{deck['id']}")).json()
        assert [(c["card_id"], c["is_wishlist"]) for c in detail["mainboard"]] == [
            (wish_id, True)
        ]
        assert detail["mainboard"][0]["requested_quantity"] == 2
        assert detail["stats"]["wishlist_cards"] == 2

    async def test_delete_missing(self, client: AsyncClient) -> None:
        response = await client.delete(f"{USER}/cards/missing")

        assert response.status_code == 404


class TestImport:
    async def test_import_adds_entries(self, client: AsyncClient) -> None:
        existing = await add_card(client, quantity=1)

        response = await client.post(
            f"{USER}/cards/import",
            json={
                "cards": [
                    {
                        "scryfall_id": "s-bolt",
                        "name": "Lightning Bolt",
                        "edition": "LEA",
                        "quantity": 2,
                    },
                    {
                        "scryfall_id": "s-counter",
                        "name": "Counterspell",
                        "edition": "ICE",
                        "quantity": 3,
                        "status": "trade",
                    },
                ]
            },
        )

        assert response.status_code == 201
        imported = response.json()
        assert [(c["name"], c["quantity"]) for c in imported] == [
            ("Lightning Bolt", 2),
            ("Counterspell", 3),
        ]
        assert imported[1]["status"] == "trade"

        cards = (await client.get(f"{USER}/cards")).json()
        assert len(cards) == 3
        assert existing["id"] in {c["id"] for c in cards}

    async def test_empty_import_rejected(self, client: AsyncClient) -> None:
        response = await client.post(f"{USER}/cards/import", json={"cards": []})

        assert response.status_code == 422


class TestDeleteAllCards:
    async def test_clears_collection_and_keeps_deck_shape(self, client: AsyncClient) -> None:
        bolt = await add_card(client, quantity=2)
        await add_card(client, scryfall_id="s-counter", name="Counterspell")
        deck = await add_deck(client)
        await client.post(
            f"{USER}/decks/{deck['id']}/allocations",
            json={"card_id": bolt["id"], "quantity": 2},
        )

        response = await client.delete(f"{USER}/cards")

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] == 2
        assert [(r["card_id"], r["converted"]) for r in data["reconciliations"]] == [
            (bolt["id"], 2)
        ]

        cards = (await client.get(f"{USER}/cards")).json()
        assert [(c["name"], c["status"], c["quantity"]) for c in cards] == [
            ("Lightning Bolt", "wishlist", 2)
        ]
        detail = (await client.get(f"{USER}/decks/{deck['id']}")).json()
        assert [(c["card_id"], c["is_wishlist"]) for c in detail["mainboard"]] == [
            (cards[0]["id"], True)
        ]

    async def test_empty_collection(self, client: AsyncClient) -> None:
        response = await client.delete(f"{USER}/cards")

        assert response.json() == {"deleted": 0, "reconciliations": []}
