"""Tests for per-card allocation summaries."""

from cardkeeper.models.card import CardCondition
from cardkeeper.models.container import Allocation, ContainerKind
from cardkeeper.services.allocation_summary import (
    available_quantity,
    build_allocation_index,
    card_allocation_summary,
    cards_with_allocations,
    check_quantity_reduction,
    find_card_variants,
    find_matching_collection_cards,
    total_allocated,
)


class TestAllocationIndex:
    def test_collects_claims_across_kinds(self, context, make_card, make_deck, make_binder) -> None:
        make_card("y", quantity=6)
        make_deck("a", allocations=[Allocation("y", 2), Allocation("y", 1, True)])
        make_binder("b", allocations=[Allocation("y", 3)])

        index = build_allocation_index(context)

        claims = index["y"]
        assert [(c.container_id, c.kind, c.quantity, c.is_in_sideboard) for c in claims] == [
            ("a", ContainerKind.DECK, 2, False),
            ("a", ContainerKind.DECK, 1, True),
            ("b", ContainerKind.BINDER, 3, False),
        ]
        assert claims[0].container_name == "Deck a"

    def test_binder_sideboard_flag_ignored(self, context, make_card, make_binder) -> None:
        make_card("y")
        make_binder("b", allocations=[Allocation("y", 1, True)])

        (claim,) = build_allocation_index(context)["y"]

        assert claim.is_in_sideboard is False


class TestCardQueries:
    def test_totals(self, context, make_card, make_deck) -> None:
        make_card("y", quantity=5)
        make_deck("a", allocations=[Allocation("y", 3)])

        assert total_allocated(context, "y") == 3
        assert available_quantity(context, "y") == 2

    def test_unknown_card(self, context) -> None:
        assert available_quantity(context, "missing") == 0
        assert card_allocation_summary(context, "missing") is None

    def test_summary(self, context, make_card, make_deck, make_binder) -> None:
        make_card("y", quantity=4)
        make_deck("a", allocations=[Allocation("y", 1)])
        make_binder("b", allocations=[Allocation("y", 2)])
        index = build_allocation_index(context)

        summary = card_allocation_summary(context, "y", index)

        assert summary.owned == 4
        assert summary.allocated == 3
        assert summary.available == 1
        assert {a.container_id for a in summary.allocations} == {"a", "b"}

    def test_cards_with_allocations(self, context, make_card, make_deck) -> None:
        make_card("y", quantity=2)
        make_card("z", quantity=1)
        make_deck("a", allocations=[Allocation("y", 2)])

        result = {c.card.id: c for c in cards_with_allocations(context)}

        assert result["y"].available_quantity == 0
        assert result["z"].allocated_quantity == 0
        assert result["z"].allocations == []


class TestMatching:
    def test_narrows_by_given_fields(self, context, make_card) -> None:
        make_card("nm", scryfall_id="s1", condition=CardCondition.NEAR_MINT)
        make_card("lp", scryfall_id="s1", condition=CardCondition.LIGHT_PLAY)
        make_card("foil", scryfall_id="s1", foil=True)
        make_card("other", scryfall_id="s2")

        assert len(find_card_variants(context, "s1")) == 3
        matches = find_matching_collection_cards(
            context, "s1", condition=CardCondition.NEAR_MINT, foil=False
        )
        assert [m.card.id for m in matches] == ["nm"]


class TestCheckQuantityReduction:
    def test_reduction_within_free_copies(self, context, make_card, make_deck) -> None:
        make_card("y", quantity=10)
        make_deck("a", allocations=[Allocation("y", 4)])

        check = check_quantity_reduction(context, "y", 5)

        assert check.can_reduce is True
        assert check.excess_amount == 0
        assert check.affected == []

    def test_reduction_below_claims(self, context, make_card, make_deck) -> None:
        make_card("y", quantity=10)
        make_deck("a", allocations=[Allocation("y", 3)])
        make_deck("b", minutes=1, allocations=[Allocation("y", 7)])

        check = check_quantity_reduction(context, "y", 5)

        assert check.can_reduce is False
        assert check.current_allocated == 10
        assert check.excess_amount == 5
        assert [a.container_id for a in check.affected] == ["a", "b"]

    def test_does_not_mutate(self, context, make_card, make_deck) -> None:
        card = make_card("y", quantity=2)
        deck = make_deck("a", allocations=[Allocation("y", 2)])

        check_quantity_reduction(context, "y", 0)

        assert card.quantity == 2
        assert deck.claimed_quantity("y") == 2
