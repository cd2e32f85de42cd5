"""
Tests for deck assembly.

INVARIANT: Deck size is a HARD CONSTRAINT, not a preference.
Every returned plan holds exactly the requested number of copies, no card
exceeds its copy cap, and the inkable ratio is inside the band whenever it
can be computed. Anything else is an InsufficientCandidatesError.
"""

from collections.abc import Callable

import pytest

from inkforge.config import DeckPolicy
from inkforge.filtering.candidate_pool import CandidatePool
from inkforge.models.card import CardRecord, Tristate
from inkforge.models.failure import FailureKind, InsufficientCandidatesError
from inkforge.services.deck_assembler import DeckPlan, InkSwap, assemble_deck

CardFactory = Callable[..., CardRecord]
PoolFactory = Callable[[list[CardRecord]], CandidatePool]


def _inkable_then_not(make_card: CardFactory, inkable: int, non_inkable: int) -> list[CardRecord]:
    cards = [make_card(f"ink{i}", inkable=Tristate.TRUE) for i in range(inkable)]
    cards += [make_card(f"dry{i}", inkable=Tristate.FALSE) for i in range(non_inkable)]
    return cards


def _assert_plan_invariants(plan: DeckPlan, size: int, policy: DeckPolicy) -> None:
    assert plan.total_cards == size
    assert sum(plan.counts.values()) == size
    assert all(1 <= count <= policy.copy_cap for count in plan.counts.values())
    if plan.inkable_ratio is not None:
        assert policy.ratio_in_band(plan.inkable_ratio)


class TestCapacity:
    """Tests for the up-front capacity check."""

    def test_twelve_unique_cards_cannot_fill_sixty(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """12 unique cards at 4 copies supply 48, short by 12."""
        pool = make_pool([make_card(str(i)) for i in range(12)])

        with pytest.raises(InsufficientCandidatesError) as exc_info:
            assemble_deck(pool, 60, policy)

        error = exc_info.value
        assert error.kind == FailureKind.INSUFFICIENT_CANDIDATES
        assert error.status_code == 422
        assert (error.requested, error.available, error.shortfall) == (60, 48, 12)

    def test_empty_pool_fails(self, make_pool: PoolFactory, policy: DeckPolicy) -> None:
        with pytest.raises(InsufficientCandidatesError):
            assemble_deck(make_pool([]), 60, policy)

    def test_per_card_limit_counts_toward_capacity(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """A card limited to one copy supplies one copy."""
        cards = [make_card(str(i), inkable=Tristate.UNKNOWN) for i in range(14)]
        cards.append(make_card("unique", inkable=Tristate.UNKNOWN, max_copies=1))
        pool = make_pool(cards)

        with pytest.raises(InsufficientCandidatesError) as exc_info:
            assemble_deck(pool, 60, policy)

        assert exc_info.value.available == 57

    def test_non_positive_size_rejected(self, make_pool: PoolFactory, policy: DeckPolicy) -> None:
        with pytest.raises(ValueError):
            assemble_deck(make_pool([]), 0, policy)


class TestGreedyFill:
    """Tests for rank-order filling."""

    def test_fills_exactly_in_rank_order(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """Top-ranked cards take the full cap; the remainder goes to the next card."""
        # Every fourth card is non-inkable: 12 non-inkable copies of 50 leave a ratio of 0.76
        cards = [
            make_card(str(i), inkable=Tristate.FALSE if i % 4 == 3 else Tristate.TRUE)
            for i in range(20)
        ]
        plan = assemble_deck(make_pool(cards), 50, policy)

        assert list(plan.counts) == [str(i) for i in range(13)]
        assert plan.counts["12"] == 2
        assert plan.swaps == ()
        _assert_plan_invariants(plan, 50, policy)

    def test_per_card_limit_is_honoured(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        cards = [make_card("limited", inkable=Tristate.UNKNOWN, max_copies=1)]
        cards += [make_card(str(i), inkable=Tristate.UNKNOWN) for i in range(20)]

        plan = assemble_deck(make_pool(cards), 60, policy)

        assert plan.counts["limited"] == 1
        assert plan.total_cards == 60

    def test_unknown_inkable_counts_toward_size_only(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """A deck of unknown-status cards has no ratio and needs no balancing."""
        cards = [make_card(str(i), inkable=Tristate.UNKNOWN) for i in range(15)]

        plan = assemble_deck(make_pool(cards), 60, policy)

        assert plan.unknown_count == 60
        assert plan.inkable_ratio is None
        assert plan.swaps == ()

    def test_ratio_ignores_unknown_copies(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        cards = [make_card(f"u{i}", inkable=Tristate.UNKNOWN) for i in range(5)]
        cards += [make_card(f"i{i}", inkable=Tristate.TRUE) for i in range(3)]
        cards += [make_card("n0", inkable=Tristate.FALSE)]

        plan = assemble_deck(make_pool(cards), 36, policy)

        assert plan.unknown_count == 20
        assert (plan.inkable_count, plan.non_inkable_count) == (12, 4)
        assert plan.inkable_ratio == pytest.approx(0.75)


class TestInkBalance:
    """Tests for the inkable adjustment pass."""

    def test_too_many_inkable_swaps_in_non_inkable(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """Worst-ranked inkable copies give way to best-ranked non-inkable ones."""
        pool = make_pool(_inkable_then_not(make_card, inkable=15, non_inkable=5))

        plan = assemble_deck(pool, 60, policy)

        assert plan.inkable_count == 48
        assert plan.non_inkable_count == 12
        assert len(plan.swaps) == 12
        assert plan.swaps[0] == InkSwap(removed="ink14", added="dry0")
        assert "ink14" not in plan.counts
        assert [plan.counts[f"dry{i}"] for i in range(3)] == [4, 4, 4]
        _assert_plan_invariants(plan, 60, policy)

    def test_too_few_inkable_swaps_in_inkable(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        cards = [make_card(f"dry{i}", inkable=Tristate.FALSE) for i in range(5)]
        cards += [make_card(f"ink{i}", inkable=Tristate.TRUE) for i in range(15)]

        plan = assemble_deck(make_pool(cards), 60, policy)

        assert plan.inkable_count == 42
        assert plan.swaps[0] == InkSwap(removed="dry4", added="ink10")
        _assert_plan_invariants(plan, 60, policy)

    def test_band_unreachable_fails_with_missing_copies(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        """Only 40 inkable copies exist where 42 are needed."""
        cards = [make_card(f"dry{i}", inkable=Tristate.FALSE) for i in range(10)]
        cards += [make_card(f"ink{i}", inkable=Tristate.TRUE) for i in range(10)]

        with pytest.raises(InsufficientCandidatesError) as exc_info:
            assemble_deck(make_pool(cards), 60, policy)

        error = exc_info.value
        assert (error.requested, error.available, error.shortfall) == (42, 40, 2)
        assert "2 more inkable" in (error.detail or "")

    def test_no_non_inkable_cards_fails(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        pool = make_pool(_inkable_then_not(make_card, inkable=15, non_inkable=0))

        with pytest.raises(InsufficientCandidatesError) as exc_info:
            assemble_deck(pool, 60, policy)

        assert exc_info.value.shortfall == 12
        assert "non-inkable" in (exc_info.value.detail or "")

    @pytest.mark.parametrize(
        ("ink_min", "ink_max"),
        [(0.60, 0.70), (0.70, 0.80), (0.75, 0.85), (0.50, 0.50)],
    )
    @pytest.mark.parametrize("copy_cap", [2, 3, 4])
    def test_band_met_for_any_policy(
        self,
        make_card: CardFactory,
        make_pool: PoolFactory,
        ink_min: float,
        ink_max: float,
        copy_cap: int,
    ) -> None:
        """With enough of both classes, every band and cap is satisfied."""
        policy = DeckPolicy(copy_cap=copy_cap, ink_ratio_min=ink_min, ink_ratio_max=ink_max)
        pool = make_pool(_inkable_then_not(make_card, inkable=30, non_inkable=30))

        plan = assemble_deck(pool, 60, policy)

        _assert_plan_invariants(plan, 60, policy)


class TestDeterminism:
    """Same input, same plan."""

    def test_identical_plans(
        self, make_card: CardFactory, make_pool: PoolFactory, policy: DeckPolicy
    ) -> None:
        pool = make_pool(_inkable_then_not(make_card, inkable=12, non_inkable=8))

        first = assemble_deck(pool, 60, policy)
        second = assemble_deck(pool, 60, policy)

        assert first == second
        assert list(first.counts.items()) == list(second.counts.items())
