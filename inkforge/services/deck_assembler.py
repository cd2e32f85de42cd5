"""
Deck Assembler: Exact-Size, Single-Pass Deck Construction.

Builds a DeckPlan from a color-restricted, similarity-ranked pool.

Strategy:
1. Capacity check: the pool must be able to supply target_size copies
   under the copy caps, otherwise fail before building anything
2. Greedy fill: walk the pool in rank order, taking up to the cap of each
   card until the target is reached
3. Inkable balance: the ratio is computed over copies with known inkable
   status. If it falls outside the band, one adjustment pass swaps the
   worst-ranked copy of the over-represented class for the best-ranked
   copy of the under-represented class, one copy at a time
4. If the band still cannot be met, fail

INVARIANTS:
- total copies == target_size on every returned plan
- no card exceeds its effective copy cap
- same input produces the same plan
- an undersized deck is never returned
"""

import logging
import math
from dataclasses import dataclass, field

from inkforge.config import DeckPolicy
from inkforge.filtering.candidate_pool import CandidatePool, RankedCard
from inkforge.models.card import Tristate
from inkforge.models.failure import InsufficientCandidatesError

logger = logging.getLogger(__name__)

# Float slack for band bounds expressed as copy counts
_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class InkSwap:
    """One copy exchanged by the inkable adjustment pass."""

    removed: str
    added: str


@dataclass(frozen=True)
class DeckPlan:
    """
    The assembled deck, before display hydration.

    Attributes:
        counts: card_id -> copies, in rank order
        total_cards: Sum of all copies
        inkable_count: Copies known to be inkable
        non_inkable_count: Copies known not to be inkable
        unknown_count: Copies with unknown inkable status
        swaps: Exchanges made by the adjustment pass, in order
    """

    counts: dict[str, int]
    total_cards: int
    inkable_count: int
    non_inkable_count: int
    unknown_count: int
    swaps: tuple[InkSwap, ...] = field(default_factory=tuple)

    @property
    def inkable_ratio(self) -> float | None:
        """Share of inkable copies among copies with known status."""
        known = self.inkable_count + self.non_inkable_count
        if known == 0:
            return None
        return self.inkable_count / known


def _band_counts(policy: DeckPolicy, known: int) -> tuple[int, int]:
    """Inclusive range of inkable copies that keeps the ratio in band."""
    low = math.ceil(policy.ink_ratio_min * known - _EPSILON)
    high = math.floor(policy.ink_ratio_max * known + _EPSILON)
    return low, high


class _Builder:
    """Mutable working state for a single assembly. Never escapes assemble_deck."""

    def __init__(self, pool: CandidatePool, policy: DeckPolicy) -> None:
        self.cards: list[RankedCard] = list(pool)
        self.caps = {rc.card_id: rc.card.copy_cap(policy.copy_cap) for rc in self.cards}
        self.counts: dict[str, int] = {}
        self.swaps: list[InkSwap] = []

    def capacity(self) -> int:
        return sum(self.caps.values())

    def fill(self, target_size: int) -> None:
        remaining = target_size
        for rc in self.cards:
            if remaining == 0:
                break
            take = min(self.caps[rc.card_id], remaining)
            self.counts[rc.card_id] = take
            remaining -= take

    def count_by_status(self, status: Tristate) -> int:
        return sum(
            self.counts.get(rc.card_id, 0) for rc in self.cards if rc.card.inkable is status
        )

    def worst_in_deck(self, status: Tristate) -> RankedCard | None:
        for rc in reversed(self.cards):
            if rc.card.inkable is status and self.counts.get(rc.card_id, 0) > 0:
                return rc
        return None

    def best_with_capacity(self, status: Tristate) -> RankedCard | None:
        for rc in self.cards:
            if rc.card.inkable is not status:
                continue
            if self.counts.get(rc.card_id, 0) < self.caps[rc.card_id]:
                return rc
        return None

    def swap(self, donor: RankedCard, receiver: RankedCard) -> None:
        self.counts[donor.card_id] -= 1
        if self.counts[donor.card_id] == 0:
            del self.counts[donor.card_id]
        self.counts[receiver.card_id] = self.counts.get(receiver.card_id, 0) + 1
        self.swaps.append(InkSwap(removed=donor.card_id, added=receiver.card_id))

    def plan(self) -> DeckPlan:
        ordered = {
            rc.card_id: self.counts[rc.card_id] for rc in self.cards if rc.card_id in self.counts
        }
        return DeckPlan(
            counts=ordered,
            total_cards=sum(ordered.values()),
            inkable_count=self.count_by_status(Tristate.TRUE),
            non_inkable_count=self.count_by_status(Tristate.FALSE),
            unknown_count=self.count_by_status(Tristate.UNKNOWN),
            swaps=tuple(self.swaps),
        )


def assemble_deck(pool: CandidatePool, target_size: int, policy: DeckPolicy) -> DeckPlan:
    """
    Assemble an exact-size deck from a ranked pool.

    Args:
        pool: Legal, color-restricted candidates in rank order
        target_size: Exact number of copies required
        policy: Copy cap and inkable band

    Returns:
        DeckPlan with exactly target_size copies

    Raises:
        InsufficientCandidatesError: If the pool cannot supply enough copies,
            or the inkable band cannot be reached
    """
    if target_size <= 0:
        raise ValueError(f"target_size must be positive, got {target_size}")

    builder = _Builder(pool, policy)

    capacity = builder.capacity()
    if capacity < target_size:
        raise InsufficientCandidatesError(
            requested=target_size,
            available=capacity,
            detail=(
                f"{len(pool)} unique cards supply at most {capacity} copies "
                f"at a cap of {policy.copy_cap}"
            ),
        )

    builder.fill(target_size)

    inkable = builder.count_by_status(Tristate.TRUE)
    non_inkable = builder.count_by_status(Tristate.FALSE)
    known = inkable + non_inkable

    if known > 0:
        low, high = _band_counts(policy, known)
        if inkable < low or inkable > high:
            _adjust_ink_balance(builder, low, high)

    plan = builder.plan()
    logger.info(
        "deck_assembled",
        extra={
            "target_size": target_size,
            "unique_cards": len(plan.counts),
            "inkable_ratio": plan.inkable_ratio,
            "in_band": (
                policy.ratio_in_band(plan.inkable_ratio)
                if plan.inkable_ratio is not None
                else None
            ),
            "swaps": len(plan.swaps),
        },
    )
    return plan


def _adjust_ink_balance(builder: _Builder, low: int, high: int) -> None:
    """
    Single swap pass toward the band.

    Swaps keep the known-status total constant, so the band bounds in copy
    counts do not move, and each swap shifts the inkable count by one.

    Raises:
        InsufficientCandidatesError: If the band is still missed
    """
    inkable = builder.count_by_status(Tristate.TRUE)
    non_inkable = builder.count_by_status(Tristate.FALSE)
    known = inkable + non_inkable

    if low > high:
        raise InsufficientCandidatesError(
            requested=low,
            available=high,
            detail=f"No inkable count fits the band with {known} known-status copies",
        )

    if inkable < low:
        while inkable < low:
            donor = builder.worst_in_deck(Tristate.FALSE)
            receiver = builder.best_with_capacity(Tristate.TRUE)
            if donor is None or receiver is None:
                break
            builder.swap(donor, receiver)
            inkable += 1
    else:
        while inkable > high:
            donor = builder.worst_in_deck(Tristate.TRUE)
            receiver = builder.best_with_capacity(Tristate.FALSE)
            if donor is None or receiver is None:
                break
            builder.swap(donor, receiver)
            inkable -= 1

    logger.info(
        "ink_ratio_adjusted",
        extra={"swaps": len(builder.swaps), "inkable": inkable, "band": [low, high]},
    )

    if inkable < low:
        raise InsufficientCandidatesError(
            requested=low,
            available=inkable,
            detail=f"Needed {low - inkable} more inkable copies to reach the inkable band",
        )
    if inkable > high:
        required = known - high
        available = known - inkable
        raise InsufficientCandidatesError(
            requested=required,
            available=available,
            detail=(
                f"Needed {required - available} more non-inkable copies "
                "to stay under the inkable band"
            ),
        )
