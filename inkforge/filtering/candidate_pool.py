"""
Candidate Pool: Similarity-Ranked, Immutable.

The pool is what the retriever returns and what every later stage narrows.

INVARIANTS:
- Filtering is monotonic (only removes cards, never adds)
- Filtering keeps rank order; nothing downstream re-ranks
- Rank is the 0-based position in the similarity order (0 = most relevant)
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from inkforge.models.card import CardRecord


@dataclass(frozen=True, slots=True)
class RankedCard:
    """A retrieved card with its similarity score and rank."""

    card: CardRecord
    score: float
    rank: int

    @property
    def card_id(self) -> str:
        return self.card.card_id


@dataclass(frozen=True, slots=True)
class ColorTagView:
    """
    The only view of a card that color inference may see.

    Carries identity, color tags and rank. Descriptive text and
    every other card field are deliberately absent.
    """

    card_id: str
    colors: frozenset[str]
    rank: int


@dataclass(frozen=True, slots=True)
class ColorChoice:
    """A 1-2 color deck identity."""

    primary: str
    secondary: str | None = None

    def __post_init__(self) -> None:
        if self.secondary is not None and self.secondary == self.primary:
            raise ValueError(f"Secondary color duplicates primary: {self.primary}")

    @property
    def colors(self) -> frozenset[str]:
        if self.secondary is None:
            return frozenset({self.primary})
        return frozenset({self.primary, self.secondary})

    @property
    def is_mono(self) -> bool:
        return self.secondary is None

    def as_list(self) -> list[str]:
        return [self.primary] if self.secondary is None else [self.primary, self.secondary]


@dataclass(frozen=True, slots=True)
class CandidatePool:
    """Similarity-ranked, immutable sequence of candidates."""

    cards: tuple[RankedCard, ...] = ()

    @classmethod
    def from_ranked(cls, ranked: list[tuple[CardRecord, float]]) -> "CandidatePool":
        """Build a pool from (card, score) pairs already in similarity order."""
        return cls(
            tuple(
                RankedCard(card=card, score=score, rank=i)
                for i, (card, score) in enumerate(ranked)
            )
        )

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[RankedCard]:
        return iter(self.cards)

    def __bool__(self) -> bool:
        return bool(self.cards)

    def filter(self, predicate: Callable[[CardRecord], bool]) -> "CandidatePool":
        """Keep the cards matching predicate. Ranks are preserved, not recomputed."""
        return CandidatePool(tuple(rc for rc in self.cards if predicate(rc.card)))

    def color_view(self) -> tuple[ColorTagView, ...]:
        return tuple(
            ColorTagView(card_id=rc.card.card_id, colors=rc.card.colors, rank=rc.rank)
            for rc in self.cards
        )

    def restrict_to_colors(self, choice: ColorChoice) -> "CandidatePool":
        """
        Keep cards playable under the chosen identity.

        Every color tag of a card must be inside the identity, so a
        dual-ink card survives only when both of its inks were chosen.
        """
        allowed = choice.colors
        return self.filter(lambda card: card.colors <= allowed)

    def card_ids(self) -> list[str]:
        return [rc.card.card_id for rc in self.cards]
