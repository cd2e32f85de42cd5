from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from inkforge.config import DeckPolicy
from inkforge.filtering.candidate_pool import CandidatePool
from inkforge.models.card import CardRecord, FormatLegality, Tristate

REFERENCE_TIME = datetime(2025, 6, 1, tzinfo=UTC)

CardFactory = Callable[..., CardRecord]
PoolFactory = Callable[[list[CardRecord]], CandidatePool]


def _make_card(
    card_id: str,
    colors: tuple[str, ...] | str = ("Amber",),
    *,
    cost: int = 2,
    inkable: Tristate = Tristate.TRUE,
    legal_in: tuple[str, ...] = ("core", "infinity"),
    legalities: dict[str, FormatLegality] | None = None,
    name: str | None = None,
    **kwargs: Any,
) -> CardRecord:
    if isinstance(colors, str):
        colors = (colors,)
    if legalities is None:
        legalities = {fmt: FormatLegality(allowed=Tristate.TRUE) for fmt in legal_in}
    return CardRecord(
        card_id=card_id,
        name=name or f"Card {card_id}",
        colors=frozenset(colors),
        cost=cost,
        inkable=inkable,
        legalities=legalities,
        **kwargs,
    )


@pytest.fixture
def make_card() -> CardFactory:
    """Factory for CardRecords, legal in core and infinity by default."""
    return _make_card


@pytest.fixture
def make_pool() -> PoolFactory:
    """Pool ranked in list order with descending scores."""

    def factory(cards: list[CardRecord]) -> CandidatePool:
        return CandidatePool.from_ranked([(c, 1.0 - i / 1000) for i, c in enumerate(cards)])

    return factory


@pytest.fixture
def policy() -> DeckPolicy:
    return DeckPolicy()


@pytest.fixture
def reference_time() -> datetime:
    return REFERENCE_TIME


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """A search engine payload in the ingested card format."""
    return {
        "fullName": "Mickey Mouse - Brave Little Tailor",
        "name": "Mickey Mouse",
        "color": "Amber",
        "cost": 8,
        "inkwell": True,
        "set": "The First Chapter",
        "fullText": "Evasive",
        "flavorText": "Mickey's got this.",
        "maxCopiesInDeck": 4,
        "allowedInFormats": {
            "Core": {"allowed": True},
            "Infinity": {"allowed": True, "allowedFromTs": 1693526400},
        },
        "externalLinks": {"cardmarketUrl": "https://www.cardmarket.com/mickey"},
    }
