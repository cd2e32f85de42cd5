"""
Deck API endpoints.

Provides the endpoint that builds a deck from a free-text request.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from inkforge.config import DEFAULT_DECK_SIZE, DeckPolicy, settings
from inkforge.models.failure import ApiResponse, finalize_response
from inkforge.retrieval.clients import Embedder, OllamaEmbedder, QdrantSearchEngine, SearchEngine
from inkforge.services.card_corpus import CardCorpus, get_card_corpus
from inkforge.services.deck_builder import BuiltDeck, DeckRequest, build_deck
from inkforge.services.deck_formatter import format_deck_text

router = APIRouter(prefix="/decks", tags=["decks"])


class BuildDeckRequest(BaseModel):
    """Request body for deck building."""

    free_text: str = Field(..., description="Theme of the deck, in plain words")
    deck_size: int = DEFAULT_DECK_SIZE
    format: str = "core"
    colors: list[str] | None = Field(default=None, description="One or two inks")
    cost_min: int | None = None
    cost_max: int | None = None


class DeckEntryResponse(BaseModel):
    """One card line of a built deck."""

    card_id: str
    name: str
    count: int
    inkable: bool | None = None
    link: str = ""


class BuiltDeckResponse(BaseModel):
    """Response model for a built deck."""

    cards: list[DeckEntryResponse] = Field(default_factory=list)
    colors: list[str]
    format: str
    total_cards: int
    inkable_count: int
    non_inkable_count: int
    unknown_count: int
    inkable_ratio: float | None = None
    notes: list[str] = Field(default_factory=list)
    text: str = ""

    @classmethod
    def from_deck(cls, deck: BuiltDeck) -> "BuiltDeckResponse":
        return cls(
            cards=[
                DeckEntryResponse(
                    card_id=e.card_id,
                    name=e.name,
                    count=e.count,
                    inkable=e.inkable,
                    link=e.link,
                )
                for e in deck.entries
            ],
            colors=deck.colors,
            format=deck.format,
            total_cards=deck.total_cards,
            inkable_count=deck.inkable_count,
            non_inkable_count=deck.non_inkable_count,
            unknown_count=deck.unknown_count,
            inkable_ratio=deck.inkable_ratio,
            notes=deck.notes,
            text=format_deck_text(deck),
        )


def get_embedder() -> Embedder:
    return OllamaEmbedder()


def get_search_engine() -> SearchEngine:
    return QdrantSearchEngine()


def get_corpus() -> CardCorpus | None:
    return get_card_corpus()


def get_policy() -> DeckPolicy:
    return DeckPolicy.from_settings(settings)


@router.post("/build", response_model=ApiResponse[BuiltDeckResponse])
async def build(
    body: BuildDeckRequest,
    embedder: Annotated[Embedder, Depends(get_embedder)],
    search_engine: Annotated[SearchEngine, Depends(get_search_engine)],
    corpus: Annotated[CardCorpus | None, Depends(get_corpus)],
    policy: Annotated[DeckPolicy, Depends(get_policy)],
) -> ApiResponse[BuiltDeckResponse]:
    """
    Build a deck from a free-text request.

    Known failures (invalid input, too few candidates, search outage) are
    raised as KnownError and turned into the failure envelope by the app.
    """
    deck = await build_deck(
        DeckRequest(
            free_text=body.free_text,
            deck_size=body.deck_size,
            format=body.format,
            colors=body.colors,
            cost_min=body.cost_min,
            cost_max=body.cost_max,
        ),
        embedder=embedder,
        search_engine=search_engine,
        policy=policy,
        corpus=corpus,
        search_limit=settings.search_limit,
        retrieval_timeout=settings.retrieval_timeout,
    )
    response = ApiResponse[BuiltDeckResponse].success(BuiltDeckResponse.from_deck(deck))
    finalize_response(response)
    return response
