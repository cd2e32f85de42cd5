"""
Deck building pipeline.

Turns a free-text thematic request into a legal, exact-size deck.

Strategy:
1. Validate the request before any external call
2. Build the retrieval filter from explicit colors and cost range
3. Retrieve a similarity-ranked candidate pool (one embed, one search)
4. Drop cards illegal in the requested format at the reference time
5. Infer a color identity from the pool unless colors were given
6. Restrict the pool to that identity and assemble the deck
7. Hydrate display fields from the corpus when one is available

Only retrieval suspends. Every later step is a pure function over an
immutable BuildContext. No partial deck is ever returned.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from inkforge.config import DEFAULT_DECK_SIZE, DeckPolicy
from inkforge.filtering.candidate_pool import CandidatePool, ColorChoice
from inkforge.filtering.search_filter import SearchFilters, build_search_filter
from inkforge.models.card import KNOWN_INKS, CardRecord, normalize_ink
from inkforge.models.failure import InvalidRequestError
from inkforge.models.legality_context import DeckFormat, LegalityContext, filter_by_legality
from inkforge.retrieval.clients import Embedder, SearchEngine
from inkforge.retrieval.retriever import CandidateRetriever
from inkforge.services.card_corpus import CardCorpus
from inkforge.services.color_inference import infer_colors
from inkforge.services.deck_assembler import DeckPlan, assemble_deck

logger = logging.getLogger(__name__)

# Explicit color requests may name one or two inks
MAX_DECK_COLORS = 2


@dataclass
class DeckRequest:
    """Parameters for deck building."""

    free_text: str  # Theme to build around
    deck_size: int = DEFAULT_DECK_SIZE
    format: str = DeckFormat.CORE.value
    colors: list[str] | None = None  # Explicit identity, skips inference
    cost_min: int | None = None
    cost_max: int | None = None


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Validated, request-scoped inputs threaded through the pipeline."""

    free_text: str
    deck_size: int
    legality: LegalityContext
    filters: SearchFilters
    explicit_colors: ColorChoice | None
    policy: DeckPolicy


@dataclass(frozen=True, slots=True)
class DeckEntry:
    """One line of a built deck."""

    card_id: str
    name: str
    count: int
    inkable: bool | None
    link: str = ""


@dataclass
class BuiltDeck:
    """A deck ready to serialize."""

    entries: list[DeckEntry]
    colors: list[str]
    format: str
    total_cards: int
    inkable_count: int
    non_inkable_count: int
    unknown_count: int
    inkable_ratio: float | None
    notes: list[str] = field(default_factory=list)


def validate_request(
    request: DeckRequest,
    policy: DeckPolicy,
    reference_time: datetime | None = None,
) -> BuildContext:
    """
    Check a request and freeze it into a BuildContext.

    Raises:
        InvalidRequestError: On empty text, non-positive deck size, unsupported
            format, bad explicit colors or an invalid cost range
    """
    text = request.free_text.strip() if isinstance(request.free_text, str) else ""
    if not text:
        raise InvalidRequestError("Describe the deck you want to build.")

    if request.deck_size <= 0:
        raise InvalidRequestError(f"Deck size must be positive, got {request.deck_size}")

    deck_format = DeckFormat.parse(request.format)
    legality = (
        LegalityContext.at(deck_format, reference_time)
        if reference_time is not None
        else LegalityContext.current(deck_format)
    )

    explicit = _parse_explicit_colors(request.colors)

    filters = SearchFilters(
        colors=tuple(explicit.as_list()) if explicit else None,
        cost_min=request.cost_min,
        cost_max=request.cost_max,
        format=deck_format.value,
    )

    return BuildContext(
        free_text=text,
        deck_size=request.deck_size,
        legality=legality,
        filters=filters,
        explicit_colors=explicit,
        policy=policy,
    )


def _parse_explicit_colors(colors: list[str] | None) -> ColorChoice | None:
    if colors is None:
        return None

    inks: list[str] = []
    for raw in colors:
        ink = normalize_ink(raw) if isinstance(raw, str) else None
        if ink is None:
            raise InvalidRequestError(
                f"Unknown ink color: {raw!r}",
                detail=f"Known inks: {', '.join(KNOWN_INKS)}",
            )
        if ink not in inks:
            inks.append(ink)

    if not inks or len(inks) > MAX_DECK_COLORS:
        raise InvalidRequestError(
            f"A deck uses one or two inks, got {len(inks)}",
        )
    return ColorChoice(primary=inks[0], secondary=inks[1] if len(inks) > 1 else None)


async def build_deck(
    request: DeckRequest,
    *,
    embedder: Embedder,
    search_engine: SearchEngine,
    policy: DeckPolicy,
    corpus: CardCorpus | None = None,
    search_limit: int,
    retrieval_timeout: float | None,
    reference_time: datetime | None = None,
) -> BuiltDeck:
    """
    Build a deck for a free-text request.

    Args:
        request: Deck building parameters
        embedder: Embedding provider
        search_engine: Vector search engine
        policy: Copy cap, inkable band and mono-color threshold
        corpus: Read-only corpus for display fields, if loaded
        search_limit: Candidates requested from the search engine
        retrieval_timeout: Bound on the retrieval step, in seconds
        reference_time: Instant for legality windows. Defaults to now (UTC).

    Returns:
        BuiltDeck with exactly request.deck_size cards

    Raises:
        InvalidRequestError: Before retrieval, if the request is invalid
        RetrievalFailureError: If embedding or search fails
        InsufficientCandidatesError: If no valid deck can be assembled
    """
    context = validate_request(request, policy, reference_time)

    retriever = CandidateRetriever(embedder, search_engine, timeout=retrieval_timeout)
    pool = await retriever.retrieve(
        context.free_text,
        build_search_filter(context.filters),
        search_limit,
    )

    return assemble_from_pool(context, pool, corpus)


def assemble_from_pool(
    context: BuildContext,
    pool: CandidatePool,
    corpus: CardCorpus | None = None,
) -> BuiltDeck:
    """Synchronous tail of the pipeline, from retrieved pool to BuiltDeck."""
    legal = filter_by_legality(pool, context.legality)

    choice = context.explicit_colors or infer_colors(
        legal.color_view(), context.policy.mono_color_threshold
    )
    restricted = legal.restrict_to_colors(choice)
    logger.info(
        "pool_restricted_to_colors",
        extra={"colors": choice.as_list(), "before": len(legal), "after": len(restricted)},
    )

    plan = assemble_deck(restricted, context.deck_size, context.policy)
    records = {rc.card_id: rc.card for rc in restricted}
    return _hydrate(plan, records, choice, context, corpus)


def _hydrate(
    plan: DeckPlan,
    records: dict[str, CardRecord],
    choice: ColorChoice,
    context: BuildContext,
    corpus: CardCorpus | None,
) -> BuiltDeck:
    entries: list[DeckEntry] = []
    for card_id, count in plan.counts.items():
        card = records[card_id]
        display: CardRecord | None = None
        if corpus is not None:
            # Engine ids may differ from corpus ids; fall back to the card name
            display = corpus.get(card_id) or corpus.find_by_name(card.name)
        source = display or card
        entries.append(
            DeckEntry(
                card_id=card_id,
                name=source.name,
                count=count,
                # Inkable status always comes from the record the plan was built from
                inkable=card.inkable.as_bool(),
                link=source.link or card.link,
            )
        )

    notes: list[str] = []
    if plan.swaps:
        notes.append(f"Swapped {len(plan.swaps)} copies to balance inkable cards")
    if plan.unknown_count:
        notes.append(f"{plan.unknown_count} copies have unknown inkable status")

    return BuiltDeck(
        entries=entries,
        colors=choice.as_list(),
        format=context.legality.format_name,
        total_cards=plan.total_cards,
        inkable_count=plan.inkable_count,
        non_inkable_count=plan.non_inkable_count,
        unknown_count=plan.unknown_count,
        inkable_ratio=plan.inkable_ratio,
        notes=notes,
    )
