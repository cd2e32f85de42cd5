"""
Search Filter Builder: Declarative Filters to Engine Syntax.

Turns SearchFilters into a Qdrant filter expression. Categories combine
with AND (must); colors within their category combine with OR (should).

An empty SearchFilters yields None, which the engine treats as
"match everything". Format legality is never part of the filter; it is
enforced after retrieval by the legality filter.

The same expression grammar is evaluated in process by evaluate_filter,
so the retriever can drop hits the approximate engine let through.

The collection is expected to index normalized payload fields: a "colors"
keyword list of canonical ink names, an integer "cost" and a boolean
"inkwell". Points that only carry the raw LorcanaJSON "color" string still
decode (CardRecord.from_payload falls back to it) but never match a color
clause at the engine, so explicit-color requests return none of them.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from inkforge.models.card import KNOWN_INKS, CardRecord, Tristate, normalize_ink
from inkforge.models.failure import InvalidRequestError

# Payload field names in the card collection
COLORS_FIELD = "colors"
COST_FIELD = "cost"
INKWELL_FIELD = "inkwell"

FilterExpression = dict[str, Any]


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """
    Declarative retrieval constraints, built per request.

    Attributes:
        colors: Requested inks; a card matches if it carries any of them
        cost_min: Inclusive lower cost bound
        cost_max: Inclusive upper cost bound
        inkable: Required inkable status
        format: Carried for logging; never translated into the filter
    """

    colors: tuple[str, ...] | None = None
    cost_min: int | None = None
    cost_max: int | None = None
    inkable: bool | None = None
    format: str | None = None

    def __post_init__(self) -> None:
        if self.colors is not None:
            if not self.colors:
                raise InvalidRequestError("Color filter must name at least one ink.")
            unknown = [c for c in self.colors if normalize_ink(c) is None]
            if unknown:
                raise InvalidRequestError(
                    f"Unknown ink color(s): {', '.join(unknown)}",
                    detail=f"Known inks: {', '.join(KNOWN_INKS)}",
                )
        for name in ("cost_min", "cost_max"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidRequestError(f"{name} must not be negative, got {value}")
        if self.cost_min is not None and self.cost_max is not None:
            if self.cost_min > self.cost_max:
                raise InvalidRequestError(
                    f"cost_min ({self.cost_min}) exceeds cost_max ({self.cost_max})"
                )

    @property
    def is_empty(self) -> bool:
        return (
            self.colors is None
            and self.cost_min is None
            and self.cost_max is None
            and self.inkable is None
        )


def build_search_filter(filters: SearchFilters) -> FilterExpression | None:
    """
    Translate SearchFilters into a Qdrant filter.

    Returns:
        The filter dict, or None when no constraint is set
    """
    if filters.is_empty:
        return None

    must: list[dict[str, Any]] = []

    if filters.colors is not None:
        inks = sorted({normalize_ink(c) or c for c in filters.colors})
        must.append({"should": [{"key": COLORS_FIELD, "match": {"value": ink}} for ink in inks]})

    if filters.cost_min is not None or filters.cost_max is not None:
        bounds: dict[str, int] = {}
        if filters.cost_min is not None:
            bounds["gte"] = filters.cost_min
        if filters.cost_max is not None:
            bounds["lte"] = filters.cost_max
        must.append({"key": COST_FIELD, "range": bounds})

    if filters.inkable is not None:
        must.append({"key": INKWELL_FIELD, "match": {"value": filters.inkable}})

    return {"must": must}


# =============================================================================
# IN-PROCESS EVALUATION
# =============================================================================


def evaluate_filter(expression: Mapping[str, Any] | None, card: CardRecord) -> bool:
    """
    Evaluate a filter expression against a card.

    None matches every card. A card with unknown inkable status never
    satisfies an inkable clause, whichever value the clause asks for.

    Raises:
        ValueError: If the expression uses a key or clause outside the grammar
    """
    if expression is None:
        return True
    return _evaluate_node(expression, card)


def _evaluate_node(node: Mapping[str, Any], card: CardRecord) -> bool:
    if "key" in node:
        return _evaluate_condition(node, card)

    must = node.get("must")
    if must is not None and not all(_evaluate_node(child, card) for child in must):
        return False

    should = node.get("should")
    if should is not None and should and not any(_evaluate_node(child, card) for child in should):
        return False

    must_not = node.get("must_not")
    if must_not is not None and any(_evaluate_node(child, card) for child in must_not):
        return False

    return True


def _evaluate_condition(condition: Mapping[str, Any], card: CardRecord) -> bool:
    key = condition["key"]

    if key == COLORS_FIELD:
        value = condition["match"]["value"]
        return value in card.colors

    if key == COST_FIELD:
        bounds = condition["range"]
        if "gte" in bounds and card.cost < bounds["gte"]:
            return False
        if "lte" in bounds and card.cost > bounds["lte"]:
            return False
        return True

    if key == INKWELL_FIELD:
        wanted = Tristate.from_bool(bool(condition["match"]["value"]))
        if card.inkable is Tristate.UNKNOWN:
            return False
        return card.inkable is wanted

    raise ValueError(f"Unsupported filter key: {key}")
