"""
Legality Context: Explicit, Testable Format Legality.

INVARIANT: Every legality decision names the format and the instant it
was made for. Set rotations are tested by moving the instant.

Legality is default-deny. A card is legal only when its entry for the
format is explicitly allowed and the reference time falls inside its
validity window (both ends inclusive). A missing entry or a missing
allow flag is never treated as legal.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from inkforge.filtering.candidate_pool import CandidatePool
from inkforge.models.card import CardRecord, Tristate
from inkforge.models.failure import InvalidRequestError

logger = logging.getLogger(__name__)


class DeckFormat(str, Enum):
    """Supported play formats."""

    CORE = "core"
    INFINITY = "infinity"

    @classmethod
    def parse(cls, value: "str | DeckFormat") -> "DeckFormat":
        """
        Case-insensitive lookup.

        Raises:
            InvalidRequestError: If the format is not supported
        """
        if isinstance(value, DeckFormat):
            return value
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as e:
            supported = ", ".join(f.value for f in cls)
            raise InvalidRequestError(
                f"Unsupported format: {value!r}",
                detail=f"Supported formats: {supported}",
            ) from e


@dataclass(frozen=True, slots=True)
class LegalityContext:
    """
    The format and instant a legality decision is made for.

    Callers that want "now" say so with LegalityContext.current().

    Attributes:
        format: The format to check legality for
        reference_time: Timezone-aware instant used for validity windows
    """

    format: DeckFormat
    reference_time: datetime

    def __post_init__(self) -> None:
        if self.reference_time.tzinfo is None:
            raise ValueError("reference_time must be timezone-aware")

    @classmethod
    def current(cls, format: DeckFormat) -> "LegalityContext":
        """Context for now (UTC)."""
        return cls(format=format, reference_time=datetime.now(UTC))

    @classmethod
    def at(cls, format: DeckFormat, reference_time: datetime) -> "LegalityContext":
        """
        Context pinned to reference_time. Naive datetimes are taken as UTC.
        """
        if reference_time.tzinfo is None:
            reference_time = reference_time.replace(tzinfo=UTC)
        return cls(format=format, reference_time=reference_time)

    @property
    def format_name(self) -> str:
        """Format name as used for legality lookups."""
        return self.format.value


@dataclass(frozen=True, slots=True)
class LegalityResult:
    """
    Outcome of one legality check, with the context it used and a reason.
    """

    is_legal: bool
    context: LegalityContext
    reason: str = ""


def check_legality(card: CardRecord, context: LegalityContext) -> LegalityResult:
    """
    Decide whether a card may be played in context.format at context.reference_time.

    Never raises.
    """
    entry = card.legality_for(context.format_name)
    if entry is None:
        return LegalityResult(False, context, f"no legality entry for {context.format_name}")

    if entry.allowed is not Tristate.TRUE:
        return LegalityResult(False, context, f"allowed = {entry.allowed.value}")

    now = context.reference_time
    if entry.valid_from is not None and now < entry.valid_from:
        return LegalityResult(False, context, f"not valid until {entry.valid_from.isoformat()}")
    if entry.valid_until is not None and now > entry.valid_until:
        return LegalityResult(False, context, f"validity ended {entry.valid_until.isoformat()}")

    return LegalityResult(True, context, "allowed")


def filter_by_legality(pool: CandidatePool, context: LegalityContext) -> CandidatePool:
    """
    Remove cards that are not legal in the context.

    Rank order is preserved. Never raises; an empty result is left to the
    later stages to report.
    """
    result = pool.filter(lambda card: check_legality(card, context).is_legal)

    logger.info(
        "legality_filtered",
        extra={
            "format": context.format_name,
            "reference_time": context.reference_time.isoformat(),
            "before": len(pool),
            "after": len(result),
        },
    )
    return result
