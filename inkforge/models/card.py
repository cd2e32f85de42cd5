"""
Card records as consumed by the deck-building core.

A CardRecord is read-only to the core. It is produced either from a search
engine payload (CardRecord.from_payload) or from the ingested corpus file,
and is never mutated afterwards.

INVARIANT: Flags that may be missing from source data (inkable status,
format allow flags) are modeled as Tristate, never as Optional[bool].
Every predicate is written against the explicit states.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# The six inks of the game, in canonical spelling
KNOWN_INKS: tuple[str, ...] = ("Amber", "Amethyst", "Emerald", "Ruby", "Sapphire", "Steel")

_INK_LOOKUP = {ink.lower(): ink for ink in KNOWN_INKS}

# Separators seen in single-string color fields ("Amber/Steel", "Ruby-Sapphire")
_COLOR_SEPARATORS = re.compile(r"[,/\-|+]")

_TRUE_TOKENS = {"true", "yes", "1"}
_FALSE_TOKENS = {"false", "no", "0"}

# Payload keys that carry the inkable flag, in priority order
INKABLE_KEYS: tuple[str, ...] = ("inkwell", "inkWell", "inkable", "playableAsInk")

# Payload key -> format name used by the corpus
FORMAT_PAYLOAD_KEYS: dict[str, str] = {"core": "Core", "infinity": "Infinity"}


class Tristate(str, Enum):
    """A flag that may be known true, known false, or unknown."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: Any) -> "Tristate":
        """
        Parse a loosely typed payload value.

        Booleans map directly. Strings accept true/yes/1 and false/no/0.
        Numbers map to non-zero. Everything else is UNKNOWN.
        """
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        if isinstance(value, int | float):
            return cls.TRUE if value != 0 else cls.FALSE
        if isinstance(value, str):
            token = value.strip().lower()
            if token in _TRUE_TOKENS:
                return cls.TRUE
            if token in _FALSE_TOKENS:
                return cls.FALSE
        return cls.UNKNOWN

    @classmethod
    def from_bool(cls, value: bool | None) -> "Tristate":
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    def as_bool(self) -> bool | None:
        """Convert back to an optional bool for serialization only."""
        if self is Tristate.TRUE:
            return True
        if self is Tristate.FALSE:
            return False
        return None


@dataclass(frozen=True, slots=True)
class FormatLegality:
    """
    Per-format legality descriptor.

    Attributes:
        allowed: Explicit allow flag. UNKNOWN means the flag was missing.
        valid_from: Start of the validity window (inclusive), if any
        valid_until: End of the validity window (inclusive), if any
    """

    allowed: Tristate = Tristate.UNKNOWN
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    @property
    def has_window(self) -> bool:
        return self.valid_from is not None or self.valid_until is not None


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    A single card from the corpus.

    Attributes:
        card_id: Stable identity, unique within the corpus
        name: Display name (full name including version subtitle)
        colors: Ink color tags (one or more)
        cost: Ink cost (>= 0)
        inkable: Whether the card may be put into the inkwell
        legalities: Format name (lowercase) -> legality descriptor
        max_copies: Per-card copy limit from the corpus, if it has one
        set_name: Display only
        rules_text: Display only
        flavor_text: Display only
        link: External market URL, display only
    """

    card_id: str
    name: str
    colors: frozenset[str]
    cost: int = 0
    inkable: Tristate = Tristate.UNKNOWN
    legalities: Mapping[str, FormatLegality] = field(default_factory=dict)
    max_copies: int | None = None
    set_name: str = ""
    rules_text: str = ""
    flavor_text: str = ""
    link: str = ""

    def __post_init__(self) -> None:
        if not self.colors:
            raise ValueError(f"Card '{self.card_id}' has no color tags")
        if self.cost < 0:
            raise ValueError(f"Card '{self.card_id}' has negative cost {self.cost}")

    def legality_for(self, format_name: str) -> FormatLegality | None:
        return self.legalities.get(format_name.lower())

    def copy_cap(self, policy_cap: int) -> int:
        """Effective copy cap: the policy cap, lowered by a per-card limit."""
        if self.max_copies is not None and self.max_copies > 0:
            return min(policy_cap, self.max_copies)
        return policy_cap

    @classmethod
    def from_payload(cls, card_id: str | int, payload: Mapping[str, Any]) -> "CardRecord":
        """
        Decode a search engine payload into a CardRecord.

        Raises:
            ValueError: If the payload has no usable color tags, or a legality
                timestamp is out of range
        """
        name = _first_string(payload, "fullName", "name") or str(card_id)
        return cls(
            card_id=str(card_id),
            name=name,
            colors=parse_colors(payload),
            cost=_parse_cost(payload),
            inkable=_parse_inkable(payload),
            legalities=_parse_legalities(payload),
            max_copies=_parse_max_copies(payload.get("maxCopiesInDeck")),
            set_name=_first_string(payload, "set", "setName") or "",
            rules_text=_first_string(payload, "rules", "fullText", "text") or "",
            flavor_text=_first_string(payload, "flavorText") or "",
            link=_parse_link(payload),
        )


def normalize_ink(value: str) -> str | None:
    """Canonical ink spelling, or None if the value is not an ink."""
    return _INK_LOOKUP.get(value.strip().lower())


def parse_colors(payload: Mapping[str, Any]) -> frozenset[str]:
    """
    Read ink colors from a payload.

    Prefers a "colors" list; falls back to splitting a "color" string
    (also "inkColor") on common separators. Unknown tokens are dropped.
    """
    raw = payload.get("colors")
    tokens: list[str] = []
    if isinstance(raw, list | tuple) and raw:
        tokens = [t for t in raw if isinstance(t, str)]
    else:
        single = _first_string(payload, "color", "inkColor")
        if single:
            tokens = _COLOR_SEPARATORS.split(single)

    colors = {ink for ink in (normalize_ink(t) for t in tokens if t.strip()) if ink}
    return frozenset(colors)


def normalize_name(name: str) -> str:
    """
    Normalize a card name for lookups across data sources.

    Folds typographic quotes and dashes to ASCII, drops zero-width
    characters, and collapses whitespace.
    """
    if not name or not name.strip():
        return ""
    table = str.maketrans(
        {
            "\u2019": "'",
            "\u2018": "'",
            "\u02bc": "'",
            "\uff07": "'",
            "\u2013": "-",
            "\u2014": "-",
            "\u2212": "-",
            "\u200b": None,
            "\u200c": None,
            "\u200d": None,
            "\ufeff": None,
        }
    )
    return re.sub(r"\s+", " ", name.translate(table)).strip()


# =============================================================================
# PAYLOAD HELPERS
# =============================================================================


def _first_string(payload: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_cost(payload: Mapping[str, Any]) -> int:
    for key in ("cost", "inkCost"):
        value = payload.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int | float) and value >= 0:
            return int(value)
    return 0


def _parse_inkable(payload: Mapping[str, Any]) -> Tristate:
    for key in INKABLE_KEYS:
        if key in payload:
            return Tristate.from_raw(payload[key])
    return Tristate.UNKNOWN


def _parse_max_copies(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float) and value > 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _parse_link(payload: Mapping[str, Any]) -> str:
    links = payload.get("externalLinks")
    if isinstance(links, Mapping):
        url = links.get("cardmarketUrl")
        if isinstance(url, str):
            return url.strip()
    return ""


def _parse_timestamp(value: Any) -> datetime | None:
    """
    Unix seconds or ISO-8601 string to an aware UTC datetime.

    Raises:
        ValueError: If unix seconds fall outside the platform's time range
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    return None


def _parse_legalities(payload: Mapping[str, Any]) -> dict[str, FormatLegality]:
    allowed_in = payload.get("allowedInFormats")
    if not isinstance(allowed_in, Mapping):
        return {}

    result: dict[str, FormatLegality] = {}
    for format_name, payload_key in FORMAT_PAYLOAD_KEYS.items():
        entry = allowed_in.get(payload_key)
        if not isinstance(entry, Mapping):
            continue
        # A missing "allowed" key stays UNKNOWN, which legality treats as denied
        allowed = Tristate.from_raw(entry["allowed"]) if "allowed" in entry else Tristate.UNKNOWN
        result[format_name] = FormatLegality(
            allowed=allowed,
            valid_from=_parse_timestamp(entry.get("allowedFromTs", entry.get("allowedFrom"))),
            valid_until=_parse_timestamp(entry.get("allowedUntilTs", entry.get("allowedUntil"))),
        )
    return result
