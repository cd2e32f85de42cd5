from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="INKFORGE_")

    app_name: str = "InkForge"
    debug: bool = False

    # Embedding provider (Ollama)
    ollama_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"

    # Vector search engine (Qdrant)
    qdrant_url: str = "http://localhost:6333"
    card_collection: str = "lorcana_cards"

    # Candidates requested from the search engine per build
    search_limit: int = 120

    # Per HTTP call, and for the whole embed + search step
    request_timeout: float = 30.0
    retrieval_timeout: float = 10.0

    # LorcanaJSON style {"cards": [...]} file used to hydrate display fields
    corpus_path: str = "data/allCards.json"

    # Deck policy
    copy_cap: int = 4
    ink_ratio_min: float = 0.70
    ink_ratio_max: float = 0.80
    mono_color_threshold: float = 0.75


settings = Settings()


# =============================================================================
# DECK POLICY
# =============================================================================

# Lorcana decks are 60 cards by default
DEFAULT_DECK_SIZE = 60

# Longest input forwarded to the embedding model
MAX_EMBED_INPUT_CHARS = 4000

# Float tolerance when comparing an inkable ratio against the band
_BAND_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class DeckPolicy:
    """
    Rules applied when assembling a deck.

    Built from settings and passed explicitly to the pipeline. Nothing in
    the deck core reads module-level settings.

    Attributes:
        copy_cap: Maximum copies of any single card
        ink_ratio_min: Lower bound of the inkable band (inclusive)
        ink_ratio_max: Upper bound of the inkable band (inclusive)
        mono_color_threshold: Share of the pool a color must reach
            for the deck to go mono-color
    """

    copy_cap: int = 4
    ink_ratio_min: float = 0.70
    ink_ratio_max: float = 0.80
    mono_color_threshold: float = 0.75

    def __post_init__(self) -> None:
        if self.copy_cap < 1:
            raise ValueError(f"copy_cap must be at least 1, got {self.copy_cap}")
        for name in ("ink_ratio_min", "ink_ratio_max", "mono_color_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.ink_ratio_min > self.ink_ratio_max:
            raise ValueError(
                f"ink_ratio_min ({self.ink_ratio_min}) exceeds ink_ratio_max ({self.ink_ratio_max})"
            )

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "DeckPolicy":
        source = source or settings
        return cls(
            copy_cap=source.copy_cap,
            ink_ratio_min=source.ink_ratio_min,
            ink_ratio_max=source.ink_ratio_max,
            mono_color_threshold=source.mono_color_threshold,
        )

    def ratio_in_band(self, ratio: float) -> bool:
        return self.ink_ratio_min - _BAND_EPSILON <= ratio <= self.ink_ratio_max + _BAND_EPSILON
