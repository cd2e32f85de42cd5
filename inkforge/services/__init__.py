"""
InkForge services.

Business logic for color inference, deck assembly and the build pipeline.
"""

from inkforge.services.card_corpus import CardCorpus, get_card_corpus, load_card_corpus
from inkforge.services.color_inference import infer_colors
from inkforge.services.deck_assembler import DeckPlan, InkSwap, assemble_deck
from inkforge.services.deck_builder import (
    BuildContext,
    BuiltDeck,
    DeckEntry,
    DeckRequest,
    build_deck,
    validate_request,
)
from inkforge.services.deck_formatter import format_deck_text

__all__ = [
    # Card corpus
    "CardCorpus",
    "get_card_corpus",
    "load_card_corpus",
    # Color inference
    "infer_colors",
    # Deck assembly
    "DeckPlan",
    "InkSwap",
    "assemble_deck",
    # Pipeline
    "BuildContext",
    "BuiltDeck",
    "DeckEntry",
    "DeckRequest",
    "build_deck",
    "validate_request",
    # Formatting
    "format_deck_text",
]
