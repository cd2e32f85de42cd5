"""
Deck formatter.

Renders a built deck as plain text, one "count x name" line per card.
"""

from inkforge.services.deck_builder import BuiltDeck


def format_deck_text(deck: BuiltDeck) -> str:
    """
    Format a built deck for display.

    Example output:
        Deck (60 cards, 45 inkable):
        4 x Mickey Mouse - Brave Little Tailor (Inkable)
        4 x Elsa - Spirit of Winter
    """
    lines = [f"Deck ({deck.total_cards} cards, {deck.inkable_count} inkable):"]
    for entry in deck.entries:
        suffix = " (Inkable)" if entry.inkable else ""
        lines.append(f"{entry.count} x {entry.name}{suffix}")
    return "\n".join(lines)
