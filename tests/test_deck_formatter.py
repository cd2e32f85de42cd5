from inkforge.services.deck_builder import BuiltDeck, DeckEntry
from inkforge.services.deck_formatter import format_deck_text


def _deck() -> BuiltDeck:
    return BuiltDeck(
        entries=[
            DeckEntry(
                card_id="1", name="Mickey Mouse - Brave Little Tailor", count=4, inkable=True
            ),
            DeckEntry(card_id="2", name="Elsa - Spirit of Winter", count=2, inkable=False),
            DeckEntry(card_id="3", name="Mystery Card", count=1, inkable=None),
        ],
        colors=["Amber", "Amethyst"],
        format="core",
        total_cards=7,
        inkable_count=4,
        non_inkable_count=2,
        unknown_count=1,
        inkable_ratio=4 / 6,
    )


class TestFormatDeckText:
    """Tests for plain-text deck rendering."""

    def test_header_and_lines(self) -> None:
        text = format_deck_text(_deck())

        assert text.splitlines() == [
            "Deck (7 cards, 4 inkable):",
            "4 x Mickey Mouse - Brave Little Tailor (Inkable)",
            "2 x Elsa - Spirit of Winter",
            "1 x Mystery Card",
        ]

    def test_empty_deck_has_header_only(self) -> None:
        deck = _deck()
        deck.entries = []

        assert format_deck_text(deck) == "Deck (7 cards, 4 inkable):"
