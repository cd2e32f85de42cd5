"""
Card corpus service.

Loads the ingested card file read-only and serves lookups by id and by
normalized name. Used to hydrate display fields of built decks.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from inkforge.config import settings
from inkforge.models.card import CardRecord, normalize_name

logger = logging.getLogger(__name__)


class CardCorpus:
    """Read-only card lookup."""

    def __init__(self, cards: list[CardRecord]) -> None:
        self._by_id: dict[str, CardRecord] = {}
        self._by_name: dict[str, CardRecord] = {}
        for card in cards:
            # First occurrence wins for both indexes
            self._by_id.setdefault(card.card_id, card)
            self._by_name.setdefault(normalize_name(card.name).lower(), card)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._by_id

    def __iter__(self) -> Iterator[CardRecord]:
        return iter(self._by_id.values())

    def get(self, card_id: str) -> CardRecord | None:
        return self._by_id.get(card_id)

    def find_by_name(self, name: str) -> CardRecord | None:
        """Lookup tolerant of typographic quotes, dashes and spacing."""
        return self._by_name.get(normalize_name(name).lower())


def parse_corpus(data: Mapping[str, Any]) -> CardCorpus:
    """
    Build a corpus from a {"cards": [...]} document.

    Entries without an id or without usable colors are skipped.

    Raises:
        ValueError: If the document has no card list
    """
    entries = data.get("cards")
    if not isinstance(entries, list):
        raise ValueError("Card corpus must contain a 'cards' list")

    cards: list[CardRecord] = []
    skipped = 0
    for entry in entries:
        if not isinstance(entry, Mapping) or entry.get("id") is None:
            skipped += 1
            continue
        try:
            cards.append(CardRecord.from_payload(entry["id"], entry))
        except ValueError:
            skipped += 1

    if skipped:
        logger.warning("corpus_entries_skipped", extra={"skipped": skipped})
    logger.info("corpus_loaded", extra={"cards": len(cards)})
    return CardCorpus(cards)


def load_card_corpus(path: Path | str) -> CardCorpus:
    """
    Load the card corpus from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a card corpus
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Card corpus not found at {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, Mapping):
        raise ValueError(f"Card corpus at {path} is not a JSON object")
    return parse_corpus(data)


@lru_cache(maxsize=1)
def get_card_corpus() -> CardCorpus | None:
    """
    Get the cached corpus from settings.corpus_path.

    Returns None when no corpus file is present; decks are then hydrated
    from the retrieved records.
    """
    path = Path(settings.corpus_path)
    if not path.exists():
        logger.warning("corpus_missing", extra={"path": str(path)})
        return None
    return load_card_corpus(path)
