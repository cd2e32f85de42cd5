"""
Candidate Retriever: One Embed, One Search.

The only stage of a build that suspends. Everything downstream of the
returned CandidatePool is synchronous and pure.

INVARIANTS:
- Exactly one embed call and one search call per retrieval, no retries
- Every failure of a collaborator surfaces as RetrievalFailureError
- Cancellation propagates untouched
- Hits that violate the filter are dropped; the engine is approximate
"""

import asyncio
import logging
from typing import Any

import httpx

from inkforge.filtering.candidate_pool import CandidatePool
from inkforge.filtering.search_filter import evaluate_filter
from inkforge.models.card import CardRecord
from inkforge.models.failure import RetrievalFailureError
from inkforge.retrieval.clients import Embedder, MalformedResponseError, SearchEngine

logger = logging.getLogger(__name__)


class CandidateRetriever:
    """Embeds request text and queries the search engine with a filter."""

    def __init__(
        self,
        embedder: Embedder,
        search_engine: SearchEngine,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            embedder: Embedding provider
            search_engine: Vector search engine
            timeout: Bound on embed + search together, in seconds. None disables it.
        """
        self.embedder = embedder
        self.search_engine = search_engine
        self.timeout = timeout

    async def retrieve(
        self,
        text: str,
        filter: dict[str, Any] | None,
        limit: int,
    ) -> CandidatePool:
        """
        Retrieve a similarity-ranked candidate pool.

        Raises:
            RetrievalFailureError: On transport errors, error statuses,
                malformed responses, empty embeddings or timeout
        """
        try:
            hits = await asyncio.wait_for(self._embed_and_search(text, filter, limit), self.timeout)
        except TimeoutError as e:
            raise RetrievalFailureError(
                "Card search timed out.",
                detail=f"No result within {self.timeout}s",
            ) from e
        except httpx.HTTPError as e:
            raise RetrievalFailureError(
                "Card search service is unavailable.",
                detail=f"{type(e).__name__}: {e}",
            ) from e
        except MalformedResponseError as e:
            raise RetrievalFailureError(
                "Card search service returned an invalid response.",
                detail=str(e),
            ) from e

        pool = CandidatePool.from_ranked(self._clean_hits(hits, filter))
        logger.info(
            "candidate_pool_retrieved",
            extra={"requested": limit, "returned": len(hits), "pool_size": len(pool)},
        )
        return pool

    async def _embed_and_search(
        self,
        text: str,
        filter: dict[str, Any] | None,
        limit: int,
    ) -> list[tuple[CardRecord, float]]:
        vector = await self.embedder.embed(text)
        if not vector:
            raise MalformedResponseError("Embedding vector is empty")
        return await self.search_engine.search(vector, filter, limit)

    def _clean_hits(
        self,
        hits: list[tuple[CardRecord, float]],
        filter: dict[str, Any] | None,
    ) -> list[tuple[CardRecord, float]]:
        """Drop filter violations and duplicate ids, keeping engine order."""
        seen: set[str] = set()
        kept: list[tuple[CardRecord, float]] = []
        violations = 0

        for card, score in hits:
            if card.card_id in seen:
                continue
            if not evaluate_filter(filter, card):
                violations += 1
                continue
            seen.add(card.card_id)
            kept.append((card, score))

        if violations:
            logger.warning("filter_violations_dropped", extra={"count": violations})
        return kept
