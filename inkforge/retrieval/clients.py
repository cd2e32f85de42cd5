"""
Embedding and vector search clients.

Thin httpx clients for the two external collaborators of retrieval:

- Ollama, for turning request text into an embedding vector
- Qdrant, for approximate nearest-neighbor search over the card collection

Both raise httpx.HTTPError on transport or status failures and
MalformedResponseError when a response does not have the expected shape.
Conversion into the application's error taxonomy happens in the retriever.
"""

import logging
from typing import Any, Protocol

import httpx

from inkforge.config import MAX_EMBED_INPUT_CHARS, settings
from inkforge.models.card import CardRecord

logger = logging.getLogger(__name__)

SearchHit = tuple[CardRecord, float]


class MalformedResponseError(ValueError):
    """A collaborator answered, but not in the expected shape."""


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class SearchEngine(Protocol):
    async def search(
        self,
        vector: list[float],
        filter: dict[str, Any] | None,
        limit: int,
    ) -> list[SearchHit]: ...


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(f"Response from {response.url} is not JSON") from e


class OllamaEmbedder:
    """
    Client for the Ollama embedding endpoint.

    Sends request text to /api/embed and returns the first embedding.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the embedder.

        Args:
            base_url: Ollama base URL. Defaults to settings.ollama_url.
            model: Embedding model name. Defaults to settings.embed_model.
            timeout: Request timeout in seconds.
        """
        self.base_url = (base_url or settings.ollama_url).rstrip("/")
        self.model = model or settings.embed_model
        self.timeout = timeout if timeout is not None else settings.request_timeout

    async def embed(self, text: str) -> list[float]:
        """
        Embed text, truncated to the model's input limit.

        Raises:
            httpx.HTTPError: If the request fails
            MalformedResponseError: If no embedding is returned
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": text[:MAX_EMBED_INPUT_CHARS]},
            )
            response.raise_for_status()

        data = _json_body(response)
        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list) or not embeddings:
            raise MalformedResponseError("Embedding response has no embeddings")

        vector = embeddings[0]
        if not isinstance(vector, list) or not vector:
            raise MalformedResponseError("Embedding vector is empty")
        try:
            return [float(v) for v in vector]
        except (TypeError, ValueError) as e:
            raise MalformedResponseError("Embedding vector has non-numeric values") from e


class QdrantSearchEngine:
    """
    Client for Qdrant similarity search over the card collection.

    Hits come back in engine order (descending score). Payloads are decoded
    with CardRecord.from_payload; hits whose payload cannot be decoded are
    skipped and logged.
    """

    def __init__(
        self,
        base_url: str | None = None,
        collection: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.qdrant_url).rstrip("/")
        self.collection = collection or settings.card_collection
        self.timeout = timeout if timeout is not None else settings.request_timeout

    async def search(
        self,
        vector: list[float],
        filter: dict[str, Any] | None,
        limit: int,
    ) -> list[SearchHit]:
        """
        Run one similarity query.

        Raises:
            httpx.HTTPError: If the request fails
            MalformedResponseError: If the result list is missing or invalid
        """
        body: dict[str, Any] = {"vector": vector, "limit": limit, "with_payload": True}
        if filter is not None:
            body["filter"] = filter

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/collections/{self.collection}/points/search",
                json=body,
            )
            response.raise_for_status()

        data = _json_body(response)
        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, list):
            raise MalformedResponseError("Search response has no result list")

        hits: list[SearchHit] = []
        for point in result:
            if not isinstance(point, dict) or "id" not in point:
                raise MalformedResponseError("Search result entry has no id")
            payload = point.get("payload")
            if not isinstance(payload, dict):
                raise MalformedResponseError(f"Search result {point['id']} has no payload")
            try:
                card = CardRecord.from_payload(point["id"], payload)
            except ValueError as e:
                logger.warning(
                    "search_hit_undecodable",
                    extra={"point_id": point["id"], "error": str(e)},
                )
                continue
            try:
                score = float(point.get("score", 0.0))
            except (TypeError, ValueError) as e:
                raise MalformedResponseError(
                    f"Search result {point['id']} has a non-numeric score"
                ) from e
            hits.append((card, score))

        return hits
