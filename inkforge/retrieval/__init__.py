"""
Candidate retrieval.

Embedding and vector search clients, and the retriever that combines them.
"""

from inkforge.retrieval.clients import (
    Embedder,
    MalformedResponseError,
    OllamaEmbedder,
    QdrantSearchEngine,
    SearchEngine,
)
from inkforge.retrieval.retriever import CandidateRetriever

__all__ = [
    "CandidateRetriever",
    "Embedder",
    "MalformedResponseError",
    "OllamaEmbedder",
    "QdrantSearchEngine",
    "SearchEngine",
]
