"""Exact (linear-scan) cosine similarity search over an owner's chunks."""

import logging
from collections.abc import Sequence

import numpy as np

from notes_assistant.application.interfaces.vector_store import VectorStore
from notes_assistant.domain.entities import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity over the common prefix of ``a`` and ``b``.

    Zero-magnitude vectors score exactly ``0.0``; the result is clamped to
    ``[-1, 1]`` to absorb floating-point drift.
    """
    n = min(len(a), len(b))
    if n == 0:
        return 0.0

    v1 = np.asarray(a[:n], dtype=np.float64)
    v2 = np.asarray(b[:n], dtype=np.float64)
    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.clip(np.dot(v1, v2) / (norm1 * norm2), -1.0, 1.0))


def cosine_scores(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> list[float]:
    """Score every row of ``vectors`` against ``query`` in one matrix product.

    All rows must have the query's length. Zero rows (and a zero query)
    score ``0.0``.
    """
    if not vectors:
        return []

    q = np.asarray(query, dtype=np.float64)
    matrix = np.asarray(vectors, dtype=np.float64)
    q_norm = np.linalg.norm(q)
    if q_norm == 0:
        return [0.0] * len(vectors)

    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ q
    denom = row_norms * q_norm
    scores = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)
    return np.clip(scores, -1.0, 1.0).tolist()


class SimilaritySearch:
    """Scores every chunk of an owner against a query vector."""

    def __init__(self, vector_store: VectorStore):
        self._store = vector_store

    async def search(
        self, owner_id: str, query_vector: Sequence[float], top_k: int
    ) -> list[ScoredChunk]:
        if top_k <= 0:
            return []

        chunks = await self._store.get_all_for_owner(owner_id)
        scores = self._score(query_vector, chunks)
        scored = [ScoredChunk(chunk=chunk, score=score) for chunk, score in zip(chunks, scores)]
        # sorted() is stable: equal scores keep the store's retrieval order
        scored = sorted(scored, key=lambda s: s.score, reverse=True)

        logger.debug(
            "Similarity search for owner=%s scanned %d chunks (top_k=%d)",
            owner_id,
            len(chunks),
            top_k,
        )
        return scored[:top_k]

    @staticmethod
    def _score(query_vector: Sequence[float], chunks: list[Chunk]) -> list[float]:
        dim = len(query_vector)
        if dim and all(len(chunk.vector) == dim for chunk in chunks):
            return cosine_scores(query_vector, [chunk.vector for chunk in chunks])
        # Stored vectors from an older model: score pairwise on the common prefix
        return [cosine_similarity(query_vector, chunk.vector) for chunk in chunks]
