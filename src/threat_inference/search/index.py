"""
Vector index abstraction used by semantic search.

The production index (Vectorize, pgvector, ...) lives outside this package;
InMemoryVectorIndex is a small cosine-similarity index for local runs and
tests.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pydantic import BaseModel, Field
import structlog


logger = structlog.get_logger(__name__)


class SearchMatch(BaseModel):
    """One nearest-neighbour hit."""

    id: str = Field(..., description="Article identifier")
    score: float = Field(..., description="Similarity score, higher is closer")


class BaseVectorIndex(ABC):
    """Abstract nearest-neighbour index over article embeddings."""

    @abstractmethod
    async def query(self, vector: Sequence[float], top_k: int) -> list[SearchMatch]:
        """Return up to top_k matches, best first."""
        pass

    @abstractmethod
    async def upsert(self, item_id: str, vector: Sequence[float]) -> None:
        """Insert or replace the vector stored for item_id."""
        pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex(BaseVectorIndex):
    """Brute-force cosine index held in a dict."""

    def __init__(self, dimensions: int | None = None):
        self.dimensions = dimensions
        self._vectors: dict[str, list[float]] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    async def upsert(self, item_id: str, vector: Sequence[float]) -> None:
        if self.dimensions is not None and len(vector) != self.dimensions:
            raise ValueError(
                f"Expected {self.dimensions} dimensions, got {len(vector)}"
            )
        self._vectors[item_id] = [float(x) for x in vector]

    async def delete(self, item_id: str) -> None:
        self._vectors.pop(item_id, None)

    async def query(self, vector: Sequence[float], top_k: int) -> list[SearchMatch]:
        if top_k <= 0:
            return []
        scored = [
            SearchMatch(id=item_id, score=cosine_similarity(vector, stored))
            for item_id, stored in self._vectors.items()
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]
