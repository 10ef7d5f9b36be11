"""
Semantic search over article embeddings.

Components:
- BaseVectorIndex: nearest-neighbour index abstraction
- InMemoryVectorIndex: cosine index for local runs and tests
- SearchMatch: {id, score} hit
"""

from threat_inference.search.index import (
    BaseVectorIndex,
    InMemoryVectorIndex,
    SearchMatch,
    cosine_similarity,
)

__all__ = [
    "BaseVectorIndex",
    "InMemoryVectorIndex",
    "SearchMatch",
    "cosine_similarity",
]
