"""
Document embedding, vectorization, and similarity search.

Components:
- normalize: Builds the semantic document for a profile or job post
- ModelSession / EmbeddingModel: Load-once sentence-transformers wrapper
- VectorStore / EmbeddingStore: Per-kind embedding storage (memory/ChromaDB/FAISS)
- SimilaritySearchService: Top-k cosine search with a stable ranking
"""

from .normalizer import (
    normalize,
    normalize_intern,
    normalize_job,
    touches_material_fields,
)

from .embedding_model import (
    EmbeddingModel,
    ModelSession,
    get_embedding_model,
    get_model_session,
    l2_normalize,
)

from .semantic_similarity import (
    SearchResult,
    SimilaritySearchService,
    cosine_similarity,
    get_search_service,
    rank_results,
)

from .vector_store import (
    VectorStore,
    MemoryVectorStore,
    ChromaVectorStore,
    FAISSVectorStore,
    EmbeddingStore,
    get_vector_store,
    get_embedding_store,
)

__all__ = [
    # Normalizer
    "normalize",
    "normalize_intern",
    "normalize_job",
    "touches_material_fields",
    # Embedding model
    "EmbeddingModel",
    "ModelSession",
    "get_embedding_model",
    "get_model_session",
    "l2_normalize",
    # Similarity search
    "SearchResult",
    "SimilaritySearchService",
    "cosine_similarity",
    "get_search_service",
    "rank_results",
    # Vector stores
    "VectorStore",
    "MemoryVectorStore",
    "ChromaVectorStore",
    "FAISSVectorStore",
    "EmbeddingStore",
    "get_vector_store",
    "get_embedding_store",
]
