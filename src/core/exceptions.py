"""
Exception hierarchy for the matching pipeline.

Every error carries a ``retryable`` flag so the trigger layer can decide
whether to try again later. The orchestrator itself never retries.
"""


class MatchingError(Exception):
    """Base exception for all matching pipeline errors."""

    retryable: bool = False
    code: str = "matching_error"


class NotFoundError(MatchingError):
    """The source entity for an embedding request no longer exists."""

    code = "not_found"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ModelLoadError(MatchingError):
    """The embedding model could not be initialized. Fatal until restart."""

    code = "model_load_failed"

    def __init__(self, model_name: str, reason: str):
        self.model_name = model_name
        self.reason = reason
        super().__init__(f"Failed to load embedding model '{model_name}': {reason}")


class EmbeddingError(MatchingError):
    """Inference failed for a single request."""

    retryable = True
    code = "embedding_failed"


class OperationTimeoutError(MatchingError):
    """An embedding or search call exceeded its time budget."""

    retryable = True
    code = "timeout"

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s")


class NoEmbeddingError(MatchingError):
    """The requested entity has never been embedded."""

    code = "no_embedding"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"No embedding stored for {kind} {entity_id}")


class StoreError(MatchingError):
    """Vector store or entity store read/write failure."""

    retryable = True
    code = "store_error"
