"""
Embedding model wrapper for generating text embeddings.

Uses the sentence-transformers library. The model itself lives in a
``ModelSession``: a resource handle that loads it exactly once, shares
the in-flight load between concurrent callers and remembers a failed
load so later calls fail fast.
"""

import asyncio
from typing import Any, Callable, Optional

import numpy as np

from src.core.exceptions import EmbeddingError, MatchingError, ModelLoadError, OperationTimeoutError
from src.utils.config import get_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Sentinel for "use the configured timeout"
_DEFAULT = object()


def l2_normalize(vectors: Any) -> np.ndarray:
    """
    Scale each row to unit length.

    Zero rows are left as zeros rather than producing NaNs.
    """
    vectors = np.atleast_2d(np.asarray(vectors, dtype=np.float32))
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


class ModelSession:
    """
    Owns the single sentence-transformers model for the process.

    The model is loaded lazily on first use. Concurrent callers that
    arrive while the load is running wait on the same lock and reuse
    its result, so only one instance is ever created.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        loader: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the session without loading anything.

        Args:
            model_name: Name of the sentence-transformers model to use.
                       Defaults to config setting.
            device: Device to run model on ('cpu', 'cuda', 'mps').
                   Defaults to config setting.
            loader: Optional zero-argument callable returning a model with
                   a sentence-transformers compatible ``encode``.
        """
        settings = get_settings()
        self.model_name = model_name or settings.ml.embedding_model
        self.device = device or settings.ml.device
        self._cache_folder = settings.ml.models_directory
        self._loader = loader or self._load_sentence_transformer

        self._model: Any = None
        self._load_error: Optional[ModelLoadError] = None
        self._lock = asyncio.Lock()
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def failed(self) -> bool:
        return self._load_error is not None

    def _load_sentence_transformer(self) -> Any:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise RuntimeError(
                "sentence-transformers not installed. "
                "Install with: pip install sentence-transformers"
            ) from e

        return SentenceTransformer(
            self.model_name,
            device=self.device,
            cache_folder=str(self._cache_folder),
        )

    def _raise_load_error(self, error: ModelLoadError) -> None:
        raise ModelLoadError(self.model_name, error.reason) from error

    async def get_model(self) -> Any:
        """
        Return the loaded model, loading it on first use.

        Raises:
            ModelLoadError: The model could not be initialized, now or on
                an earlier attempt.
        """
        if self._model is not None:
            return self._model
        if self._load_error is not None:
            self._raise_load_error(self._load_error)

        async with self._lock:
            # Another caller may have finished the load while we waited
            if self._model is not None:
                return self._model
            if self._load_error is not None:
                self._raise_load_error(self._load_error)

            logger.info(f"Loading embedding model: {self.model_name}")
            try:
                model = await asyncio.to_thread(self._loader)
            except Exception as e:
                self._load_error = ModelLoadError(self.model_name, str(e))
                logger.error(f"Failed to load embedding model: {e}")
                raise self._load_error from e

            self._model = model
            self.load_count += 1
            logger.info(f"Embedding model loaded on device: {self.device}")

        return self._model

    def reset(self) -> None:
        """Drop the model and any remembered load failure."""
        self._model = None
        self._load_error = None


class EmbeddingModel:
    """
    Turns documents into unit-length dense vectors.

    Inference runs in a worker thread so the event loop stays free, and
    each call can be bounded by a timeout.
    """

    def __init__(
        self,
        session: Optional[ModelSession] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] | object = _DEFAULT,
    ):
        settings = get_settings()
        self.session = session or get_model_session()
        self.batch_size = batch_size or settings.ml.batch_size
        self.dimension = settings.ml.embedding_dimension
        self.timeout = settings.ml.embed_timeout if timeout is _DEFAULT else timeout

    @property
    def model_name(self) -> str:
        return self.session.model_name

    def _encode_sync(self, model: Any, texts: list[str]) -> np.ndarray:
        embeddings = model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            normalize_embeddings=True,
            convert_to_numpy=True,
        )
        return l2_normalize(embeddings)

    async def _encode(self, texts: list[str], timeout: Any) -> np.ndarray:
        timeout = self.timeout if timeout is _DEFAULT else timeout
        model = await self.session.get_model()

        try:
            embeddings = await asyncio.wait_for(
                asyncio.to_thread(self._encode_sync, model, texts),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise OperationTimeoutError("embedding", timeout) from e
        except MatchingError:
            raise
        except Exception as e:
            logger.error(f"Embedding inference failed: {e}")
            raise EmbeddingError(f"Embedding inference failed: {e}") from e

        if embeddings.shape[0] != len(texts):
            raise EmbeddingError(
                f"Model returned {embeddings.shape[0]} vectors for {len(texts)} texts"
            )
        if embeddings.shape[1] != self.dimension:
            logger.warning(
                f"Model produced {embeddings.shape[1]}-d vectors, "
                f"configured dimension is {self.dimension}"
            )
        return embeddings

    async def embed(self, text: str, timeout: Optional[float] | object = _DEFAULT) -> list[float]:
        """
        Generate the embedding for one document.

        Args:
            text: Normalized document text.
            timeout: Seconds to allow for inference; ``None`` disables the
                bound. Defaults to the configured value.

        Returns:
            Unit-length embedding as a list of floats.

        Raises:
            ModelLoadError: The model could not be initialized.
            OperationTimeoutError: Inference exceeded ``timeout``.
            EmbeddingError: Inference failed.
        """
        embeddings = await self._encode([text], timeout)
        return embeddings[0].tolist()

    async def embed_batch(
        self,
        texts: list[str],
        timeout: Optional[float] | object = _DEFAULT,
    ) -> list[list[float]]:
        """Generate embeddings for several documents in one inference call."""
        if not texts:
            return []
        embeddings = await self._encode(list(texts), timeout)
        return [row.tolist() for row in embeddings]


# Process-wide instances
_model_session: Optional[ModelSession] = None
_embedding_model: Optional[EmbeddingModel] = None


def get_model_session() -> ModelSession:
    """Get the process-wide model session."""
    global _model_session
    if _model_session is None:
        _model_session = ModelSession()
    return _model_session


def get_embedding_model() -> EmbeddingModel:
    """Get the embedding model singleton instance."""
    global _embedding_model
    if _embedding_model is None:
        _embedding_model = EmbeddingModel(session=get_model_session())
    return _embedding_model
