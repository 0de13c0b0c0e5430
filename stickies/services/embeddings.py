"""
Embedding Providers

Text → fixed-length float vector, behind a small provider protocol.

Backends (``EMBEDDING_BACKEND``):
    - local:    sentence-transformers all-MiniLM-L6-v2 (384 dims, in-process)
    - openai:   text-embedding-3-small truncated to 384 dims
    - mock:     deterministic hashed bag-of-words (offline dev/test)
    - disabled: always unavailable; search runs in lexical mode

Design choices:
    - The local model is loaded at most once per process through a
      lock-guarded ``ModelLoader``. Concurrent first callers wait for the
      same load; a failed load is remembered and re-raised as
      ``ProviderLoadFailedError`` without trying again.
    - Model inference is CPU-bound and runs via ``asyncio.to_thread``.
    - ``EmbeddingService`` adds a per-call timeout and a dimension check;
      a timeout counts as ``ProviderUnavailableError``.

Pre-download the local model for production:
    python -c "from sentence_transformers import SentenceTransformer; \\
               SentenceTransformer('all-MiniLM-L6-v2')"
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import threading
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Generic, Protocol, TypeVar

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from stickies.core.config import VECTOR_COLUMN_DIMENSION, settings
from stickies.core.exceptions import (
    EmbeddingProviderError,
    InvalidDimensionError,
    ProviderLoadFailedError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

MODEL_NAME: str = "all-MiniLM-L6-v2"
EMBEDDING_DIMENSION: int = VECTOR_COLUMN_DIMENSION

T = TypeVar("T")


class EmbeddingProvider(Protocol):
    """Maps text to a vector of ``dimension`` floats."""

    name: str
    dimension: int

    async def embed(self, text: str) -> list[float]: ...


# ----------------------------------------------------------------------
# Load-once guard
# ----------------------------------------------------------------------


class ModelLoader(Generic[T]):
    """
    Thread-safe once-cell around an expensive factory.

    ``get()`` runs the factory on first use. Callers arriving while the
    load is in progress block on the lock and receive the same object. If
    the factory raises, the error is kept and every later ``get()`` fails
    immediately with ``ProviderLoadFailedError``.
    """

    def __init__(self, factory: Callable[[], T], name: str) -> None:
        self._factory = factory
        self._name = name
        self._lock = threading.Lock()
        self._value: T | None = None
        self._error: BaseException | None = None

    @property
    def loaded(self) -> bool:
        return self._value is not None

    @property
    def failed(self) -> bool:
        return self._error is not None

    def get(self) -> T:
        if self._value is not None:
            return self._value
        with self._lock:
            if self._error is not None:
                raise ProviderLoadFailedError(
                    f"{self._name} failed to load earlier: {self._error}"
                ) from self._error
            if self._value is None:
                logger.info("Loading embedding model: %s ...", self._name)
                try:
                    self._value = self._factory()
                except Exception as e:
                    self._error = e
                    logger.error("Embedding model %s failed to load: %s", self._name, e)
                    raise ProviderLoadFailedError(
                        f"{self._name} failed to load: {e}"
                    ) from e
                logger.info("Model loaded: %s", self._name)
            return self._value

    def reset(self) -> None:
        """Drop the loaded object and any remembered failure."""
        with self._lock:
            self._value = None
            self._error = None


# ----------------------------------------------------------------------
# Providers
# ----------------------------------------------------------------------


class SentenceTransformerProvider:
    """
    Local embedding provider backed by sentence-transformers.

    Output vectors are L2-normalized, so cosine similarity between them
    is a dot product.

    Usage::

        provider = SentenceTransformerProvider()
        vector = await provider.embed("buy milk")
        assert len(vector) == 384
    """

    def __init__(
        self,
        model_name: str = MODEL_NAME,
        dimension: int = EMBEDDING_DIMENSION,
    ) -> None:
        self.name = model_name
        self.dimension = dimension
        self._loader: ModelLoader[Any] = ModelLoader(self._load_model, model_name)

    def _load_model(self) -> Any:
        # Deferred import keeps test collection fast
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self.name)

    async def load(self) -> None:
        """Load the model in a worker thread (no-op once loaded)."""
        await asyncio.to_thread(self._loader.get)

    def _encode_sync(self, text: str) -> list[float]:
        """
        Synchronous encoding.

        Always call via ``asyncio.to_thread``; this blocks the calling
        thread for the duration of inference.
        """
        model = self._loader.get()
        try:
            embedding = model.encode(text, normalize_embeddings=True)
        except Exception as e:
            raise ProviderUnavailableError(f"{self.name} inference failed: {e}") from e
        result: list[float] = embedding.tolist()
        return result

    async def embed(self, text: str) -> list[float]:
        return await asyncio.to_thread(self._encode_sync, text)

    def reset(self) -> None:
        """Release the model from memory (also clears a remembered failure)."""
        self._loader.reset()
        logger.info("Embedding model released: %s", self.name)


class OpenAIEmbeddingProvider:
    """
    Remote embedding provider using the OpenAI embeddings API.

    ``text-embedding-3-small`` supports shortened output; requesting 384
    dimensions keeps vectors interchangeable in size with the local model
    (not in meaning: switching providers requires re-indexing).
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "text-embedding-3-small",
        dimension: int = EMBEDDING_DIMENSION,
    ) -> None:
        self.name = model
        self.dimension = dimension
        self._api_key = api_key
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if not self._api_key:
            raise ProviderLoadFailedError("OPENAI_API_KEY is not set")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def embed(self, text: str) -> list[float]:
        client = self._get_client()
        text = text.replace("\n", " ")  # OpenAI recommends single-line input

        try:
            response = await client.embeddings.create(
                input=[text],
                model=self.name,
                dimensions=self.dimension,
            )
        except OpenAIError as e:
            logger.error("OpenAI embedding error: %s", e)
            raise ProviderUnavailableError(f"OpenAI embedding failed: {e}") from e
        return list(response.data[0].embedding)


_TOKEN_RE = re.compile(r"[a-z0-9]+")


class HashingEmbeddingProvider:
    """
    Deterministic offline provider (``EMBEDDING_BACKEND=mock``).

    Each lowercase word is hashed to a signed slot of the vector and the
    result is L2-normalized. Texts sharing words score higher; there is
    no notion of synonyms. Text without words maps to the zero vector.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.name = f"hashing-{dimension}"
        self.dimension = dimension

    def _slot(self, token: str) -> tuple[int, float]:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "big")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self.dimension, sign

    async def embed(self, text: str) -> list[float]:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for token in _TOKEN_RE.findall(text.lower()):
            index, sign = self._slot(token)
            vector[index] += sign
        norm = float(np.linalg.norm(vector))
        if norm > 0.0:
            vector /= norm
        return vector.tolist()


class DisabledEmbeddingProvider:
    """Provider for ``EMBEDDING_BACKEND=disabled``: never produces vectors."""

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.name = "disabled"
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        raise ProviderUnavailableError("Embeddings are disabled")


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------


class EmbeddingService:
    """
    Provider wrapper used by the indexing and search services.

    Adds a timeout to every ``embed`` call and rejects vectors whose
    length differs from the provider's declared dimension. Model loading
    (for providers with a ``load`` coroutine) happens before the timed
    call, so a slow first load is not mistaken for a hung request.

    Args:
        provider: The backend producing vectors.
        timeout: Seconds allowed per embed call; None disables it.
    """

    def __init__(self, provider: EmbeddingProvider, timeout: float | None = 10.0) -> None:
        self._provider = provider
        self._timeout = timeout

    @property
    def provider(self) -> EmbeddingProvider:
        return self._provider

    @property
    def name(self) -> str:
        return self._provider.name

    @property
    def dimension(self) -> int:
        return self._provider.dimension

    async def warm_up(self) -> None:
        """Load the provider's model now instead of on first use."""
        load = getattr(self._provider, "load", None)
        if load is not None:
            await load()

    async def embed(self, text: str) -> list[float]:
        """
        Embed ``text``.

        Raises:
            ProviderUnavailableError: Provider failed or timed out.
            ProviderLoadFailedError: Provider could not be initialized.
            InvalidDimensionError: Provider returned the wrong length.
        """
        await self.warm_up()
        try:
            vector = await asyncio.wait_for(
                self._provider.embed(text), timeout=self._timeout
            )
        except TimeoutError as e:
            logger.warning(
                "Embedding call to %s timed out after %ss", self.name, self._timeout
            )
            raise ProviderUnavailableError(
                f"{self.name} timed out after {self._timeout}s"
            ) from e
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise ProviderUnavailableError(f"{self.name} failed: {e}") from e

        if len(vector) != self.dimension:
            raise InvalidDimensionError(self.dimension, len(vector))
        return [float(x) for x in vector]


def build_provider(backend: str | None = None) -> EmbeddingProvider:
    """Instantiate the provider named by ``backend`` (default: settings)."""
    backend = backend or settings.EMBEDDING_BACKEND
    dimension = settings.EMBEDDING_DIMENSION

    if backend == "local":
        return SentenceTransformerProvider(settings.EMBEDDING_MODEL, dimension)
    if backend == "openai":
        return OpenAIEmbeddingProvider(
            settings.OPENAI_API_KEY,
            model=settings.OPENAI_EMBEDDING_MODEL,
            dimension=dimension,
        )
    if backend == "mock":
        return HashingEmbeddingProvider(dimension)
    if backend == "disabled":
        return DisabledEmbeddingProvider(dimension)
    raise ValueError(f"Unknown embedding backend: '{backend}'")


@lru_cache(maxsize=1)
def get_embedding_service() -> EmbeddingService:
    """
    Process-wide embedding service built from settings.

    Also used as a FastAPI dependency; tests override it.
    """
    provider = build_provider()
    logger.info(
        "Embedding backend: %s (model=%s, dim=%d)",
        settings.EMBEDDING_BACKEND,
        provider.name,
        provider.dimension,
    )
    return EmbeddingService(provider, timeout=settings.EMBEDDING_TIMEOUT)
