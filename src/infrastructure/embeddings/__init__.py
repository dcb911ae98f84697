"""
Embedding Client Infrastructure
===============================

Wrappers for embedding providers (HTTP embedding service, OpenAI, Z.AI)
providing one interface for turning text into vectors.

Every client shares the same call policy:
- each call is bounded by ``embedding_timeout_seconds``
- rate-limit responses are retried with exponential backoff, up to
  ``embedding_max_attempts`` attempts
- authorization failures abort immediately
- any other failure surfaces as EmbeddingException
"""

import asyncio
import hashlib
import math
import random
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
import openai
from openai import AsyncOpenAI
from zai import ZaiClient

from src.config import Settings, settings
from src.core import (
    ConfigurationException,
    EmbeddingException,
    ProviderAuthorizationException,
    RateLimitedException,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises:
        ValueError: If the vectors differ in dimension
    """
    if len(a) != len(b):
        raise ValueError(f"Embeddings must have the same dimension ({len(a)} != {len(b)})")

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
    if magnitude == 0:
        return 0.0
    return dot / magnitude


def _raise_for_status(status_code: Optional[int], message: str) -> None:
    """Translate a provider status code into the retry taxonomy."""
    if status_code == 429:
        raise RateLimitedException(message, {"status_code": status_code})
    if status_code in (401, 403):
        raise ProviderAuthorizationException(message, {"status_code": status_code})


class IEmbeddingClient(ABC):
    """
    Interface for embedding client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Whether the provider is reachable."""

    async def close(self) -> None:
        """Release network resources."""


class RetryingEmbeddingClient(IEmbeddingClient):
    """
    Base class implementing timeout and rate-limit retry around one call.

    Subclasses implement ``_embed_once`` and raise RateLimitedException /
    ProviderAuthorizationException where the provider tells them to.
    """

    def __init__(
        self,
        model: str,
        timeout_seconds: float,
        max_attempts: int,
        backoff_seconds: float
    ):
        self._model = model
        self._timeout = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds

    @abstractmethod
    async def _embed_once(self, text: str) -> List[float]:
        """Single provider round-trip."""

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector

        Raises:
            EmbeddingException: If embedding generation fails
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                vector = await asyncio.wait_for(self._embed_once(text), timeout=self._timeout)
            except RateLimitedException:
                if attempt >= self._max_attempts:
                    logger.error(
                        "Embedding rate limited, giving up",
                        extra={"attempts": attempt, "model": self._model}
                    )
                    raise
                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Embedding rate limited, backing off",
                    extra={"attempt": attempt, "delay_seconds": delay}
                )
                await asyncio.sleep(delay)
                continue
            except ProviderAuthorizationException:
                logger.error("Embedding provider rejected credentials", extra={"model": self._model})
                raise
            except EmbeddingException:
                raise
            except asyncio.TimeoutError:
                raise EmbeddingException(f"Embedding timed out after {self._timeout}s")
            except Exception as e:
                raise EmbeddingException(f"Embedding generation failed: {str(e)}")

            if not vector or not isinstance(vector, list):
                raise EmbeddingException("Invalid embedding response format")

            logger.debug(
                "Embedding generated",
                extra={"text_length": len(text), "dimension": len(vector)}
            )
            return EmbeddingResult(embedding=vector, model=self._model)

        raise EmbeddingException("Embedding generation exhausted its attempts")


class HTTPEmbeddingClient(RetryingEmbeddingClient):
    """
    Client for a self-hosted embedding service.

    Contract: ``POST {base_url}/embeddings`` with ``{"text": ...}`` returns
    ``{"embedding": [...], "model": ...}``; ``GET {base_url}/health``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        model: str = "http-embedding",
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(model, timeout_seconds, max_attempts, backoff_seconds)
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http_client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport
        )

    async def _embed_once(self, text: str) -> List[float]:
        response = await self._http_client.post("/embeddings", json={"text": text})
        _raise_for_status(
            response.status_code,
            f"Embedding service error: {response.status_code} {response.reason_phrase}"
        )
        if response.status_code != 200:
            raise EmbeddingException(
                f"Embedding service error: {response.status_code} {response.reason_phrase}"
            )
        return response.json().get("embedding")

    async def health_check(self) -> bool:
        try:
            response = await self._http_client.get("/health", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("Embedding service health check failed", extra={"error": str(e)})
            return False

    async def close(self) -> None:
        await self._http_client.aclose()


class OpenAIEmbeddingClient(RetryingEmbeddingClient):
    """
    OpenAI embeddings.

    The SDK's own retries are disabled so the shared policy applies.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0
    ):
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise ConfigurationException("OpenAI API key not configured")
        super().__init__(model or settings.embedding_model, timeout_seconds, max_attempts, backoff_seconds)
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    async def _embed_once(self, text: str) -> List[float]:
        try:
            response = await self._client.embeddings.create(model=self._model, input=text)
        except openai.RateLimitError as e:
            raise RateLimitedException(str(e), {"status_code": 429})
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderAuthorizationException(str(e), {"status_code": e.status_code})
        except openai.APITimeoutError:
            raise asyncio.TimeoutError()
        return list(response.data[0].embedding)

    async def health_check(self) -> bool:
        try:
            await self.generate_embedding("health check")
            return True
        except EmbeddingException:
            return False

    async def close(self) -> None:
        await self._client.close()


class ZAIEmbeddingClient(RetryingEmbeddingClient):
    """
    Z.AI embeddings.

    The Z.AI SDK is synchronous, so calls run in a worker thread to keep
    concurrent requests from blocking each other.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0
    ):
        api_key = api_key or settings.zai_api_key
        if not api_key:
            raise ConfigurationException("Z.AI API key not configured")
        super().__init__(model or settings.embedding_model, timeout_seconds, max_attempts, backoff_seconds)
        self._client = ZaiClient(api_key=api_key)

    def _create(self, text: str) -> List[float]:
        response = self._client.embeddings.create(model=self._model, input=text)
        return list(response.data[0].embedding)

    async def _embed_once(self, text: str) -> List[float]:
        try:
            return await asyncio.to_thread(self._create, text)
        except Exception as e:
            _raise_for_status(getattr(e, "status_code", None), str(e))
            raise

    async def health_check(self) -> bool:
        try:
            await self.generate_embedding("health check")
            return True
        except EmbeddingException:
            return False


class MockEmbeddingClient(IEmbeddingClient):
    """
    Mock embedding client for development and tests.

    Produces a deterministic pseudo-embedding from a hash of the
    normalized text, so identical questions always score 1.0.
    """

    def __init__(self, dimension: Optional[int] = None):
        self._dimension = dimension or settings.embedding_dimension

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        normalized = " ".join(text.lower().split())
        seed = int(hashlib.sha256(normalized.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        embedding = [rng.uniform(-1, 1) for _ in range(self._dimension)]
        return EmbeddingResult(embedding=embedding, model="mock-embedding")

    async def health_check(self) -> bool:
        return True


def build_embedding_client(config: Settings = settings) -> IEmbeddingClient:
    """
    Create the embedding client selected by ``embedding_provider``.

    Raises:
        ConfigurationException: If the selected provider lacks credentials
    """
    provider = config.embedding_provider
    common = {
        "timeout_seconds": config.embedding_timeout_seconds,
        "max_attempts": config.embedding_max_attempts,
        "backoff_seconds": config.embedding_backoff_seconds,
    }

    if provider == "http":
        return HTTPEmbeddingClient(
            config.embedding_service_url,
            api_key=config.embedding_api_key,
            model=config.embedding_model,
            **common
        )
    if provider == "openai":
        return OpenAIEmbeddingClient(config.openai_api_key, config.embedding_model, **common)
    if provider == "zai":
        return ZAIEmbeddingClient(config.zai_api_key, config.embedding_model, **common)
    return MockEmbeddingClient(config.embedding_dimension)


__all__ = [
    "EmbeddingResult",
    "IEmbeddingClient",
    "RetryingEmbeddingClient",
    "HTTPEmbeddingClient",
    "OpenAIEmbeddingClient",
    "ZAIEmbeddingClient",
    "MockEmbeddingClient",
    "build_embedding_client",
    "cosine_similarity",
]
