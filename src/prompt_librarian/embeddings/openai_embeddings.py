"""
Embedding backends - Single Responsibility: turn text into a raw vector.

Backends know nothing about retries, validation, or cost. They make one
call and translate the provider's failures into the librarian's error
taxonomy at the boundary. EmbeddingClient (embeddings/client.py) layers
retry/backoff, validation and cost accounting on top.
"""

from __future__ import annotations

import hashlib
import logging
import os

import numpy as np
import openai
from openai import AsyncOpenAI

from prompt_librarian.core.protocols import BackendEmbedding, EmbeddingBackend
from prompt_librarian.errors import (
    AuthError,
    EmbeddingBackendError,
    EmbeddingTimeoutError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class OpenAIEmbeddingBackend:
    """
    OpenAI-based embedding backend.

    Uses the async client with SDK retries disabled; retry policy belongs
    to EmbeddingClient so it can be tested without the network.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 30.0,
    ):
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_s,
                max_retries=0,
            )

    def is_available(self) -> bool:
        return self._client is not None

    async def embed(self, text: str, model: str, dimensions: int) -> BackendEmbedding:
        """Generate embedding for a single text."""
        if self._client is None:
            raise AuthError("OpenAI API is not available. Check API key configuration.")

        kwargs = {"input": text, "model": model}
        # Only the v3 models accept a dimensions override
        if model.startswith("text-embedding-3"):
            kwargs["dimensions"] = dimensions

        try:
            response = await self._client.embeddings.create(**kwargs)
        except openai.AuthenticationError as e:
            raise AuthError("OpenAI API key is invalid", cause=e) from e
        except openai.RateLimitError as e:
            raise RateLimitError("OpenAI rate limit exceeded", cause=e) from e
        except openai.APITimeoutError as e:
            raise EmbeddingTimeoutError("OpenAI request timed out", cause=e) from e
        except openai.APIStatusError as e:
            if e.status_code == 408:
                raise EmbeddingTimeoutError("OpenAI request timed out", cause=e) from e
            raise EmbeddingBackendError(
                e.message or "Unknown error generating embedding",
                code=e.code,
                status=e.status_code,
                cause=e,
            ) from e
        except openai.APIConnectionError as e:
            raise EmbeddingBackendError(
                f"Could not reach OpenAI: {e}", code="CONNECTION_ERROR", cause=e
            ) from e

        return BackendEmbedding(
            vector=list(response.data[0].embedding),
            tokens_used=response.usage.total_tokens,
        )


class MockEmbeddingBackend:
    """
    Mock embedding backend for testing without API calls.

    Generates deterministic unit vectors seeded from the text hash, so the
    same text always embeds to the same vector.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 1536):
        self._dimensions = dimensions
        self.call_count = 0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return True

    async def embed(self, text: str, model: str, dimensions: int) -> BackendEmbedding:
        """Generate deterministic pseudo-embedding from text hash."""
        self.call_count += 1
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        vector = rng.standard_normal(dimensions)
        vector /= np.linalg.norm(vector)
        return BackendEmbedding(
            vector=vector.tolist(),
            tokens_used=max(1, len(text.split())),
        )


def get_embedding_backend(
    use_mock: bool = False,
    api_key: str | None = None,
    base_url: str | None = None,
    timeout_s: float = 30.0,
    dimensions: int = 1536,
) -> EmbeddingBackend:
    """
    Factory function to get the appropriate embedding backend.

    Args:
        use_mock: If True, return MockEmbeddingBackend (for testing)
    """
    if use_mock:
        logger.debug("Using mock embedding backend")
        return MockEmbeddingBackend(dimensions=dimensions)
    return OpenAIEmbeddingBackend(api_key=api_key, base_url=base_url, timeout_s=timeout_s)
