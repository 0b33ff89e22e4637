"""
EmbeddingClient - validated embeddings with retry/backoff and cost accounting.

Layers on top of an EmbeddingBackend:
1. Input validation (empty text fails fast, no backend call)
2. Retry with exponential backoff for transient failures
3. Output validation (finite values, expected dimensionality)
4. Deterministic cost computation (pricing.py, no network)
5. Persistence + cost reporting for stored prompts

RETRY POLICY:
-------------
RateLimitError, EmbeddingTimeoutError and InvalidEmbeddingError are retried
with delay = base_delay * 2**attempt, up to retry_attempts total attempts.
AuthError and any other backend error propagate immediately. After the
last attempt the last transient error propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Sequence

from prompt_librarian.config import LibrarianConfig
from prompt_librarian.core.protocols import (
    BatchEmbeddingResult,
    CostRecord,
    CostSink,
    DocumentStore,
    EmbeddingBackend,
    EmbeddingFailure,
    EmbeddingResult,
)
from prompt_librarian.embeddings.pricing import embedding_cost, native_dimensions
from prompt_librarian.errors import (
    RETRYABLE_ERRORS,
    AuthError,
    EmbeddingBackendError,
    EmptyInputError,
    InvalidEmbeddingError,
)
from prompt_librarian.observability.attributes import (
    GEN_AI_REQUEST_MODEL,
    GEN_AI_SYSTEM,
    GEN_AI_USAGE_INPUT_TOKENS,
    LIBRARIAN_EMBEDDING_ATTEMPTS,
    LIBRARIAN_EMBEDDING_COST_USD,
    LIBRARIAN_EMBEDDING_DIMENSIONS,
)
from prompt_librarian.observability.tracer import TracerProtocol, get_tracer
from prompt_librarian.vector import validate_embedding

logger = logging.getLogger(__name__)

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_BATCH_SIZE = 10
PROGRESS_LOG_EVERY = 10

Sleep = Callable[[float], Awaitable[None]]


class EmbeddingClient:
    """
    Produces validated embeddings and writes them onto stored documents.

    Dependencies are INJECTED, not created internally, so tests can pass a
    scripted backend, an in-memory store and a no-op sleep.
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        store: DocumentStore,
        cost_sink: CostSink,
        config: LibrarianConfig | None = None,
        tracer: TracerProtocol | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        config = config or LibrarianConfig()
        self._backend = backend
        self._store = store
        self._cost_sink = cost_sink
        self._tracer = tracer or get_tracer()
        self._sleep = sleep
        self.model = config.embedding_model
        self.dimensions = config.embedding_dimensions
        self.retry_attempts = config.retry_attempts
        self.retry_base_delay_s = config.retry_base_delay_s
        self.batch_pause_s = config.batch_pause_s

        native = native_dimensions(self.model)
        if native is not None and self.dimensions > native:
            logger.warning(
                f"Configured embedding dimensions {self.dimensions} exceed the native "
                f"size {native} of {self.model}; embeddings will fail validation"
            )

    # -----------------------------------------------------------------------
    # SINGLE EMBEDDING
    # -----------------------------------------------------------------------

    async def generate_embedding(
        self,
        text: str,
        retry_attempts: int | None = None,
    ) -> EmbeddingResult:
        """
        Generate an embedding vector for text.

        Args:
            text: Text to embed (trimmed before sending)
            retry_attempts: Total attempts for transient failures
                (defaults to the configured value, normally 3)

        Raises:
            EmptyInputError: text is empty after trimming (no backend call)
            AuthError: backend unconfigured or credentials rejected
            RateLimitError / EmbeddingTimeoutError: still failing after the last attempt
            InvalidEmbeddingError: backend kept returning a malformed vector
            EmbeddingBackendError: any other backend failure (not retried)
        """
        if text is None or not text.strip():
            raise EmptyInputError("Text cannot be empty")

        if not self._backend.is_available():
            raise AuthError("Embedding backend is not available. Check API key configuration.")

        attempts = max(1, retry_attempts if retry_attempts is not None else self.retry_attempts)
        text = text.strip()
        last_error: EmbeddingBackendError | None = None

        with self._tracer.start_span(
            "librarian.embedding.generate",
            attributes={
                GEN_AI_SYSTEM: "openai",
                GEN_AI_REQUEST_MODEL: self.model,
                LIBRARIAN_EMBEDDING_DIMENSIONS: self.dimensions,
            },
        ) as span:
            for attempt in range(attempts):
                try:
                    raw = await self._backend.embed(text, self.model, self.dimensions)
                    vector = self._validate(raw.vector)
                except RETRYABLE_ERRORS as e:
                    last_error = e
                    if attempt < attempts - 1:
                        delay = self.retry_base_delay_s * (2 ** attempt)
                        logger.warning(
                            f"{type(e).__name__}: {e}; retrying in {delay:.2f}s "
                            f"(attempt {attempt + 1}/{attempts})"
                        )
                        await self._sleep(delay)
                    continue
                except EmbeddingBackendError as e:
                    span.record_exception(e)
                    span.set_status("error", str(e))
                    raise
                except Exception as e:
                    span.record_exception(e)
                    span.set_status("error", str(e))
                    raise EmbeddingBackendError(
                        str(e) or "Unknown error generating embedding",
                        code=getattr(e, "code", None),
                        status=getattr(e, "status", None),
                        cause=e,
                    ) from e

                cost = embedding_cost(raw.tokens_used, self.model)
                span.set_attribute(GEN_AI_USAGE_INPUT_TOKENS, raw.tokens_used)
                span.set_attribute(LIBRARIAN_EMBEDDING_COST_USD, cost)
                span.set_attribute(LIBRARIAN_EMBEDDING_ATTEMPTS, attempt + 1)
                span.set_status("ok")
                return EmbeddingResult(
                    vector=vector,
                    tokens_used=raw.tokens_used,
                    cost_usd=cost,
                    model_id=self.model,
                )

            if last_error is None:
                raise EmbeddingBackendError(f"No embedding attempt completed for model {self.model}")
            logger.error(f"Embedding failed after {attempts} attempts: {last_error}")
            span.record_exception(last_error)
            span.set_status("error", str(last_error))
            raise last_error

    def _validate(self, vector: Sequence[float]) -> list[float]:
        if not validate_embedding(vector):
            raise InvalidEmbeddingError(
                "Generated embedding is invalid (contains NaN or non-numeric values)"
            )
        if len(vector) != self.dimensions:
            raise InvalidEmbeddingError(
                f"Embedding dimension mismatch: expected {self.dimensions}, got {len(vector)}"
            )
        return [float(v) for v in vector]

    # -----------------------------------------------------------------------
    # STORED PROMPTS
    # -----------------------------------------------------------------------

    async def embed_prompt(
        self,
        doc_id: str,
        content: str,
        owner_id: str,
        session_id: str | None = None,
    ) -> EmbeddingResult:
        """
        Embed a prompt's content, store the vector, report the cost.

        Only the document's embedding field is written.
        """
        result = await self.generate_embedding(content)

        await self._store.update_embedding(doc_id, result.vector)

        await self._cost_sink.track(
            CostRecord(
                owner_id=owner_id,
                session_id=session_id,
                model_id=result.model_id,
                prompt_tokens=result.tokens_used,
                completion_tokens=0,
                total_tokens=result.tokens_used,
                cost_usd=result.cost_usd,
                operation_type="search",
            )
        )

        logger.info(
            f"Embedded prompt {doc_id}: {result.tokens_used} tokens, ${result.cost_usd:.6f}"
        )
        return result

    async def embed_all_prompts(
        self,
        owner_id: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> BatchEmbeddingResult:
        """
        Embed every one of the owner's documents that has no embedding.

        Runs sequentially in batches with a short pause between batches.
        Per-document failures are collected, not raised. Safe to re-run:
        already-embedded documents are never selected.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        start = time.perf_counter()
        documents = await self._store.list_unembedded(owner_id)
        result = BatchEmbeddingResult()

        if not documents:
            result.duration_ms = (time.perf_counter() - start) * 1000
            return result

        total = len(documents)
        logger.info(f"Starting batch embedding for {total} prompts (batch size: {batch_size})")

        for i in range(0, total, batch_size):
            for doc in documents[i : i + batch_size]:
                try:
                    embedded = await self.embed_prompt(doc.id, doc.content, owner_id)
                except Exception as e:
                    logger.error(f"Failed to embed prompt {doc.id}: {e}")
                    result.errors.append(EmbeddingFailure(id=doc.id, error=str(e)))
                    continue

                result.processed += 1
                result.tokens += embedded.tokens_used
                result.cost += embedded.cost_usd

                if result.processed % PROGRESS_LOG_EVERY == 0:
                    logger.info(
                        f"Progress: {result.processed}/{total} "
                        f"({result.processed / total:.1%})"
                    )

            if i + batch_size < total:
                await self._sleep(self.batch_pause_s)

        result.duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"Completed: {result.processed}/{total} prompts in {result.duration_ms / 1000:.1f}s, "
            f"{result.tokens} tokens, ${result.cost:.4f}"
        )
        if result.errors:
            logger.warning(f"{len(result.errors)} prompts failed to embed")

        return result

    async def has_embedding(self, doc_id: str) -> bool:
        """True if the document exists and has a non-empty embedding."""
        return await self._store.has_embedding(doc_id)

    async def refresh_embedding(
        self,
        doc_id: str,
        new_content: str,
        owner_id: str,
        session_id: str | None = None,
    ) -> EmbeddingResult:
        """Re-embed a prompt unconditionally."""
        logger.info(f"Refreshing embedding for prompt {doc_id}")
        return await self.embed_prompt(doc_id, new_content, owner_id, session_id)
