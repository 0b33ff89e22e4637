"""
Shared pytest fixtures for librarian tests.

Provides a scripted embedding backend and small 3-dimensional documents so
similarity scores are easy to reason about - no network, no database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest

from prompt_librarian.config import LibrarianConfig
from prompt_librarian.core.protocols import BackendEmbedding
from prompt_librarian.cost.tracking import InMemoryCostSink
from prompt_librarian.embeddings.client import EmbeddingClient
from prompt_librarian.observability.tracer import NoOpTracer
from prompt_librarian.retrieval.document import Document
from prompt_librarian.retrieval.store import InMemoryDocumentStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class ScriptedBackend:
    """
    Embedding backend whose answers are scripted per test.

    - vectors: text -> vector (unknown text gets `default`)
    - failures: exceptions raised, in order, before any success
    """

    def __init__(
        self,
        vectors: dict[str, Sequence[float]] | None = None,
        default: Sequence[float] = (0.0, 0.0, 1.0),
        failures: Sequence[BaseException] = (),
        available: bool = True,
        tokens: int = 7,
    ):
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.failures = list(failures)
        self.available = available
        self.tokens = tokens
        self.calls: list[tuple[str, str, int]] = []

    def is_available(self) -> bool:
        return self.available

    async def embed(self, text: str, model: str, dimensions: int) -> BackendEmbedding:
        self.calls.append((text, model, dimensions))
        if self.failures:
            raise self.failures.pop(0)
        return BackendEmbedding(vector=list(self.vectors.get(text, self.default)), tokens_used=self.tokens)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_doc(
    doc_id: str,
    embedding: Sequence[float] | None = (1.0, 0.0, 0.0),
    owner_id: str = "owner-1",
    status: str = "active",
    tags: list[str] | None = None,
    updated_hours_ago: float = 1.0,
    content: str | None = None,
) -> Document:
    updated_at = NOW - timedelta(hours=updated_hours_ago)
    return Document(
        id=doc_id,
        owner_id=owner_id,
        title=f"Prompt {doc_id}",
        content=content if content is not None else f"content of {doc_id}",
        status=status,
        embedding=list(embedding) if embedding is not None else None,
        tags=tags,
        created_at=updated_at - timedelta(days=1),
        updated_at=updated_at,
    )


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    return LibrarianConfig(
        openai_api_key="test-key",
        embedding_dimensions=3,
        retry_attempts=3,
        retry_base_delay_s=1.0,
        batch_pause_s=0.1,
    )


@pytest.fixture
def backend():
    return ScriptedBackend(
        vectors={
            "budget planning": [1.0, 0.0, 0.0],
            "travel": [0.0, 1.0, 0.0],
        }
    )


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def cost_sink():
    return InMemoryCostSink()


@pytest.fixture
def client(backend, store, cost_sink, config, sleep):
    return EmbeddingClient(backend, store, cost_sink, config=config, tracer=NoOpTracer(), sleep=sleep)
