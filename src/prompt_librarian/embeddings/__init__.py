"""
Embeddings module - text embedding generation.

Follows the project pattern:
1. Protocol (EmbeddingBackend, in core.protocols) defines the interface
2. Production implementation (OpenAIEmbeddingBackend)
3. Test double (MockEmbeddingBackend) for fast testing
4. Factory function (get_embedding_backend)
5. EmbeddingClient adds retry, validation, cost and persistence
"""

from prompt_librarian.embeddings.client import EmbeddingClient
from prompt_librarian.embeddings.openai_embeddings import (
    MockEmbeddingBackend,
    OpenAIEmbeddingBackend,
    get_embedding_backend,
)
from prompt_librarian.embeddings.pricing import (
    MODEL_DIMENSIONS,
    MODEL_PRICING,
    embedding_cost,
    native_dimensions,
    price_per_token,
)

__all__ = [
    "EmbeddingClient",
    "OpenAIEmbeddingBackend",
    "MockEmbeddingBackend",
    "get_embedding_backend",
    "MODEL_PRICING",
    "MODEL_DIMENSIONS",
    "embedding_cost",
    "price_per_token",
    "native_dimensions",
]
