"""
Unit Tests for Embedding Pricing

Cost computation is deterministic and offline.
"""

import pytest

from prompt_librarian.embeddings.pricing import (
    MODEL_DIMENSIONS,
    MODEL_PRICING,
    embedding_cost,
    native_dimensions,
    price_per_token,
)


class TestPricing:
    """Tests for the pricing table and cost helpers."""

    def test_every_priced_model_has_dimensions(self):
        assert set(MODEL_PRICING) == set(MODEL_DIMENSIONS)

    @pytest.mark.parametrize(
        "model,expected",
        [
            ("text-embedding-3-small", 0.02),
            ("text-embedding-3-large", 0.13),
            ("text-embedding-ada-002", 0.10),
        ],
    )
    def test_one_million_tokens(self, model, expected):
        assert embedding_cost(1_000_000, model) == pytest.approx(expected)

    def test_cost_is_tokens_times_price_per_token(self):
        tokens = 1234
        model = "text-embedding-3-large"
        assert embedding_cost(tokens, model) == pytest.approx(tokens * price_per_token(model))

    def test_unknown_model_uses_default_rate(self):
        assert embedding_cost(1000, "mystery-embedder") == embedding_cost(1000, "text-embedding-3-small")

    def test_zero_tokens_cost_nothing(self):
        assert embedding_cost(0, "text-embedding-3-small") == 0.0

    def test_native_dimensions(self):
        assert native_dimensions("text-embedding-3-large") == 3072
        assert native_dimensions("mystery-embedder") is None
