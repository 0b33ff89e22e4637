"""
Cost estimation - embedding model pricing and cost calculation.

Pricing is externalized so it can be:
1. Updated independently when OpenAI changes prices
2. Extended for new models
3. Checked against the configured dimensionality at startup
"""

# ---------------------------------------------------------------------------
# MODEL PRICING
# ---------------------------------------------------------------------------
# Approximate pricing per 1M input tokens
# Source: https://openai.com/pricing

MODEL_PRICING: dict[str, float] = {
    "text-embedding-3-small": 0.02,
    "text-embedding-3-large": 0.13,
    "text-embedding-ada-002": 0.10,
}

DEFAULT_MODEL = "text-embedding-3-small"

# Native output size; text-embedding-3 models can be shortened below it
MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


# ---------------------------------------------------------------------------
# COST ESTIMATION
# ---------------------------------------------------------------------------


def price_per_token(model: str) -> float:
    """USD per input token. Unknown models are billed at the default model's rate."""
    per_million = MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_MODEL])
    return per_million / 1_000_000


def embedding_cost(tokens_used: int, model: str) -> float:
    """
    Cost of one embedding call: tokens_used x price_per_token(model).

    This is a PURE FUNCTION - no side effects.

    Example:
        >>> embedding_cost(1000, "text-embedding-3-small")
        2e-05  # $0.02/1M * 1000
    """
    return tokens_used * price_per_token(model)


def native_dimensions(model: str) -> int | None:
    """Native embedding size for a known model, None otherwise."""
    return MODEL_DIMENSIONS.get(model)
