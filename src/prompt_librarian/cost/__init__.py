"""Cost sinks for embedding usage (production + in-memory)."""

from prompt_librarian.cost.tracking import InMemoryCostSink, PgCostSink

__all__ = ["InMemoryCostSink", "PgCostSink"]
