"""
Core module - shared protocols and records for the librarian.

USAGE:
------
from prompt_librarian.core import DocumentStore, EmbeddingBackend

class MyStore:
    '''Implements DocumentStore protocol.'''
    ...
"""

from prompt_librarian.core.outcome import Outcome, OutcomeStatus
from prompt_librarian.core.protocols import (
    # Protocols
    EmbeddingBackend,
    DocumentStore,
    QueryExecutor,
    CostSink,
    # Data classes
    BackendEmbedding,
    EmbeddingResult,
    EmbeddingFailure,
    BatchEmbeddingResult,
    CostRecord,
    TrackCostResult,
    OperationType,
)

__all__ = [
    # Outcomes
    "Outcome",
    "OutcomeStatus",
    # Protocols
    "EmbeddingBackend",
    "DocumentStore",
    "QueryExecutor",
    "CostSink",
    # Data classes
    "BackendEmbedding",
    "EmbeddingResult",
    "EmbeddingFailure",
    "BatchEmbeddingResult",
    "CostRecord",
    "TrackCostResult",
    "OperationType",
]
