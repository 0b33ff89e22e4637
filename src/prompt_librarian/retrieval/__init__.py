"""
Retrieval module - document persistence for the librarian.

This module provides:
- Document / SearchHistoryEntry: typed store records
- DocumentStoreConfig: Configuration for stores
- PgDocumentStore: PostgreSQL production store
- InMemoryDocumentStore: Testing/development store
- get_document_store(): Factory function
"""

from prompt_librarian.retrieval.document import (
    DOCUMENT_STATUSES,
    Document,
    DocumentStatus,
    SearchHistoryEntry,
    document_from_row,
    history_entry_from_row,
)
from prompt_librarian.retrieval.store import (
    DocumentStoreConfig,
    InMemoryDocumentStore,
    PgDocumentStore,
    PsycopgExecutor,
    get_document_store,
)

__all__ = [
    # Records
    "Document",
    "DocumentStatus",
    "DOCUMENT_STATUSES",
    "SearchHistoryEntry",
    "document_from_row",
    "history_entry_from_row",
    # Config
    "DocumentStoreConfig",
    # Implementations
    "PgDocumentStore",
    "PsycopgExecutor",
    "InMemoryDocumentStore",
    # Factory
    "get_document_store",
]
