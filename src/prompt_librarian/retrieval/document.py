"""
Document model for the librarian store.

Single responsibility: define the typed records the store hands back,
plus one conversion function per entity. Ranking and suggestion code
only ever sees these dataclasses, never raw database rows.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

import numpy as np

DocumentStatus = Literal["draft", "active", "saved", "archived"]
DOCUMENT_STATUSES: tuple[str, ...] = ("draft", "active", "saved", "archived")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """
    A stored prompt.

    embedding is None until the auto-embed hooks (or a batch run) fill it in.
    """

    id: str
    owner_id: str
    title: str
    content: str
    status: DocumentStatus = "draft"
    embedding: list[float] | None = None
    tags: list[str] | None = None
    description: str | None = None
    author: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (embedding omitted)."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "content": self.content,
            "status": self.status,
            "tags": self.tags,
            "description": self.description,
            "author": self.author,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class SearchHistoryEntry:
    """One row of the append-only search log."""

    id: str
    owner_id: str
    query_text: str
    result_count: int
    filters_snapshot: dict[str, Any]
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "query_text": self.query_text,
            "result_count": self.result_count,
            "filters_snapshot": self.filters_snapshot,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# ROW CONVERSION
# ---------------------------------------------------------------------------


def _coerce_embedding(value: Any) -> list[float] | None:
    # pgvector hands back numpy arrays, JSON columns hand back lists or text
    if value is None:
        return None
    if isinstance(value, np.ndarray):
        return value.astype(float).tolist()
    if isinstance(value, str):
        value = json.loads(value)
    return [float(v) for v in value]


def _coerce_timestamp(value: Any) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _coerce_json(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def document_from_row(row: Mapping[str, Any]) -> Document:
    """Build a Document from a store row (dict-like)."""
    status = row.get("status") or "draft"
    if status not in DOCUMENT_STATUSES:
        raise ValueError(f"Unknown document status {status!r} for document {row.get('id')}")

    return Document(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        title=row.get("title") or "",
        content=row.get("content") or "",
        status=status,
        embedding=_coerce_embedding(row.get("embedding")),
        tags=list(row["tags"]) if row.get("tags") is not None else None,
        description=row.get("description"),
        author=row.get("author"),
        created_at=_coerce_timestamp(row.get("created_at")),
        updated_at=_coerce_timestamp(row.get("updated_at")),
    )


def history_entry_from_row(row: Mapping[str, Any]) -> SearchHistoryEntry:
    """Build a SearchHistoryEntry from a store row (dict-like)."""
    return SearchHistoryEntry(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        query_text=row["query_text"],
        result_count=int(row.get("result_count") or 0),
        filters_snapshot=_coerce_json(row.get("filters_snapshot")),
        created_at=_coerce_timestamp(row.get("created_at")),
    )
