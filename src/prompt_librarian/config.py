"""
Librarian configuration.

Loads settings from environment variables. Library code receives a
LibrarianConfig explicitly; get_config() is only a convenience for the
CLI and app wiring.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("true", "1", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


@dataclass
class LibrarianConfig:
    """Configuration for the librarian core.

    Environment Variables:
        OPENAI_API_KEY: Embedding backend credential (unset = backend unconfigured)
        OPENAI_BASE_URL: Optional backend URL override
        LIBRARIAN_EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
        LIBRARIAN_EMBEDDING_DIMENSIONS: Vector dimensionality (default: 1536)
        LIBRARIAN_EMBEDDING_TIMEOUT_S: Per-call deadline in seconds (default: 30)
        LIBRARIAN_RETRY_ATTEMPTS: Attempts for transient failures (default: 3)
        LIBRARIAN_RETRY_BASE_DELAY_S: Backoff base delay (default: 1.0)
        LIBRARIAN_BATCH_PAUSE_S: Pause between embedding batches (default: 0.1)
        DATABASE_URL: PostgreSQL connection string (unset = in-memory store)
        USE_MOCK_EMBEDDINGS: Use the offline hash-based backend (default: false)
    """

    openai_api_key: str | None = None
    openai_base_url: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_timeout_s: float = 30.0
    retry_attempts: int = 3
    retry_base_delay_s: float = 1.0
    batch_pause_s: float = 0.1
    database_url: str | None = None
    use_mock_embeddings: bool = False

    @property
    def use_postgres(self) -> bool:
        return bool(self.database_url)

    @classmethod
    def from_env(cls) -> "LibrarianConfig":
        """Load config from environment variables."""
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            openai_base_url=os.environ.get("OPENAI_BASE_URL") or None,
            embedding_model=os.environ.get("LIBRARIAN_EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dimensions=_env_int("LIBRARIAN_EMBEDDING_DIMENSIONS", 1536),
            embedding_timeout_s=_env_float("LIBRARIAN_EMBEDDING_TIMEOUT_S", 30.0),
            retry_attempts=_env_int("LIBRARIAN_RETRY_ATTEMPTS", 3),
            retry_base_delay_s=_env_float("LIBRARIAN_RETRY_BASE_DELAY_S", 1.0),
            batch_pause_s=_env_float("LIBRARIAN_BATCH_PAUSE_S", 0.1),
            database_url=os.environ.get("DATABASE_URL") or None,
            use_mock_embeddings=_env_bool("USE_MOCK_EMBEDDINGS", False),
        )


# Global config singleton
_config: LibrarianConfig | None = None


def get_config() -> LibrarianConfig:
    """Get the global librarian config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = LibrarianConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
