"""
Auto-embed hooks - keep prompt embeddings fresh on create/update.

Called from document create/update paths. These hooks NEVER raise: a
document save must not fail because embedding failed. Each hook decides
an Outcome (succeeded / skipped / failed) internally and logs it.

CONFIGURATION:
--------------
AutoEmbedConfig is an immutable snapshot. AutoEmbedSettings owns the
current snapshot; configure() swaps in a merged copy. The hooks take a
settings object explicitly, with a process-wide default for callers that
don't care.

Environment Variables:
    LIBRARIAN_AUTO_EMBED_ON_CREATE: Embed new prompts (default: true)
    LIBRARIAN_AUTO_EMBED_ON_UPDATE: Re-embed updated prompts (default: true)
    LIBRARIAN_AUTO_EMBED_ONLY_IF_CHANGED: Skip updates without new content (default: true)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Literal

from prompt_librarian.config import _env_bool
from prompt_librarian.core.outcome import Outcome, OutcomeStatus
from prompt_librarian.core.protocols import DocumentStore
from prompt_librarian.embeddings.client import EmbeddingClient

logger = logging.getLogger(__name__)

HookOperation = Literal["create", "update"]


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AutoEmbedConfig:
    on_create: bool = True
    on_update: bool = True
    only_if_content_changed: bool = True

    @classmethod
    def from_env(cls) -> "AutoEmbedConfig":
        return cls(
            on_create=_env_bool("LIBRARIAN_AUTO_EMBED_ON_CREATE", True),
            on_update=_env_bool("LIBRARIAN_AUTO_EMBED_ON_UPDATE", True),
            only_if_content_changed=_env_bool("LIBRARIAN_AUTO_EMBED_ONLY_IF_CHANGED", True),
        )


class AutoEmbedSettings:
    """Holder for the current AutoEmbedConfig snapshot."""

    def __init__(self, config: AutoEmbedConfig | None = None):
        self._initial = config or AutoEmbedConfig()
        self._config = self._initial

    def get(self) -> AutoEmbedConfig:
        return self._config

    def configure(self, **changes: Any) -> AutoEmbedConfig:
        """Merge changes into the current config. Unknown keys raise TypeError."""
        known = {f.name for f in fields(AutoEmbedConfig)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown auto-embed settings: {sorted(unknown)}")

        self._config = replace(self._config, **changes)
        logger.info(f"Auto-embed config updated: {self._config}")
        return self._config

    def reset(self) -> None:
        self._config = self._initial


_default_settings: AutoEmbedSettings | None = None


def default_settings() -> AutoEmbedSettings:
    """Process-wide settings (lazy-loaded from env)."""
    global _default_settings
    if _default_settings is None:
        _default_settings = AutoEmbedSettings(AutoEmbedConfig.from_env())
    return _default_settings


def get_auto_embed_config() -> AutoEmbedConfig:
    return default_settings().get()


def configure_auto_embed(**changes: Any) -> AutoEmbedConfig:
    return default_settings().configure(**changes)


def reset_auto_embed_config() -> None:
    """Drop the process-wide settings (useful for testing)."""
    global _default_settings
    _default_settings = None


# ---------------------------------------------------------------------------
# HOOKS
# ---------------------------------------------------------------------------


class AutoEmbedHooks:
    """Create/update hooks that embed prompt content best-effort."""

    def __init__(
        self,
        client: EmbeddingClient,
        store: DocumentStore,
        settings: AutoEmbedSettings | None = None,
    ):
        self._client = client
        self._store = store
        self._settings = settings or default_settings()

    def get_config(self) -> AutoEmbedConfig:
        return self._settings.get()

    def configure(self, **changes: Any) -> AutoEmbedConfig:
        return self._settings.configure(**changes)

    def is_auto_embed_enabled(self, operation: HookOperation) -> bool:
        config = self._settings.get()
        if operation == "create":
            return config.on_create
        if operation == "update":
            return config.on_update
        raise ValueError(f"Unknown operation: {operation!r}")

    async def auto_embed_on_create(
        self,
        doc_id: str,
        content: str,
        owner_id: str,
        session_id: str | None = None,
    ) -> None:
        """Embed a newly created prompt. Never raises."""
        outcome = await self._guard(self._on_create(doc_id, content, owner_id, session_id))
        _log_outcome("create", doc_id, outcome)

    async def auto_embed_on_update(
        self,
        doc_id: str,
        new_content: str | None,
        owner_id: str,
        session_id: str | None = None,
    ) -> None:
        """
        Refresh a prompt's embedding after an update. Never raises.

        new_content=None means the update didn't touch the content.
        """
        outcome = await self._guard(self._on_update(doc_id, new_content, owner_id, session_id))
        _log_outcome("update", doc_id, outcome)

    # -----------------------------------------------------------------------
    # DECISIONS
    # -----------------------------------------------------------------------

    async def _on_create(
        self,
        doc_id: str,
        content: str,
        owner_id: str,
        session_id: str | None,
    ) -> Outcome:
        if not self._settings.get().on_create:
            return Outcome.skipped("auto-embed on create disabled")
        if not (content or "").strip():
            return Outcome.skipped("empty content")

        await self._client.embed_prompt(doc_id, content, owner_id, session_id)
        return Outcome.succeeded("embedded")

    async def _on_update(
        self,
        doc_id: str,
        new_content: str | None,
        owner_id: str,
        session_id: str | None,
    ) -> Outcome:
        config = self._settings.get()
        if not config.on_update:
            return Outcome.skipped("auto-embed on update disabled")

        if new_content is not None:
            if not new_content.strip():
                return Outcome.skipped("empty content")
            await self._client.refresh_embedding(doc_id, new_content, owner_id, session_id)
            return Outcome.succeeded("content changed, refreshed")

        if config.only_if_content_changed:
            return Outcome.skipped("content unchanged")

        if await self._client.has_embedding(doc_id):
            return Outcome.skipped("embedding already present")

        doc = await self._store.get_document(doc_id, owner_id)
        if doc is None or not doc.content.strip():
            return Outcome.skipped("no stored content to embed")

        await self._client.embed_prompt(doc_id, doc.content, owner_id, session_id)
        return Outcome.succeeded("missing embedding backfilled")

    @staticmethod
    async def _guard(decision) -> Outcome:
        try:
            return await decision
        except Exception as e:
            return Outcome.failed(e)


def _log_outcome(operation: str, doc_id: str, outcome: Outcome) -> None:
    if outcome.status is OutcomeStatus.FAILED:
        logger.error(f"Auto-embed on {operation} failed for {doc_id}: {outcome.reason}")
    elif outcome.status is OutcomeStatus.SKIPPED:
        logger.debug(f"Auto-embed on {operation} skipped for {doc_id}: {outcome.reason}")
    else:
        logger.info(f"Auto-embed on {operation} for {doc_id}: {outcome.reason}")
