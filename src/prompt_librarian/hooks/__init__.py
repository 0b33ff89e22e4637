"""Auto-embed hooks for document create/update paths."""

from prompt_librarian.hooks.auto_embed import (
    AutoEmbedConfig,
    AutoEmbedHooks,
    AutoEmbedSettings,
    configure_auto_embed,
    default_settings,
    get_auto_embed_config,
    reset_auto_embed_config,
)

__all__ = [
    "AutoEmbedConfig",
    "AutoEmbedSettings",
    "AutoEmbedHooks",
    "default_settings",
    "get_auto_embed_config",
    "configure_auto_embed",
    "reset_auto_embed_config",
]
