"""
CLI module - the `librarian` command.

Provides subcommands for:
- Semantic search, similar prompts and suggestions
- Backfilling embeddings
- Search history and analytics
"""

from prompt_librarian.cli.commands import (
    COMMANDS,
    build_parser,
    main,
)

__all__ = [
    "main",
    "build_parser",
    "COMMANDS",
]
