"""Packaged token data and loaders."""

from ctoken_reconciler.data.loader import (
    DEFAULT_TOKENS_PATH,
    load_token_data,
    load_tokens,
    parse_token,
)

__all__ = [
    "DEFAULT_TOKENS_PATH",
    "load_token_data",
    "load_tokens",
    "parse_token",
]
