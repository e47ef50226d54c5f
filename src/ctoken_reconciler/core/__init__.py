"""Core functionality including models, registry, pair inference, and the account merger."""

from ctoken_reconciler.core.models import (
    Account,
    CompoundPair,
    DerivativeToken,
    Operation,
    OperationType,
    PairMapping,
    PlainToken,
    RateEntry,
    RateQuote,
    RateSnapshot,
    Token,
    format_rate,
)
from ctoken_reconciler.core.registry import (
    CurrencyRegistry,
    TokenRegistry,
    UnknownTokenError,
    UnknownUnderlyingTokenError,
)
from ctoken_reconciler.core.batching import gather_batched
from ctoken_reconciler.core.operations import convert_amount, merge_operations, remap_operations
from ctoken_reconciler.core.pairs import infer_pairs
from ctoken_reconciler.core.placeholders import PLACEHOLDER_PREFIX, inject_placeholders, is_placeholder
from ctoken_reconciler.core.merger import AccountMerger

__all__ = [
    "PLACEHOLDER_PREFIX",
    "Account",
    "AccountMerger",
    "CompoundPair",
    "CurrencyRegistry",
    "DerivativeToken",
    "Operation",
    "OperationType",
    "PairMapping",
    "PlainToken",
    "RateEntry",
    "RateQuote",
    "RateSnapshot",
    "Token",
    "TokenRegistry",
    "UnknownTokenError",
    "UnknownUnderlyingTokenError",
    "convert_amount",
    "format_rate",
    "gather_batched",
    "infer_pairs",
    "inject_placeholders",
    "is_placeholder",
    "merge_operations",
    "remap_operations",
]
