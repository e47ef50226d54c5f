"""Fold Compound cToken accounts into their underlying token accounts."""

from ctoken_reconciler.config import Settings
from ctoken_reconciler.core import AccountMerger, TokenRegistry
from ctoken_reconciler.rates import CompoundRateOracle, RateStore

__version__ = "0.1.0"

__all__ = [
    "AccountMerger",
    "CompoundRateOracle",
    "RateStore",
    "Settings",
    "TokenRegistry",
]
