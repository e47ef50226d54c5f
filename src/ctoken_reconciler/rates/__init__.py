"""Exchange rate sources and the snapshot-backed rate store."""

from ctoken_reconciler.rates.cache import CacheEntry, RateCache
from ctoken_reconciler.rates.compound import CompoundRateOracle
from ctoken_reconciler.rates.oracle import (
    MalformedOracleResponseError,
    OracleUnavailableError,
    RateOracle,
    RateOracleError,
)
from ctoken_reconciler.rates.retry import RetryConfig, with_retry
from ctoken_reconciler.rates.store import RateStore, normalize_rate

__all__ = [
    "CacheEntry",
    "CompoundRateOracle",
    "MalformedOracleResponseError",
    "OracleUnavailableError",
    "RateCache",
    "RateOracle",
    "RateOracleError",
    "RateStore",
    "RetryConfig",
    "normalize_rate",
    "with_retry",
]
