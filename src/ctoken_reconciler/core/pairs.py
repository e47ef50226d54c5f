"""Discovery of underlying/derivative account pairs."""

import logging
from collections.abc import Sequence

from ctoken_reconciler.core.models import Account, CompoundPair, DerivativeToken, PairMapping
from ctoken_reconciler.core.registry import CurrencyRegistry, resolve_underlying

logger = logging.getLogger(__name__)


def _find_account(accounts: Sequence[Account], token_id: str) -> Account | None:
    return next((account for account in accounts if account.token.id == token_id), None)


def infer_pairs(registry: CurrencyRegistry, base_currency: str, accounts: Sequence[Account]) -> PairMapping:
    """
    Find which accounts form an underlying/derivative pair.

    Parameters
    ----------
    registry : CurrencyRegistry
        Token registry
    base_currency : str
        Base currency whose derivative tokens are considered
    accounts : Sequence[Account]
        Token accounts of one wallet

    Returns
    -------
    PairMapping
        Pairs keyed by underlying token id. A pair is present only when at
        least one of its two accounts exists. When several derivatives share
        an underlying, the first one with an account is paired.

    Raises
    ------
    UnknownUnderlyingTokenError
        If a derivative token's underlying id cannot be resolved

    """
    pairs: PairMapping = {}

    for token in registry.list_tokens_for(base_currency, include_delisted=True):
        if not isinstance(token, DerivativeToken):
            continue

        underlying_account = _find_account(accounts, token.underlying_id)
        derivative_account = _find_account(accounts, token.id)
        if underlying_account is None and derivative_account is None:
            continue

        existing = pairs.get(token.underlying_id)
        if existing is not None and existing.derivative_account is not None:
            if derivative_account is not None:
                logger.warning(
                    "%s and %s share underlying %s; only %s is merged",
                    existing.derivative_token.id,
                    token.id,
                    token.underlying_id,
                    existing.derivative_token.id,
                )
            continue

        pairs[token.underlying_id] = CompoundPair(
            underlying_token=resolve_underlying(registry, token),
            derivative_token=token,
            underlying_account=underlying_account,
            derivative_account=derivative_account,
        )

    return pairs
