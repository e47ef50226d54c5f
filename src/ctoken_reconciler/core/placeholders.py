"""Zero-balance stub accounts that let the next sync discover derivative balances."""

from collections.abc import Sequence
from datetime import UTC, datetime

from ctoken_reconciler.core.models import Account, CompoundPair
from ctoken_reconciler.core.pairs import infer_pairs
from ctoken_reconciler.core.registry import CurrencyRegistry

PLACEHOLDER_PREFIX = "empty_"


def placeholder_id(token_id: str) -> str:
    """Deterministic id of the stub account for a derivative token."""
    return f"{PLACEHOLDER_PREFIX}{token_id}"


def is_placeholder(account: Account) -> bool:
    """
    Check whether an account is a stub that never received any data.

    Parameters
    ----------
    account : Account
        Account to check

    Returns
    -------
    bool
        True for a placeholder id with zero balance and no operations

    """
    return (
        account.id == placeholder_id(account.token.id)
        and account.balance == 0
        and not account.operations
        and not account.pending_operations
    )


def _make_placeholder(pair: CompoundPair) -> Account:
    parent_id = pair.underlying_account.parent_id if pair.underlying_account else ""
    return Account(
        id=placeholder_id(pair.derivative_token.id),
        parent_id=parent_id,
        token=pair.derivative_token,
        balance=0,
        spendable_balance=0,
        operations=[],
        pending_operations=[],
        creation_date=datetime.now(UTC),
    )


def inject_placeholders(registry: CurrencyRegistry, base_currency: str, accounts: list[Account]) -> list[Account]:
    """
    Add a stub derivative account for every underlying account lacking one.

    Parameters
    ----------
    registry : CurrencyRegistry
        Token registry
    base_currency : str
        Base currency of the accounts
    accounts : list[Account]
        Token accounts before a sync round

    Returns
    -------
    list[Account]
        The same list object when nothing was added, otherwise a new list
        with the stubs appended

    """
    pairs = infer_pairs(registry, base_currency, accounts)
    placeholders: Sequence[Account] = [
        _make_placeholder(pair)
        for pair in pairs.values()
        if pair.underlying_account is not None and pair.derivative_account is None
    ]

    if not placeholders:
        return accounts

    return [*accounts, *placeholders]
