"""Account merger folding derivative accounts into their underlying accounts."""

import logging

from ctoken_reconciler.config import Settings
from ctoken_reconciler.core.batching import gather_batched
from ctoken_reconciler.core.models import Account, DerivativeToken, PairMapping
from ctoken_reconciler.core.operations import convert_amount, merge_operations, remap_operations
from ctoken_reconciler.core.pairs import infer_pairs
from ctoken_reconciler.core.placeholders import inject_placeholders, is_placeholder
from ctoken_reconciler.core.registry import CurrencyRegistry
from ctoken_reconciler.rates.store import RateStore

logger = logging.getLogger(__name__)


class AccountMerger:
    """
    Presents a derivative holding and its underlying holding as one account.

    Workflow:
    1. Before a sync round, ``prepare_accounts`` adds stub derivative
       accounts so their balances get fetched
    2. After the sync round, ``digest_accounts`` folds each derivative
       account into its underlying account:
       - balance grows by the derivative balance at the current rate
       - derivative operations become SUPPLY/REDEEM operations valued at the
         historical rate of their date
       - the derivative account disappears from the list

    Parameters
    ----------
    registry : CurrencyRegistry
        Token registry
    rate_store : RateStore
        Source of normalized current and historical rates
    settings : Settings | None
        Settings. Uses the rate store's settings if None.

    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        rate_store: RateStore,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.rate_store = rate_store
        self.settings = settings or rate_store.settings

    def prepare_accounts(self, base_currency: str, accounts: list[Account]) -> list[Account]:
        """
        Add stub derivative accounts ahead of a sync round.

        Parameters
        ----------
        base_currency : str
            Base currency of the accounts
        accounts : list[Account]
            Token accounts of one wallet

        Returns
        -------
        list[Account]
            The input list itself when nothing needs a stub, otherwise a new
            list with stubs appended

        """
        if not self.settings.is_active_for(base_currency):
            return accounts

        return inject_placeholders(self.registry, base_currency, accounts)

    async def digest_accounts(self, base_currency: str, accounts: list[Account]) -> list[Account]:
        """
        Fold derivative accounts into their underlying accounts after a sync round.

        Parameters
        ----------
        base_currency : str
            Base currency of the accounts
        accounts : list[Account]
            Token accounts of one wallet, as returned by the sync round

        Returns
        -------
        list[Account]
            Accounts in input order, with merged underlying accounts and
            without the derivative accounts they absorbed

        Raises
        ------
        UnknownUnderlyingTokenError
            If a derivative token's underlying cannot be resolved

        """
        if not self.settings.is_active_for(base_currency):
            return accounts

        pairs = infer_pairs(self.registry, base_currency, accounts)
        if not pairs:
            return accounts

        async def digest(account: Account) -> Account | None:
            return await self._digest_account(account, pairs)

        digested = await gather_batched(self.settings.account_concurrency, accounts, digest)
        return [account for account in digested if account is not None]

    async def _digest_account(self, account: Account, pairs: PairMapping) -> Account | None:
        """
        Decide what becomes of one account.

        Parameters
        ----------
        account : Account
            Account to digest
        pairs : PairMapping
            Pairs inferred from the full account list

        Returns
        -------
        Account | None
            Replacement account, or None to drop it

        """
        token = account.token

        if isinstance(token, DerivativeToken):
            pair = pairs.get(token.underlying_id)
            if pair is not None and pair.derivative_token.id == token.id and pair.underlying_account is not None:
                # absorbed by the underlying account
                return None
            if is_placeholder(account):
                logger.debug("Dropping unused placeholder %s", account.id)
                return None
            return account

        pair = pairs.get(token.id)
        if pair is None or pair.derivative_account is None:
            return account

        return await self._merge(account, pair.derivative_token, pair.derivative_account)

    async def _merge(
        self,
        account: Account,
        derivative_token: DerivativeToken,
        derivative_account: Account,
    ) -> Account:
        """
        Build the merged view of an underlying account and its derivative account.

        Parameters
        ----------
        account : Account
            Underlying account
        derivative_token : DerivativeToken
            Derivative token paired with the account's token
        derivative_account : Account
            Account holding the derivative token

        Returns
        -------
        Account
            Copy of the underlying account with converted balance and operations

        """
        latest_rate = self.rate_store.current_rate(derivative_token)
        balance = account.balance + convert_amount(derivative_account.balance, latest_rate)

        rates = await self.rate_store.historical_rates(
            derivative_token,
            [op.date for op in derivative_account.operations],
        )
        new_operations = remap_operations(account.id, derivative_account, rates)

        logger.debug(
            "Merged %s into %s: %d operations at rate %s",
            derivative_account.id,
            account.id,
            len(new_operations),
            latest_rate,
        )

        # derivative holdings are not counted as spendable
        return account.model_copy(
            update={
                "balance": balance,
                "spendable_balance": account.balance,
                "operations": merge_operations(account.operations, new_operations),
            }
        )
