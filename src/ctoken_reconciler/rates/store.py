"""Snapshot-backed access to normalized derivative exchange rates."""

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal, localcontext
from typing import Any

from ctoken_reconciler.config import Settings
from ctoken_reconciler.core.batching import gather_batched
from ctoken_reconciler.core.models import DerivativeToken, RateEntry, RateSnapshot
from ctoken_reconciler.core.registry import CurrencyRegistry, resolve_underlying
from ctoken_reconciler.rates.oracle import RateOracle, RateOracleError

logger = logging.getLogger(__name__)

_RATE_PRECISION = 120


def normalize_rate(raw_rate: Decimal, shift: int) -> Decimal:
    """
    Fold the magnitude difference between two tokens into a display-unit rate.

    Parameters
    ----------
    raw_rate : Decimal
        Whole underlying tokens per whole derivative token
    shift : int
        Underlying magnitude minus derivative magnitude

    Returns
    -------
    Decimal
        Underlying smallest units per derivative smallest unit

    """
    with localcontext() as ctx:
        ctx.prec = _RATE_PRECISION
        return raw_rate * Decimal(10) ** shift


class RateStore:
    """
    Normalized exchange rates for derivative tokens.

    Current rates are served from an in-memory snapshot that is only ever
    replaced as a whole, by ``preload`` or ``hydrate``. Historical rates are
    fetched from the oracle on demand. Every rate returned is normalized so
    that ``derivative_amount * rate`` is directly an underlying amount in
    smallest units. Oracle failures degrade to a zero rate.

    Parameters
    ----------
    registry : CurrencyRegistry
        Token registry used to list derivative tokens and resolve magnitudes
    oracle : RateOracle | None
        Rate source. Without one, only hydrated snapshots are available and
        historical rates are zero.
    settings : Settings | None
        Settings. Uses defaults if None.
    snapshot : RateSnapshot | None
        Initial snapshot. Empty if None.

    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        oracle: RateOracle | None = None,
        settings: Settings | None = None,
        snapshot: RateSnapshot | None = None,
    ) -> None:
        self.registry = registry
        self.oracle = oracle
        self.settings = settings or Settings()
        self._snapshot = snapshot if snapshot is not None else RateSnapshot()

    @property
    def snapshot(self) -> RateSnapshot:
        """Snapshot currently served."""
        return self._snapshot

    def current_rate(self, token: DerivativeToken) -> Decimal:
        """
        Latest normalized rate of a derivative token.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token

        Returns
        -------
        Decimal
            Rate from the snapshot, or 0 if the token is not in it

        """
        entry = self._snapshot.get(token.id)
        return entry.rate if entry else Decimal(0)

    def current_supply_apy(self, token: DerivativeToken) -> str:
        """
        Latest supply APY display string of a derivative token.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token

        Returns
        -------
        str
            APY from the snapshot, or an empty string if the token is not in it

        """
        entry = self._snapshot.get(token.id)
        return entry.supply_apy if entry else ""

    def hydrate(self, snapshot: RateSnapshot | dict[str, Any]) -> None:
        """
        Replace the snapshot with an externally supplied one.

        Parameters
        ----------
        snapshot : RateSnapshot | dict[str, Any]
            Snapshot, or the serialized form returned by ``preload``

        """
        self._snapshot = RateSnapshot.model_validate(snapshot)
        logger.debug("Hydrated rate snapshot with %d tokens", len(self._snapshot.root))

    async def preload(self) -> dict[str, dict[str, str]]:
        """
        Recompute current rates of every derivative token and replace the snapshot.

        Returns
        -------
        dict[str, dict[str, str]]
            Serialized snapshot, suitable for ``hydrate``

        Raises
        ------
        UnknownUnderlyingTokenError
            If a derivative token's underlying cannot be resolved

        """
        if not self.settings.compound_enabled:
            self._snapshot = RateSnapshot()
            return {}

        tokens = [
            token
            for token in self.registry.list_tokens(include_delisted=True)
            if isinstance(token, DerivativeToken)
        ]
        entries = await gather_batched(self.settings.rate_concurrency, tokens, self._fetch_current_entry)

        self._snapshot = RateSnapshot({token.id: entry for token, entry in zip(tokens, entries, strict=True)})
        logger.info("Preloaded rates for %d derivative tokens", len(tokens))
        return self._snapshot.dump()

    async def historical_rates(self, token: DerivativeToken, dates: Sequence[datetime]) -> list[Decimal]:
        """
        Normalized rates of a derivative token at several points in time.

        Each distinct date is looked up once.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token
        dates : Sequence[datetime]
            Points in time

        Returns
        -------
        list[Decimal]
            One rate per input date, in input order

        Raises
        ------
        UnknownUnderlyingTokenError
            If the token's underlying cannot be resolved

        """
        scale = self._magnitude_shift(token)
        distinct = list(dict.fromkeys(dates))

        async def fetch(date: datetime) -> Decimal:
            return await self._fetch_historical_rate(token, date, scale)

        rates = await gather_batched(self.settings.rate_concurrency, distinct, fetch)
        by_date = dict(zip(distinct, rates, strict=True))
        return [by_date[date] for date in dates]

    def _magnitude_shift(self, token: DerivativeToken) -> int:
        underlying = resolve_underlying(self.registry, token)
        return underlying.magnitude - token.magnitude

    async def _fetch_current_entry(self, token: DerivativeToken) -> RateEntry:
        scale = self._magnitude_shift(token)
        if self.oracle is None:
            return RateEntry(rate=Decimal(0), supply_apy="")

        try:
            quote = await self.oracle.fetch_current_rate(token)
        except RateOracleError as e:
            logger.warning("Current rate unavailable for %s, using 0: %s", token.id, e)
            return RateEntry(rate=Decimal(0), supply_apy="")

        return RateEntry(rate=normalize_rate(quote.rate, scale), supply_apy=quote.supply_apy)

    async def _fetch_historical_rate(self, token: DerivativeToken, date: datetime, scale: int) -> Decimal:
        if self.oracle is None:
            return Decimal(0)

        try:
            quote = await self.oracle.fetch_historical_rate(token, date)
        except RateOracleError as e:
            logger.warning("Historical rate unavailable for %s at %s, using 0: %s", token.id, date.isoformat(), e)
            return Decimal(0)

        return normalize_rate(quote.rate, scale)
