"""Compound v2 API client providing cToken exchange rates."""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import httpx

from ctoken_reconciler.config import DEFAULT_COMPOUND_API_BASE, Settings
from ctoken_reconciler.core.models import DerivativeToken, RateQuote
from ctoken_reconciler.rates.cache import RateCache
from ctoken_reconciler.rates.oracle import MalformedOracleResponseError, OracleUnavailableError
from ctoken_reconciler.rates.retry import RetryConfig, with_retry

logger = logging.getLogger(__name__)

_APY_PLACES = Decimal("0.01")


class CompoundRateOracle:
    """
    Fetches cToken exchange rates from the Compound v2 API.

    The ``/ctoken`` endpoint returns, for a block timestamp (0 meaning the
    latest block), the exchange rate of each requested cToken expressed in
    whole underlying tokens per whole cToken.

    Parameters
    ----------
    base_url : str
        Compound API base URL
    timeout : float
        Request timeout in seconds
    retry_config : RetryConfig | None
        Backoff applied when the API is unreachable
    cache : RateCache | None
        Cache for historical quotes
    client : httpx.AsyncClient | None
        HTTP client to use. A new one is created if None.

    """

    def __init__(
        self,
        base_url: str = DEFAULT_COMPOUND_API_BASE,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        cache: RateCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.retry_config = retry_config or RetryConfig(max_retries=2, base_delay=0.5, max_delay=5.0)
        self.cache = cache if cache is not None else RateCache()
        self._fetch_ctokens = with_retry(self.retry_config, retry_on=(OracleUnavailableError,))(
            self._fetch_ctokens_once
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "CompoundRateOracle":
        """
        Build a client from settings.

        Parameters
        ----------
        settings : Settings
            Settings providing the API base URL and timeout
        **kwargs : Any
            Extra constructor arguments

        Returns
        -------
        CompoundRateOracle
            Configured client

        """
        return cls(base_url=settings.api_base, timeout=settings.api_timeout, **kwargs)

    async def fetch_current_rate(self, token: DerivativeToken) -> RateQuote:
        """
        Fetch the latest exchange rate and supply APY of a cToken.

        Parameters
        ----------
        token : DerivativeToken
            cToken

        Returns
        -------
        RateQuote
            Raw rate and APY; a zero rate with empty APY when the API does not
            know the token

        Raises
        ------
        OracleUnavailableError
            If the API cannot be reached
        MalformedOracleResponseError
            If the answer lacks the expected fields

        """
        entry = await self._fetch_entry(token, block_timestamp=0)
        if entry is None:
            return RateQuote(rate=Decimal(0), supply_apy="")

        return RateQuote(rate=self._parse_rate(entry), supply_apy=self._parse_supply_apy(entry))

    async def fetch_historical_rate(self, token: DerivativeToken, date: datetime) -> RateQuote:
        """
        Fetch the exchange rate of a cToken at a point in time.

        Parameters
        ----------
        token : DerivativeToken
            cToken
        date : datetime
            Point in time

        Returns
        -------
        RateQuote
            Raw rate; zero when the API does not know the token

        Raises
        ------
        OracleUnavailableError
            If the API cannot be reached
        MalformedOracleResponseError
            If the answer lacks the expected fields

        """
        block_timestamp = round(date.timestamp())
        cache_key = (token.contract_address.lower(), block_timestamp)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        entry = await self._fetch_entry(token, block_timestamp=block_timestamp)
        quote = RateQuote(rate=Decimal(0)) if entry is None else RateQuote(rate=self._parse_rate(entry))
        self.cache.set(cache_key, quote)
        return quote

    async def _fetch_entry(self, token: DerivativeToken, block_timestamp: int) -> dict[str, Any] | None:
        entries = await self._fetch_ctokens(
            {"block_timestamp": block_timestamp, "addresses": token.contract_address},
        )
        address = token.contract_address.lower()
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if str(entry.get("token_address", "")).lower() == address:
                return entry

        logger.debug("No cToken entry for %s at block timestamp %d", token.id, block_timestamp)
        return None

    async def _fetch_ctokens_once(self, params: dict[str, Any]) -> list[Any]:
        """
        Query the ``/ctoken`` endpoint once.

        Parameters
        ----------
        params : dict[str, Any]
            Query string parameters

        Returns
        -------
        list[Any]
            Raw ``cToken`` entries

        Raises
        ------
        OracleUnavailableError
            If the request fails or returns an error status
        MalformedOracleResponseError
            If the body is not JSON or lacks a ``cToken`` list

        """
        try:
            response = await self.client.get(f"{self.base_url}/ctoken", params=params)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise OracleUnavailableError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code}: {e}"
            raise OracleUnavailableError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise OracleUnavailableError(msg) from e

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Invalid JSON from Compound API: {e}"
            raise MalformedOracleResponseError(msg) from e

        entries = data.get("cToken") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            msg = "Compound API response has no cToken list"
            raise MalformedOracleResponseError(msg)

        return entries

    @staticmethod
    def _parse_rate(entry: dict[str, Any]) -> Decimal:
        try:
            return Decimal(str(entry["exchange_rate"]["value"]))
        except (KeyError, TypeError, InvalidOperation) as e:
            msg = f"Missing or invalid exchange_rate for {entry.get('token_address')}"
            raise MalformedOracleResponseError(msg) from e

    @staticmethod
    def _parse_supply_apy(entry: dict[str, Any]) -> str:
        try:
            apy = Decimal(str(entry["comp_supply_apy"]["value"]))
        except (KeyError, TypeError, InvalidOperation) as e:
            msg = f"Missing or invalid comp_supply_apy for {entry.get('token_address')}"
            raise MalformedOracleResponseError(msg) from e

        rounded = apy.quantize(_APY_PLACES, rounding=ROUND_HALF_UP).normalize()
        return f"{rounded:f}%"

    async def aclose(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "CompoundRateOracle":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.aclose()
