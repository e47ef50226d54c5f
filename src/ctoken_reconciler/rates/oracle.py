"""Rate oracle interface and its error taxonomy."""

from datetime import datetime
from typing import Protocol

from ctoken_reconciler.core.models import DerivativeToken, RateQuote


class RateOracleError(Exception):
    """Base exception for rate oracle failures."""


class OracleUnavailableError(RateOracleError):
    """Exception raised when the rate oracle cannot be reached or answers with an error status."""


class MalformedOracleResponseError(RateOracleError):
    """Exception raised when the rate oracle answers without the expected fields."""


class RateOracle(Protocol):
    """
    Interface for sources of derivative exchange rates.

    Quotes are raw: the rate is expressed in display units (one whole
    derivative token in whole underlying tokens) and has not been adjusted for
    token magnitudes.

    Methods
    -------
    fetch_current_rate(token)
        Latest rate and supply APY
    fetch_historical_rate(token, date)
        Rate at a point in time

    """

    async def fetch_current_rate(self, token: DerivativeToken) -> RateQuote:
        """
        Fetch the latest rate of a derivative token.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token

        Returns
        -------
        RateQuote
            Raw rate and supply APY

        Raises
        ------
        RateOracleError
            If no quote could be obtained

        """
        ...

    async def fetch_historical_rate(self, token: DerivativeToken, date: datetime) -> RateQuote:
        """
        Fetch the rate of a derivative token at a point in time.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token
        date : datetime
            Point in time

        Returns
        -------
        RateQuote
            Raw rate

        Raises
        ------
        RateOracleError
            If no quote could be obtained

        """
        ...
