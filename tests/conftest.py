"""Pytest configuration and shared fixtures for ctoken-reconciler tests."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ctoken_reconciler.config import Settings
from ctoken_reconciler.core.models import Account, DerivativeToken, Operation, OperationType, PlainToken, RateQuote
from ctoken_reconciler.core.registry import TokenRegistry
from ctoken_reconciler.rates.oracle import RateOracleError
from ctoken_reconciler.rates.store import RateStore

DAI = PlainToken(
    id="ethereum/erc20/dai",
    ticker="DAI",
    magnitude=18,
    contract_address="0x6B175474E89094C44Da98b954EedeAC495271d0F",
)
CDAI = DerivativeToken(
    id="ethereum/erc20/cdai",
    ticker="cDAI",
    magnitude=8,
    contract_address="0x5d3a536E4D6DbD6114cc1Ead35777bAB948E3643",
    underlying_id=DAI.id,
)
USDC = PlainToken(
    id="ethereum/erc20/usdc",
    ticker="USDC",
    magnitude=6,
    contract_address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
)
CUSDC = DerivativeToken(
    id="ethereum/erc20/cusdc",
    ticker="cUSDC",
    magnitude=8,
    contract_address="0x39AA39c021dfbaE8faC545936693aC917d5E7563",
    underlying_id=USDC.id,
)
LINK = PlainToken(
    id="ethereum/erc20/link",
    ticker="LINK",
    magnitude=18,
    contract_address="0x514910771AF9Ca656af840dff83E8264EcF986CA",
)

T0 = datetime(2020, 6, 1, 12, 0, tzinfo=UTC)


class FakeOracle:
    """
    In-memory rate oracle.

    Rates are raw display-unit values. A missing entry yields a zero quote;
    an exception instance as entry is raised instead.

    """

    def __init__(
        self,
        current: dict[str, RateQuote | Exception] | None = None,
        historical: dict[tuple[str, datetime], Decimal | Exception] | None = None,
        default_historical: dict[str, Decimal] | None = None,
    ) -> None:
        self.current = current or {}
        self.historical = historical or {}
        self.default_historical = default_historical or {}
        self.current_calls: list[str] = []
        self.historical_calls: list[tuple[str, datetime]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)

    async def fetch_current_rate(self, token: DerivativeToken) -> RateQuote:
        self.current_calls.append(token.id)
        await self._enter()
        try:
            value = self.current.get(token.id, RateQuote(rate=Decimal(0)))
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    async def fetch_historical_rate(self, token: DerivativeToken, date: datetime) -> RateQuote:
        self.historical_calls.append((token.id, date))
        await self._enter()
        try:
            value = self.historical.get((token.id, date), self.default_historical.get(token.id, Decimal(0)))
            if isinstance(value, Exception):
                raise value
            return RateQuote(rate=value)
        finally:
            self.in_flight -= 1


class FailingOracle(FakeOracle):
    """Oracle whose every call fails."""

    def __init__(self, error: RateOracleError) -> None:
        super().__init__()
        self.error = error

    async def fetch_current_rate(self, token: DerivativeToken) -> RateQuote:
        self.current_calls.append(token.id)
        raise self.error

    async def fetch_historical_rate(self, token: DerivativeToken, date: datetime) -> RateQuote:
        self.historical_calls.append((token.id, date))
        raise self.error


@pytest.fixture
def registry() -> TokenRegistry:
    """Registry with two Compound markets and one unrelated token."""
    return TokenRegistry([DAI, CDAI, USDC, CUSDC, LINK])


@pytest.fixture
def settings() -> Settings:
    """Default settings."""
    return Settings()


@pytest.fixture
def make_rate_store(registry: TokenRegistry, settings: Settings) -> Callable[..., RateStore]:
    """Factory for rate stores bound to the test registry."""

    def factory(oracle: FakeOracle | None = None, snapshot: dict | None = None) -> RateStore:
        store = RateStore(registry, oracle=oracle, settings=settings)
        if snapshot is not None:
            store.hydrate(snapshot)
        return store

    return factory


@pytest.fixture
def make_operation() -> Callable[..., Operation]:
    """Factory for operations."""

    def factory(
        account_id: str,
        tx_hash: str,
        op_type: OperationType,
        value: int,
        date: datetime = T0,
    ) -> Operation:
        return Operation(
            id=f"{account_id}-{tx_hash}-{op_type}",
            hash=tx_hash,
            date=date,
            type=op_type,
            value=value,
            account_id=account_id,
        )

    return factory


@pytest.fixture
def make_account() -> Callable[..., Account]:
    """Factory for token accounts."""

    def factory(
        token: PlainToken | DerivativeToken,
        balance: int = 0,
        operations: list[Operation] | None = None,
        account_id: str | None = None,
    ) -> Account:
        return Account(
            id=account_id or f"js:0xabc:{token.id}",
            parent_id="js:0xabc",
            token=token,
            balance=balance,
            spendable_balance=balance,
            operations=operations or [],
            creation_date=T0,
        )

    return factory
