"""Data models for tokens, accounts, operations, pairs, and rate snapshots."""

from datetime import datetime
from decimal import Decimal, localcontext
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_serializer

_RATE_PRECISION = 120


def format_rate(rate: Decimal) -> str:
    """
    Render a rate in plain notation without trailing zeros.

    Parameters
    ----------
    rate : Decimal
        Exchange rate

    Returns
    -------
    str
        Canonical string, e.g. '200000000' or '0.0002'; any zero is '0'

    """
    with localcontext() as ctx:
        ctx.prec = _RATE_PRECISION
        canonical = rate.normalize()
    if canonical.is_zero():
        return "0"
    return f"{canonical:f}"


class OperationType(StrEnum):
    """Kind of balance-affecting event."""

    IN = "IN"
    OUT = "OUT"
    FEES = "FEES"
    NONE = "NONE"
    APPROVE = "APPROVE"
    SUPPLY = "SUPPLY"
    REDEEM = "REDEEM"


class _BaseToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    ticker: str
    magnitude: int
    contract_address: str = ""
    parent_currency: str = "ethereum"
    name: str | None = None
    delisted: bool = False


class PlainToken(_BaseToken):
    """
    Token without any backing asset.

    Attributes
    ----------
    id : str
        Registry identifier (e.g., 'ethereum/erc20/dai')
    ticker : str
        Token ticker (e.g., 'DAI')
    magnitude : int
        Number of decimal places of the smallest unit
    contract_address : str
        Token contract address
    parent_currency : str
        Base currency the token lives on (e.g., 'ethereum')
    name : str, optional
        Full token name
    delisted : bool
        Whether the token is hidden from default listings

    """

    kind: Literal["plain"] = "plain"


class DerivativeToken(_BaseToken):
    """
    Interest-bearing token redeemable for an underlying token.

    Attributes
    ----------
    underlying_id : str
        Registry identifier of the token this one is a claim on

    """

    kind: Literal["derivative"] = "derivative"
    underlying_id: str


Token = Annotated[PlainToken | DerivativeToken, Field(discriminator="kind")]


class Operation(BaseModel):
    """
    One historical balance-affecting event.

    Attributes
    ----------
    id : str
        Operation identifier, used as the merge key
    hash : str
        Transaction hash
    date : datetime
        Time the operation was confirmed
    type : OperationType
        Kind of event
    value : int
        Amount in smallest units of the owning account's token
    account_id : str
        Owning account id
    extra : dict[str, str]
        Free-form metadata

    """

    model_config = ConfigDict(frozen=True)

    id: str
    hash: str
    date: datetime
    type: OperationType
    value: int
    account_id: str
    extra: dict[str, str] = Field(default_factory=dict)


class Account(BaseModel):
    """
    A single token holding of a wallet.

    Attributes
    ----------
    id : str
        Account identifier
    parent_id : str
        Identifier of the base-currency account owning this holding
    token : Token
        Held token
    balance : int
        Balance in smallest units
    spendable_balance : int
        Part of the balance that can be sent right now
    operations : list[Operation]
        Confirmed operations, most recent first
    pending_operations : list[Operation]
        Unconfirmed operations
    creation_date : datetime
        Date of the first operation, or of account creation

    """

    model_config = ConfigDict(frozen=True)

    id: str
    parent_id: str = ""
    token: Token
    balance: int = 0
    spendable_balance: int = 0
    operations: list[Operation] = Field(default_factory=list)
    pending_operations: list[Operation] = Field(default_factory=list)
    creation_date: datetime


class CompoundPair(BaseModel):
    """
    An underlying token and its derivative, with the accounts found for each.

    Attributes
    ----------
    underlying_token : PlainToken | DerivativeToken
        Token the derivative redeems to
    derivative_token : DerivativeToken
        Interest-bearing token
    underlying_account : Account | None
        Account holding the underlying token, if any
    derivative_account : Account | None
        Account holding the derivative token, if any

    """

    model_config = ConfigDict(frozen=True)

    underlying_token: Token
    derivative_token: DerivativeToken
    underlying_account: Account | None = None
    derivative_account: Account | None = None


PairMapping = dict[str, CompoundPair]


class RateEntry(BaseModel):
    """
    Current rate of a derivative token.

    Attributes
    ----------
    rate : Decimal
        Normalized exchange rate (derivative smallest unit -> underlying smallest unit)
    supply_apy : str
        Display string such as '2.51%', empty when unknown

    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate: Decimal
    supply_apy: str = Field(default="", alias="supplyAPY")

    @field_serializer("rate", when_used="json")
    def _serialize_rate(self, rate: Decimal) -> str:
        return format_rate(rate)


class RateSnapshot(RootModel[dict[str, RateEntry]]):
    """Current rates keyed by derivative token id."""

    root: dict[str, RateEntry] = Field(default_factory=dict)

    def get(self, token_id: str) -> RateEntry | None:
        """Return the entry for a derivative token, or None."""
        return self.root.get(token_id)

    def dump(self) -> dict[str, dict[str, str]]:
        """Serialize to plain JSON-compatible data."""
        return self.model_dump(mode="json", by_alias=True)


class RateQuote(BaseModel):
    """
    Raw rate answer from a rate oracle.

    Attributes
    ----------
    rate : Decimal
        Exchange rate in display units, not yet normalized by token magnitudes
    supply_apy : str
        Display string, empty for historical quotes

    """

    model_config = ConfigDict(frozen=True)

    rate: Decimal
    supply_apy: str = ""
