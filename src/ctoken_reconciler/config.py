"""Runtime settings read from the environment."""

import os
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_COMPOUND_API_BASE = "https://api.compound.finance/api/v2"

_FALSY = {"0", "false", "no", "off", ""}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in _FALSY


class Settings(BaseModel):
    """
    Reconciliation settings.

    Attributes
    ----------
    compound_enabled : bool
        Master switch; when off, accounts pass through untouched and preload is empty
    base_currencies : list[str]
        Base currencies on which derivative accounts are reconciled
    api_base : str
        Compound API base URL
    api_timeout : float
        Compound API request timeout in seconds
    account_concurrency : int
        Accounts digested at once
    rate_concurrency : int
        Historical rate lookups in flight at once per account

    """

    compound_enabled: bool = True
    base_currencies: list[str] = Field(default_factory=lambda: ["ethereum"])
    api_base: str = DEFAULT_COMPOUND_API_BASE
    api_timeout: float = Field(default=30.0, gt=0)
    account_concurrency: int = Field(default=2, ge=1)
    rate_concurrency: int = Field(default=3, ge=1)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Reads ``COMPOUND``, ``COMPOUND_API_BASE``, ``COMPOUND_API_TIMEOUT`` and
        ``CTOKEN_BASE_CURRENCIES`` (comma separated).

        Returns
        -------
        Settings
            Settings with environment overrides applied

        Raises
        ------
        pydantic.ValidationError
            If a variable holds a value the matching field rejects

        """
        values: dict[str, Any] = {"compound_enabled": _env_flag("COMPOUND", default=True)}

        api_base = os.getenv("COMPOUND_API_BASE")
        if api_base:
            values["api_base"] = api_base.rstrip("/")

        timeout = os.getenv("COMPOUND_API_TIMEOUT")
        if timeout:
            values["api_timeout"] = timeout

        currencies = os.getenv("CTOKEN_BASE_CURRENCIES")
        if currencies:
            values["base_currencies"] = [c.strip() for c in currencies.split(",") if c.strip()]

        return cls(**values)

    def is_active_for(self, base_currency: str) -> bool:
        """Whether reconciliation applies to accounts of a base currency."""
        return self.compound_enabled and base_currency in self.base_currencies
