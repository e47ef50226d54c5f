"""Token registry interface and the default in-memory implementation."""

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from ctoken_reconciler.core.models import DerivativeToken, PlainToken

AnyToken = PlainToken | DerivativeToken


class UnknownTokenError(KeyError):
    """Exception raised when a token id is not known to the registry."""


class UnknownUnderlyingTokenError(UnknownTokenError):
    """Exception raised when a derivative token points to an underlying token that does not exist."""


class CurrencyRegistry(Protocol):
    """
    Interface that token registries must implement.

    Methods
    -------
    list_tokens(include_delisted)
        All known tokens
    list_tokens_for(base_currency, include_delisted)
        Tokens living on a base currency
    get_token_by_id(token_id)
        Look up a single token

    """

    def list_tokens(self, *, include_delisted: bool = False) -> list[AnyToken]:
        """
        List all known tokens.

        Parameters
        ----------
        include_delisted : bool
            Also return delisted tokens

        Returns
        -------
        list[PlainToken | DerivativeToken]
            Tokens in registration order

        """
        ...

    def list_tokens_for(self, base_currency: str, *, include_delisted: bool = False) -> list[AnyToken]:
        """
        List tokens living on a base currency.

        Parameters
        ----------
        base_currency : str
            Base currency id (e.g., 'ethereum')
        include_delisted : bool
            Also return delisted tokens

        Returns
        -------
        list[PlainToken | DerivativeToken]
            Matching tokens in registration order

        """
        ...

    def get_token_by_id(self, token_id: str) -> AnyToken:
        """
        Look up a token.

        Parameters
        ----------
        token_id : str
            Token identifier

        Returns
        -------
        PlainToken | DerivativeToken
            The token

        Raises
        ------
        UnknownTokenError
            If no token has this id

        """
        ...


class TokenRegistry:
    """
    In-memory registry of tokens keyed by id.

    Every derivative token must reference an underlying token present in the
    same registry; this is checked once at construction.

    Parameters
    ----------
    tokens : Iterable[PlainToken | DerivativeToken]
        Tokens to register

    Raises
    ------
    ValueError
        If two tokens share an id
    UnknownUnderlyingTokenError
        If a derivative token references an unknown underlying token

    """

    def __init__(self, tokens: Iterable[AnyToken]) -> None:
        self._tokens: dict[str, AnyToken] = {}
        for token in tokens:
            if token.id in self._tokens:
                msg = f"Duplicate token id: {token.id}"
                raise ValueError(msg)
            self._tokens[token.id] = token

        for token in self._tokens.values():
            if isinstance(token, DerivativeToken):
                self.get_underlying(token)

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "TokenRegistry":
        """
        Build a registry from a YAML token list.

        Parameters
        ----------
        path : Path | None
            YAML file. Uses the packaged token list if None.

        Returns
        -------
        TokenRegistry
            Loaded registry

        """
        from ctoken_reconciler.data import load_tokens

        return cls(load_tokens(path))

    def list_tokens(self, *, include_delisted: bool = False) -> list[AnyToken]:
        return [token for token in self._tokens.values() if include_delisted or not token.delisted]

    def list_tokens_for(self, base_currency: str, *, include_delisted: bool = False) -> list[AnyToken]:
        return [
            token
            for token in self.list_tokens(include_delisted=include_delisted)
            if token.parent_currency == base_currency
        ]

    def get_token_by_id(self, token_id: str) -> AnyToken:
        token = self._tokens.get(token_id)
        if token is None:
            msg = f"Unknown token: {token_id}"
            raise UnknownTokenError(msg)
        return token

    def get_underlying(self, token: DerivativeToken) -> AnyToken:
        """
        Resolve the underlying token of a derivative token.

        Parameters
        ----------
        token : DerivativeToken
            Derivative token

        Returns
        -------
        PlainToken | DerivativeToken
            Underlying token

        Raises
        ------
        UnknownUnderlyingTokenError
            If the underlying id is not registered

        """
        return resolve_underlying(self, token)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


def resolve_underlying(registry: CurrencyRegistry, token: DerivativeToken) -> AnyToken:
    """
    Resolve a derivative's underlying token through any registry.

    Parameters
    ----------
    registry : CurrencyRegistry
        Token registry
    token : DerivativeToken
        Derivative token

    Returns
    -------
    PlainToken | DerivativeToken
        Underlying token

    Raises
    ------
    UnknownUnderlyingTokenError
        If the registry cannot resolve the declared underlying id

    """
    try:
        return registry.get_token_by_id(token.underlying_id)
    except UnknownTokenError as e:
        msg = f"{token.id} declares underlying {token.underlying_id}, which is not registered"
        raise UnknownUnderlyingTokenError(msg) from e
