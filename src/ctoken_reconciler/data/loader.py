"""Token list loader."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter

from ctoken_reconciler.core.models import DerivativeToken, PlainToken, Token

_TOKEN_ADAPTER: TypeAdapter[PlainToken | DerivativeToken] = TypeAdapter(Token)

DEFAULT_TOKENS_PATH = Path(__file__).parent / "tokens.yaml"


def load_token_data(path: Path | None = None) -> dict[str, Any]:
    """
    Load the raw token list from YAML.

    Parameters
    ----------
    path : Path | None
        YAML file. Uses the packaged tokens.yaml if None.

    Returns
    -------
    dict[str, Any]
        Parsed YAML document

    """
    path = path or DEFAULT_TOKENS_PATH
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_token(entry: dict[str, Any]) -> PlainToken | DerivativeToken:
    """
    Build a token model from one YAML entry.

    An entry with an ``underlying`` key describes a derivative token; any
    other entry is a plain token.

    Parameters
    ----------
    entry : dict[str, Any]
        Raw token entry

    Returns
    -------
    PlainToken | DerivativeToken
        Validated token

    """
    data = dict(entry)
    underlying = data.pop("underlying", None)
    if underlying:
        data["kind"] = "derivative"
        data["underlying_id"] = underlying
    else:
        data["kind"] = "plain"
    return _TOKEN_ADAPTER.validate_python(data)


def load_tokens(path: Path | None = None) -> list[PlainToken | DerivativeToken]:
    """
    Load and validate every token of a token list.

    Parameters
    ----------
    path : Path | None
        YAML file. Uses the packaged tokens.yaml if None.

    Returns
    -------
    list[PlainToken | DerivativeToken]
        Tokens in file order

    """
    document = load_token_data(path)
    return [parse_token(entry) for entry in document.get("tokens", [])]
