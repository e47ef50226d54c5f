"""Tests for token list loading."""

import pytest
from pydantic import ValidationError

from ctoken_reconciler.core.models import DerivativeToken, PlainToken
from ctoken_reconciler.data import DEFAULT_TOKENS_PATH, load_token_data, load_tokens, parse_token


def test_packaged_token_file_exists():
    """Test that the packaged token list ships with the package."""
    assert DEFAULT_TOKENS_PATH.exists()
    assert "tokens" in load_token_data()


def test_parse_plain_token():
    """Test that an entry without underlying is a plain token."""
    token = parse_token({"id": "ethereum/erc20/dai", "ticker": "DAI", "magnitude": 18})

    assert isinstance(token, PlainToken)
    assert token.parent_currency == "ethereum"


def test_parse_derivative_token():
    """Test that an entry with underlying is a derivative token."""
    token = parse_token(
        {"id": "ethereum/erc20/cdai", "ticker": "cDAI", "magnitude": 8, "underlying": "ethereum/erc20/dai"}
    )

    assert isinstance(token, DerivativeToken)
    assert token.underlying_id == "ethereum/erc20/dai"


def test_parse_rejects_missing_fields():
    """Test that incomplete entries fail validation."""
    with pytest.raises(ValidationError):
        parse_token({"id": "ethereum/erc20/x"})


def test_load_tokens_from_custom_file(tmp_path):
    """Test loading a token list from an arbitrary path."""
    path = tmp_path / "tokens.yaml"
    path.write_text(
        "tokens:\n"
        "  - id: a\n    ticker: A\n    magnitude: 18\n"
        "  - id: ca\n    ticker: cA\n    magnitude: 8\n    underlying: a\n",
        encoding="utf-8",
    )

    tokens = load_tokens(path)

    assert [t.id for t in tokens] == ["a", "ca"]
    assert isinstance(tokens[1], DerivativeToken)


def test_load_tokens_empty_file(tmp_path):
    """Test that an empty file yields no tokens."""
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_tokens(path) == []


def test_packaged_contract_addresses():
    """Test that every packaged token has a contract address."""
    for token in load_tokens():
        assert token.contract_address.startswith("0x")
        assert len(token.contract_address) == 42
