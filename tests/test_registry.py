"""Tests for the token registry."""

import pytest

from conftest import CDAI, DAI, LINK
from ctoken_reconciler.core.models import DerivativeToken, PlainToken
from ctoken_reconciler.core.registry import (
    TokenRegistry,
    UnknownTokenError,
    UnknownUnderlyingTokenError,
    resolve_underlying,
)


def test_get_token_by_id(registry):
    """Test retrieving tokens by id."""
    assert registry.get_token_by_id(DAI.id) == DAI
    assert registry.get_token_by_id(CDAI.id) == CDAI

    with pytest.raises(UnknownTokenError):
        registry.get_token_by_id("ethereum/erc20/nonexistent")


def test_get_underlying(registry):
    """Test resolving a derivative's underlying token."""
    assert registry.get_underlying(CDAI) == DAI


def test_missing_underlying_is_rejected_at_construction():
    """Test that a derivative pointing nowhere is a configuration error."""
    with pytest.raises(UnknownUnderlyingTokenError):
        TokenRegistry([CDAI, LINK])


def test_duplicate_ids_rejected():
    """Test that token ids are unique."""
    with pytest.raises(ValueError, match="Duplicate"):
        TokenRegistry([DAI, DAI])


def test_resolve_underlying_wraps_lookup_errors():
    """Test that resolve_underlying raises the dedicated error for any registry."""

    class BrokenRegistry:
        def get_token_by_id(self, token_id):
            raise UnknownTokenError(token_id)

    with pytest.raises(UnknownUnderlyingTokenError):
        resolve_underlying(BrokenRegistry(), CDAI)


def test_list_tokens_filters_delisted():
    """Test that delisted tokens are only listed on request."""
    old = PlainToken(id="ethereum/erc20/sai", ticker="SAI", magnitude=18, delisted=True)
    old_c = DerivativeToken(
        id="ethereum/erc20/csai", ticker="cSAI", magnitude=8, underlying_id=old.id, delisted=True
    )
    registry = TokenRegistry([DAI, old, old_c])

    assert registry.list_tokens() == [DAI]
    assert registry.list_tokens(include_delisted=True) == [DAI, old, old_c]


def test_list_tokens_for_base_currency(registry):
    """Test filtering tokens by base currency."""
    polygon_dai = PlainToken(id="polygon/erc20/dai", ticker="DAI", magnitude=18, parent_currency="polygon")
    mixed = TokenRegistry([DAI, CDAI, polygon_dai])

    assert mixed.list_tokens_for("ethereum") == [DAI, CDAI]
    assert mixed.list_tokens_for("polygon") == [polygon_dai]
    assert mixed.list_tokens_for("bitcoin") == []


def test_packaged_registry_loads():
    """Test that the packaged token list builds a consistent registry."""
    registry = TokenRegistry.from_yaml()

    derivatives = [t for t in registry.list_tokens(include_delisted=True) if isinstance(t, DerivativeToken)]
    assert len(derivatives) >= 4
    for token in derivatives:
        assert registry.get_underlying(token).magnitude >= 6
    assert "ethereum/erc20/compound_dai" in registry
