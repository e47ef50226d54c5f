"""Tests for placeholder derivative accounts."""

from conftest import CDAI, CUSDC, DAI, LINK, USDC
from ctoken_reconciler.core.placeholders import PLACEHOLDER_PREFIX, inject_placeholders, is_placeholder


def test_placeholder_added_for_lonely_underlying(registry, make_account):
    """Test that an underlying account without derivative account gets a stub."""
    dai = make_account(DAI, 100)

    result = inject_placeholders(registry, "ethereum", [dai])

    assert len(result) == 2
    assert result[0] is dai
    stub = result[1]
    assert stub.token == CDAI
    assert stub.id == f"{PLACEHOLDER_PREFIX}{CDAI.id}"
    assert stub.parent_id == dai.parent_id
    assert stub.balance == 0
    assert stub.spendable_balance == 0
    assert stub.operations == []
    assert stub.pending_operations == []
    assert is_placeholder(stub)


def test_placeholder_ids_are_deterministic(registry, make_account):
    """Test that repeated injection produces the same stub ids."""
    accounts = [make_account(DAI, 1), make_account(USDC, 1)]

    first = inject_placeholders(registry, "ethereum", accounts)
    second = inject_placeholders(registry, "ethereum", accounts)

    assert [a.id for a in first] == [a.id for a in second]
    assert {a.token for a in first[2:]} == {CDAI, CUSDC}


def test_same_list_returned_when_nothing_to_add(registry, make_account):
    """Test that the input list itself is returned when every pair is complete."""
    accounts = [make_account(DAI, 1), make_account(CDAI, 1), make_account(LINK, 1)]

    assert inject_placeholders(registry, "ethereum", accounts) is accounts


def test_no_placeholder_for_derivative_only(registry, make_account):
    """Test that a derivative account without underlying needs no stub."""
    accounts = [make_account(CDAI, 1)]

    assert inject_placeholders(registry, "ethereum", accounts) is accounts


def test_injection_is_idempotent(registry, make_account):
    """Test that a prepared list needs no further stubs."""
    prepared = inject_placeholders(registry, "ethereum", [make_account(DAI, 1)])

    assert inject_placeholders(registry, "ethereum", prepared) is prepared


def test_is_placeholder_rejects_real_accounts(make_account):
    """Test that real or populated accounts are not taken for stubs."""
    assert not is_placeholder(make_account(CDAI, 0))

    filled = make_account(CDAI, 5, account_id=f"{PLACEHOLDER_PREFIX}{CDAI.id}")
    assert not is_placeholder(filled)
