import pytest

from cwcontracts.chain import (
    Attribute,
    BankSend,
    Coin,
    ContractError,
    Response,
    WasmExecute,
    mock_env,
    mock_info,
)


def test_response_chaining_collects_messages_in_order():
    first = BankSend("alice", [Coin("ucarrot", 3)])
    second = WasmExecute("contract", b"{}")
    response = Response().add_message(first).add_message(second)
    assert response.messages == [first, second]
    assert response.attributes == []


def test_add_attribute_stringifies_value():
    response = Response().add_attribute("p3", 6)
    assert response.attributes == [Attribute("p3", "6")]


def test_attribute_map_later_key_wins():
    response = Response().add_attribute("a", "1").add_attribute("b", "2").add_attribute("a", "3")
    assert response.attribute_map() == {"a": "3", "b": "2"}
    assert len(response.attributes) == 3


def test_mock_info_keeps_funds_as_tuple():
    info = mock_info("admin0000", [Coin("ugrain", 5)])
    assert info.sender == "admin0000"
    assert info.funds == (Coin("ugrain", 5),)


def test_mock_info_defaults_to_no_funds():
    assert mock_info("p1").funds == ()


def test_mock_env_is_stable_and_seconds_consistent():
    env = mock_env()
    assert env == mock_env()
    assert env.block.seconds * 1_000_000_000 <= env.block.nanos
    assert env.block.nanos - env.block.seconds * 1_000_000_000 < 1_000_000_000


def test_bank_send_normalises_amount():
    send = BankSend("bob", [Coin("x", 1), Coin("y", 2)])
    assert send.amount == (Coin("x", 1), Coin("y", 2))


def test_contract_error_message():
    error = ContractError("boom")
    assert str(error) == "boom"
    assert issubclass(ContractError, Exception)