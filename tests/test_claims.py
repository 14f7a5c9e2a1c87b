import pytest

from cwcontracts.chain import Attribute, BankSend, Coin, ContractError, mock_info
from cwcontracts.claims import ClaimsContract

CLAIMS = [("p1", 4), ("p2", 5), ("p3", 6)]


@pytest.fixture
def contract():
    return ClaimsContract.instantiate(mock_info("admin0000", [Coin("ucarrot", 15)]), CLAIMS)


def test_full_flow(contract):
    contract.claim(mock_info("p1"))
    contract.claim(mock_info("p2"))
    response = contract.clear(mock_info("admin0000"))
    assert response.attributes[0] == Attribute("p3", "6")
    message = response.messages[0]
    assert isinstance(message, BankSend)
    assert message.to_address == "admin0000"
    assert message.amount == (Coin("ucarrot", 6),)


def test_claim_sends_registered_amount(contract):
    response = contract.claim(mock_info("p2"))
    assert response.messages == [BankSend("p2", [Coin("ucarrot", 5)])]
    assert contract.bank == 10


def test_claim_twice_fails(contract):
    contract.claim(mock_info("p1"))
    with pytest.raises(ContractError):
        contract.claim(mock_info("p1"))


def test_unknown_claimant_fails(contract):
    with pytest.raises(ContractError):
        contract.claim(mock_info("stranger"))


def test_only_admin_can_clear(contract):
    with pytest.raises(ContractError, match="only admin"):
        contract.clear(mock_info("p1"))


def test_clear_lists_entries_in_ascending_order():
    contract = ClaimsContract.instantiate(
        mock_info("admin0000", [Coin("ucarrot", 15)]), [("p3", 6), ("p1", 4), ("p2", 5)]
    )
    response = contract.clear(mock_info("admin0000"))
    assert [a.key for a in response.attributes] == ["p1", "p2", "p3"]
    assert response.messages[0].amount == (Coin("ucarrot", 15),)


def test_funds_must_match_total():
    with pytest.raises(ContractError, match="exactly what is distributed"):
        ClaimsContract.instantiate(mock_info("admin0000", [Coin("ucarrot", 14)]), CLAIMS)


def test_exactly_one_funds_slot():
    with pytest.raises(ContractError, match="only one funds slot"):
        ClaimsContract.instantiate(
            mock_info("admin0000", [Coin("ucarrot", 15), Coin("ugrain", 1)]), CLAIMS
        )
    with pytest.raises(ContractError, match="only one funds slot"):
        ClaimsContract.instantiate(mock_info("admin0000"), CLAIMS)