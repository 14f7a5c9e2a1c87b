import pytest

from cwcontracts.chain import Coin, ContractError, mock_env, mock_info
from cwcontracts.egg import ENTRANCE_FEE, EggContract
from cwcontracts.robin import ExecutePalomaJob, TargetContractInfo

TARGET = TargetContractInfo(chain_id="", compass_id="", contract_address="", smart_contract_abi="")


@pytest.fixture
def contract():
    return EggContract.instantiate(mock_info("admin0000"), TARGET)


def add_entrant(contract, n, funds):
    return contract.lay_egg(
        mock_info(f"addr{n:04}", [Coin("ugrain", funds)]),
        f"0x000000000000000000000000000000000000{n:04}",
    )


def pick(contract, sender="admin0000"):
    return contract.pick_winner(mock_env(), mock_info(sender), b"")


def test_simple_contest(contract):
    add_entrant(contract, 0, ENTRANCE_FEE)
    attributes = pick(contract).attribute_map()
    assert attributes["winning_paloma_address"] == "addr0000"
    assert attributes["winning_eth_address"] == "0x0000000000000000000000000000000000000000"

    add_entrant(contract, 1, ENTRANCE_FEE)
    attributes = pick(contract).attribute_map()
    assert attributes["winning_paloma_address"] == "addr0001"
    assert attributes["winning_eth_address"] == "0x0000000000000000000000000000000000000001"


def test_simple_errors(contract):
    with pytest.raises(ContractError):
        add_entrant(contract, 0, 5)
    with pytest.raises(ContractError, match="forbidden"):
        pick(contract, sender="addr0000")
    add_entrant(contract, 0, ENTRANCE_FEE)
    pick(contract)
    with pytest.raises(ContractError):
        add_entrant(contract, 0, ENTRANCE_FEE)


def test_winner_message_carries_payload(contract):
    add_entrant(contract, 3, ENTRANCE_FEE)
    response = contract.pick_winner(mock_env(), mock_info("admin0000"), b"job")
    assert response.messages == [ExecutePalomaJob(TARGET, b"job")]


def test_winning_eth_address_blocks_other_sender(contract):
    add_entrant(contract, 0, ENTRANCE_FEE)
    pick(contract)
    with pytest.raises(ContractError, match="ETH address has already won"):
        contract.lay_egg(
            mock_info("addr9999", [Coin("ugrain", ENTRANCE_FEE)]),
            "0x0000000000000000000000000000000000000000",
        )


def test_no_eligible_entrants(contract):
    with pytest.raises(ContractError):
        pick(contract)


@pytest.mark.parametrize(
    "address",
    ["0000000000000000000000000000000000000000", "0x00", "0xzz00000000000000000000000000000000000000"],
)
def test_invalid_eth_address(contract, address):
    with pytest.raises(ContractError):
        contract.lay_egg(mock_info("addr0001", [Coin("ugrain", ENTRANCE_FEE)]), address)


def test_wrong_denom_rejected(contract):
    with pytest.raises(ContractError, match="Entry fee"):
        contract.lay_egg(
            mock_info("addr0001", [Coin("ucarrot", ENTRANCE_FEE)]),
            "0x0000000000000000000000000000000000000001",
        )


def test_winners_are_distinct(contract):
    for n in range(5):
        add_entrant(contract, n, ENTRANCE_FEE)
    winners = {pick(contract).attribute_map()["winning_paloma_address"] for _ in range(5)}
    assert winners == {f"addr{n:04}" for n in range(5)}
    with pytest.raises(ContractError):
        pick(contract)