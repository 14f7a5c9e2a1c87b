"""A raffle: entrants pay a fee, the admin draws winners who never win twice."""

from __future__ import annotations

import random

from .chain import Coin, ContractError, Env, MessageInfo, Response
from .robin import ExecutePalomaJob, TargetContractInfo

ENTRANCE_FEE = 1_000_000
FEE_DENOM = "ugrain"
_ETH_ADDRESS_BYTES = 20


def _check_eth_address(eth_address: str) -> None:
    if not eth_address.startswith("0x"):
        raise ContractError(f"invalid eth address {eth_address!r}")
    try:
        raw = bytes.fromhex(eth_address[2:])
    except ValueError:
        raise ContractError(f"invalid eth address {eth_address!r}") from None
    if len(raw) != _ETH_ADDRESS_BYTES:
        raise ContractError(f"invalid eth address {eth_address!r}")


class EggContract:
    """Holds entrants and past winners for the raffle."""

    def __init__(self, admin: str, target_contract_info: TargetContractInfo) -> None:
        self.admin = admin
        self.target_contract_info = target_contract_info
        self.entrants: dict[str, str] = {}
        self.paloma_winners: set[str] = set()
        self.eth_winners: set[str] = set()

    @classmethod
    def instantiate(cls, info: MessageInfo, target_contract_info: TargetContractInfo) -> "EggContract":
        """Create the raffle with the sender as admin."""
        return cls(admin=info.sender, target_contract_info=target_contract_info)

    def lay_egg(self, info: MessageInfo, eth_address: str) -> Response:
        """Enter the sender, paying exactly the entrance fee."""
        _check_eth_address(eth_address)
        if info.funds != (Coin(FEE_DENOM, ENTRANCE_FEE),):
            raise ContractError("Entry fee is 1 grain, please supply funds.")
        if info.sender in self.paloma_winners:
            raise ContractError("This address has already won an egg.")
        if eth_address in self.eth_winners:
            raise ContractError("This ETH address has already won an egg.")
        self.entrants[info.sender] = eth_address
        return Response()

    def pick_winner(self, env: Env, info: MessageInfo, payload: bytes) -> Response:
        """Draw a winner among eligible entrants, seeded by the block time."""
        if info.sender != self.admin:
            raise ContractError("forbidden")
        eligible = [
            (paloma, eth)
            for paloma, eth in sorted(self.entrants.items())
            if paloma not in self.paloma_winners and eth not in self.eth_winners
        ]
        if not eligible:
            raise ContractError("no eligible entrants")
        paloma_address, eth_address = random.Random(env.block.nanos).choice(eligible)
        self.paloma_winners.add(paloma_address)
        self.eth_winners.add(eth_address)
        return (
            Response()
            .add_message(ExecutePalomaJob(self.target_contract_info, payload))
            .add_attribute("winning_paloma_address", paloma_address)
            .add_attribute("winning_eth_address", eth_address)
        )