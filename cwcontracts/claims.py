"""A contract that holds funds and pays out pre-registered claims."""

from __future__ import annotations

from typing import Iterable

from .chain import BankSend, Coin, ContractError, MessageInfo, Response


class ClaimsContract:
    """Funds deposited at creation are distributed to a fixed list of claimants."""

    def __init__(self, admin: str, denom: str, bank: int, register: dict[str, int]) -> None:
        self.admin = admin
        self.denom = denom
        self.bank = bank
        self.register = dict(register)

    @classmethod
    def instantiate(cls, info: MessageInfo, claims: Iterable[tuple[str, int]]) -> "ClaimsContract":
        """Create the contract; the funds sent must equal the sum of all claims."""
        if len(info.funds) != 1:
            raise ContractError("only one funds slot supported")
        deposit = info.funds[0]
        register: dict[str, int] = {}
        total = 0
        for address, amount in claims:
            register[address] = amount
            total += amount
        if total != deposit.amount:
            raise ContractError("Provided funds must be exactly what is distributed.")
        return cls(admin=info.sender, denom=deposit.denom, bank=total, register=register)

    def claim(self, info: MessageInfo) -> Response:
        """Pay the sender their registered claim and remove it."""
        try:
            amount = self.register.pop(info.sender)
        except KeyError:
            raise ContractError(f"no claim registered for {info.sender}") from None
        if amount > self.bank:
            self.register[info.sender] = amount
            raise ContractError("claim exceeds the funds held")
        self.bank -= amount
        return Response().add_message(BankSend(info.sender, [Coin(self.denom, amount)]))

    def clear(self, info: MessageInfo) -> Response:
        """Report unclaimed entries and send the remaining funds to the admin."""
        if info.sender != self.admin:
            raise ContractError("only admin can add claims")
        response = Response()
        for address, amount in sorted(self.register.items()):
            response.add_attribute(address, amount)
        return response.add_message(BankSend(self.admin, [Coin(self.denom, self.bank)]))