"""Coins, messages, responses and the execution context shared by the contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

_NANOS_PER_SECOND = 1_000_000_000


class ContractError(Exception):
    """Raised when a contract rejects a call."""


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination."""

    denom: str
    amount: int


@dataclass(frozen=True)
class Attribute:
    """A key/value pair attached to a response."""

    key: str
    value: str


@dataclass(frozen=True)
class BankSend:
    """Instruction to move native coins to an address."""

    to_address: str
    amount: tuple[Coin, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", tuple(self.amount))


@dataclass(frozen=True)
class WasmExecute:
    """Instruction to execute another contract with a raw message."""

    contract_addr: str
    msg: bytes
    funds: tuple[Coin, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "msg", bytes(self.msg))
        object.__setattr__(self, "funds", tuple(self.funds))


@dataclass
class Response:
    """The outcome of a successful contract call."""

    messages: list[Any] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)

    def add_message(self, message: Any) -> "Response":
        """Append a message and return the response for chaining."""
        self.messages.append(message)
        return self

    def add_attribute(self, key: str, value: Any) -> "Response":
        """Append an attribute, stringifying its value, and return the response."""
        self.attributes.append(Attribute(str(key), str(value)))
        return self

    def attribute_map(self) -> dict[str, str]:
        """Attributes as a dictionary; later keys win over earlier ones."""
        return {attr.key: attr.value for attr in self.attributes}


@dataclass(frozen=True)
class MessageInfo:
    """Who sent a call and which coins came with it."""

    sender: str
    funds: tuple[Coin, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "funds", tuple(self.funds))


@dataclass(frozen=True)
class BlockInfo:
    """The block a call is executed in; time is in nanoseconds."""

    height: int
    time: int
    chain_id: str

    @property
    def seconds(self) -> int:
        return self.time // _NANOS_PER_SECOND

    @property
    def nanos(self) -> int:
        return self.time


@dataclass(frozen=True)
class Env:
    """The environment of a call: block and executing contract."""

    block: BlockInfo
    contract_address: str


def mock_env() -> Env:
    """A fixed environment suitable for tests."""
    return Env(
        block=BlockInfo(
            height=12_345,
            time=1_571_797_419_879_305_533,
            chain_id="cosmos-testnet-14002",
        ),
        contract_address="cosmos2contract",
    )


def mock_info(sender: str, funds: Iterable[Coin] = ()) -> MessageInfo:
    """Message info for a sender with the given funds."""
    return MessageInfo(sender=sender, funds=tuple(funds))