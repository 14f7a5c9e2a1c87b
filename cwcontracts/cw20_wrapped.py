"""A fungible token that wraps an asset from another chain; only the bridge may mint."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field, replace
from typing import Optional

from .chain import BlockInfo, ContractError, Env, MessageInfo, Response, WasmExecute

CONTRACT_NAME = "crates.io:cw20-base"
CONTRACT_VERSION = "0.1.0"
KEY_WRAPPED_ASSET = b"wrappedAsset"
NAME_SUFFIX = " (Wormhole)"

_U128_MAX = 2**128 - 1
_MIN_ADDR_LEN = 3
_MAX_ADDR_LEN = 54


class _TokenError(ContractError):
    default_message = "contract error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class Unauthorized(_TokenError):
    """The sender may not perform this action."""

    default_message = "Unauthorized"


class CannotSetOwnAccount(_TokenError):
    """An allowance cannot be granted to oneself."""

    default_message = "Cannot set to own account"


class InvalidZeroAmount(_TokenError):
    """The amount must be greater than zero."""

    default_message = "Invalid zero amount"


class Expired(_TokenError):
    """The allowance has expired."""

    default_message = "Allowance is expired"


class NoAllowance(_TokenError):
    """No allowance was granted for this account."""

    default_message = "No allowance for this account"


class CannotExceedCap(_TokenError):
    """Minting would take the supply above its cap."""

    default_message = "Minting cannot exceed the cap"


@dataclass(frozen=True)
class Expiration:
    """When an allowance ends: at a block height, at a time in nanoseconds, or never."""

    height: Optional[int] = None
    time: Optional[int] = None

    def __post_init__(self) -> None:
        if self.height is not None and self.time is not None:
            raise ValueError("an expiration is either a height or a time, not both")

    @classmethod
    def never(cls) -> "Expiration":
        return cls()

    @classmethod
    def at_height(cls, height: int) -> "Expiration":
        return cls(height=height)

    @classmethod
    def at_time(cls, time: int) -> "Expiration":
        return cls(time=time)

    def is_expired(self, block: BlockInfo) -> bool:
        """True once the block has reached the expiration point."""
        if self.height is not None:
            return block.height >= self.height
        if self.time is not None:
            return block.time >= self.time
        return False


@dataclass(frozen=True)
class InitMint:
    """Tokens to mint when the contract is created."""

    recipient: str
    amount: int


@dataclass(frozen=True)
class InitHook:
    """A contract to execute once the token has been created."""

    msg: bytes
    contract_addr: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "msg", bytes(self.msg))


@dataclass(frozen=True)
class WrappedAssetInfo:
    """The original asset and the bridge allowed to mint and burn."""

    asset_chain: int
    asset_address: bytes
    bridge: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_address", bytes(self.asset_address))


@dataclass(frozen=True)
class TokenInfo:
    """Stored token metadata and minting rights."""

    name: str
    symbol: str
    decimals: int
    total_supply: int = 0
    minter: Optional[str] = None
    cap: Optional[int] = None


@dataclass(frozen=True)
class TokenInfoResponse:
    """Token metadata as reported to callers."""

    name: str
    symbol: str
    decimals: int
    total_supply: int


@dataclass(frozen=True)
class AllowanceResponse:
    """How much a spender may still use, and until when."""

    allowance: int = 0
    expires: Expiration = field(default_factory=Expiration)


def _amount(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U128_MAX:
        raise ValueError(f"amount must be an integer in 0..={_U128_MAX}, got {value!r}")
    return value


def _add(a: int, b: int) -> int:
    total = a + b
    if total > _U128_MAX:
        raise ContractError(f"Overflow: Cannot Add with {a} and {b}")
    return total


def _sub(a: int, b: int) -> int:
    if b > a:
        raise ContractError(f"Overflow: Cannot Sub with {a} and {b}")
    return a - b


def _validate_addr(address: str) -> str:
    if len(address) < _MIN_ADDR_LEN:
        raise ContractError("Generic error: Invalid input: human address too short")
    if len(address) > _MAX_ADDR_LEN:
        raise ContractError("Generic error: Invalid input: human address too long")
    if address != address.lower():
        raise ContractError("Generic error: Invalid input: address not normalized")
    return address


def _receive_message(contract: str, sender: str, amount: int, msg: bytes) -> WasmExecute:
    body = {
        "receive": {
            "sender": sender,
            "amount": str(amount),
            "msg": base64.b64encode(bytes(msg)).decode("ascii"),
        }
    }
    encoded = json.dumps(body, separators=(",", ":")).encode("utf-8")
    return WasmExecute(contract, encoded, ())


class Cw20WrappedContract:
    """Balances, allowances and metadata of one wrapped token."""

    def __init__(self, token: TokenInfo, wrapped: WrappedAssetInfo) -> None:
        self.contract_version = (CONTRACT_NAME, CONTRACT_VERSION)
        self.token = token
        self.wrapped = wrapped
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], AllowanceResponse] = {}

    @classmethod
    def instantiate(
        cls,
        env: Env,
        info: MessageInfo,
        name: str,
        symbol: str,
        asset_chain: int,
        asset_address: bytes,
        decimals: int,
        mint: Optional[InitMint] = None,
        init_hook: Optional[InitHook] = None,
    ) -> tuple["Cw20WrappedContract", Response]:
        """Create the token with the sender as bridge and minter.

        Returns the contract and the instantiation response.
        """
        creator = _validate_addr(info.sender)
        token = TokenInfo(name=name, symbol=symbol, decimals=decimals, minter=creator)
        wrapped = WrappedAssetInfo(asset_chain, asset_address, creator)
        contract = cls(token, wrapped)
        if mint is not None:
            try:
                contract._execute_mint(info, mint.recipient, mint.amount)
            except (ContractError, ValueError) as exc:
                raise ContractError(f"Generic error: {exc}") from None
        response = Response()
        if init_hook is not None:
            response.add_message(WasmExecute(init_hook.contract_addr, init_hook.msg, ()))
        return contract, response

    # Balance movements

    def _move(self, owner: str, recipient: str, amount: int) -> None:
        self.balances[owner] = _sub(self.balances.get(owner, 0), amount)
        self.balances[recipient] = _add(self.balances.get(recipient, 0), amount)

    def _deducted_allowance(
        self, owner: str, spender: str, block: BlockInfo, amount: int
    ) -> AllowanceResponse:
        current = self.allowances.get((owner, spender))
        if current is None:
            raise NoAllowance()
        if current.expires.is_expired(block):
            raise Expired()
        return replace(current, allowance=_sub(current.allowance, amount))

    def transfer(self, info: MessageInfo, recipient: str, amount: int) -> Response:
        """Move tokens from the sender to the recipient."""
        if _amount(amount) == 0:
            raise InvalidZeroAmount()
        recipient = _validate_addr(recipient)
        self._move(info.sender, recipient, amount)
        return (
            Response()
            .add_attribute("action", "transfer")
            .add_attribute("from", info.sender)
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    def burn(self, env: Env, info: MessageInfo, account: str, amount: int) -> Response:
        """Destroy tokens of an account, spending the sender's allowance on it."""
        return self.burn_from(env, info, account, amount)

    def send(self, info: MessageInfo, contract: str, amount: int, msg: bytes) -> Response:
        """Move tokens to a contract and notify it with a receive message."""
        if _amount(amount) == 0:
            raise InvalidZeroAmount()
        contract = _validate_addr(contract)
        self._move(info.sender, contract, amount)
        return (
            Response()
            .add_attribute("action", "send")
            .add_attribute("from", info.sender)
            .add_attribute("to", contract)
            .add_attribute("amount", amount)
            .add_message(_receive_message(contract, info.sender, amount, msg))
        )

    def _execute_mint(self, info: MessageInfo, recipient: str, amount: int) -> Response:
        if _amount(amount) == 0:
            raise InvalidZeroAmount()
        if self.token.minter is None or self.token.minter != info.sender:
            raise Unauthorized()
        total_supply = _add(self.token.total_supply, amount)
        if self.token.cap is not None and total_supply > self.token.cap:
            raise CannotExceedCap()
        recipient = _validate_addr(recipient)
        new_balance = _add(self.balances.get(recipient, 0), amount)
        self.token = replace(self.token, total_supply=total_supply)
        self.balances[recipient] = new_balance
        return (
            Response()
            .add_attribute("action", "mint")
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    def mint(self, info: MessageInfo, recipient: str, amount: int) -> Response:
        """Create new tokens for the recipient; only the bridge may do this."""
        if info.sender != self.wrapped.bridge:
            raise Unauthorized()
        return self._execute_mint(info, recipient, amount)

    # Allowances

    def increase_allowance(
        self,
        env: Env,
        info: MessageInfo,
        spender: str,
        amount: int,
        expires: Optional[Expiration] = None,
    ) -> Response:
        """Let the spender use more of the sender's tokens."""
        _amount(amount)
        spender = _validate_addr(spender)
        if spender == info.sender:
            raise CannotSetOwnAccount()
        current = self.allowances.get((info.sender, spender), AllowanceResponse())
        updated = replace(current, allowance=_add(current.allowance, amount))
        if expires is not None:
            updated = replace(updated, expires=expires)
        self.allowances[(info.sender, spender)] = updated
        return (
            Response()
            .add_attribute("action", "increase_allowance")
            .add_attribute("owner", info.sender)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def decrease_allowance(
        self,
        env: Env,
        info: MessageInfo,
        spender: str,
        amount: int,
        expires: Optional[Expiration] = None,
    ) -> Response:
        """Lower the spender's allowance, removing it when it would reach zero."""
        _amount(amount)
        spender = _validate_addr(spender)
        if spender == info.sender:
            raise CannotSetOwnAccount()
        key = (info.sender, spender)
        current = self.allowances.get(key, AllowanceResponse())
        if amount < current.allowance:
            updated = replace(current, allowance=current.allowance - amount)
            if expires is not None:
                updated = replace(updated, expires=expires)
            self.allowances[key] = updated
        else:
            self.allowances.pop(key, None)
        return (
            Response()
            .add_attribute("action", "decrease_allowance")
            .add_attribute("owner", info.sender)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def transfer_from(
        self, env: Env, info: MessageInfo, owner: str, recipient: str, amount: int
    ) -> Response:
        """Move the owner's tokens to the recipient using the sender's allowance."""
        _amount(amount)
        recipient = _validate_addr(recipient)
        owner = _validate_addr(owner)
        allowance = self._deducted_allowance(owner, info.sender, env.block, amount)
        _sub(self.balances.get(owner, 0), amount)
        self.allowances[(owner, info.sender)] = allowance
        self._move(owner, recipient, amount)
        return (
            Response()
            .add_attribute("action", "transfer_from")
            .add_attribute("from", owner)
            .add_attribute("to", recipient)
            .add_attribute("by", info.sender)
            .add_attribute("amount", amount)
        )

    def burn_from(self, env: Env, info: MessageInfo, owner: str, amount: int) -> Response:
        """Destroy the owner's tokens using the sender's allowance."""
        _amount(amount)
        owner = _validate_addr(owner)
        allowance = self._deducted_allowance(owner, info.sender, env.block, amount)
        new_balance = _sub(self.balances.get(owner, 0), amount)
        total_supply = _sub(self.token.total_supply, amount)
        self.allowances[(owner, info.sender)] = allowance
        self.balances[owner] = new_balance
        self.token = replace(self.token, total_supply=total_supply)
        return (
            Response()
            .add_attribute("action", "burn_from")
            .add_attribute("from", owner)
            .add_attribute("by", info.sender)
            .add_attribute("amount", amount)
        )

    def send_from(
        self,
        env: Env,
        info: MessageInfo,
        owner: str,
        contract: str,
        amount: int,
        msg: bytes,
    ) -> Response:
        """Move the owner's tokens to a contract using the sender's allowance."""
        _amount(amount)
        contract = _validate_addr(contract)
        owner = _validate_addr(owner)
        allowance = self._deducted_allowance(owner, info.sender, env.block, amount)
        _sub(self.balances.get(owner, 0), amount)
        self.allowances[(owner, info.sender)] = allowance
        self._move(owner, contract, amount)
        return (
            Response()
            .add_attribute("action", "send_from")
            .add_attribute("from", owner)
            .add_attribute("to", contract)
            .add_attribute("by", info.sender)
            .add_attribute("amount", amount)
            .add_message(_receive_message(contract, info.sender, amount, msg))
        )

    def update_metadata(self, info: MessageInfo, name: str, symbol: str) -> Response:
        """Rename the token; only the bridge may do this."""
        if info.sender != self.wrapped.bridge:
            raise Unauthorized()
        self.token = replace(self.token, name=name, symbol=symbol)
        return Response()

    # Queries

    def balance(self, address: str) -> int:
        """Balance of an address, zero if it holds nothing."""
        return self.balances.get(_validate_addr(address), 0)

    def token_info(self) -> TokenInfoResponse:
        """Token metadata with the wrapped-asset suffix on the name."""
        return TokenInfoResponse(
            name=self.token.name + NAME_SUFFIX,
            symbol=self.token.symbol,
            decimals=self.token.decimals,
            total_supply=self.token.total_supply,
        )

    def allowance(self, owner: str, spender: str) -> AllowanceResponse:
        """What the spender may use from the owner, zero if nothing was granted."""
        key = (_validate_addr(owner), _validate_addr(spender))
        return self.allowances.get(key, AllowanceResponse())

    def wrapped_asset_info(self) -> WrappedAssetInfo:
        """The original asset and the bridge address."""
        return self.wrapped