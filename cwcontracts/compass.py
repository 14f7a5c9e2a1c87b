"""A bridge contract that runs messages signed by a weighted validator set."""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from .chain import ContractError, Env, MessageInfo, Response, WasmExecute

# 2/3 of 2**32; validator powers are normalised to sum to 2**32.
POWER_THRESHOLD = 2_863_311_530

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_U256_MAX = 2**256 - 1
_HASH_LEN = 32
_SIGNATURE_LEN = 64


@dataclass(frozen=True)
class Valset:
    """A validator set: public keys with their voting powers."""

    valset_id: int
    validators: tuple[bytes, ...]
    powers: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "validators", tuple(bytes(v) for v in self.validators))
        object.__setattr__(self, "powers", tuple(self.powers))


@dataclass(frozen=True)
class Consensus:
    """Signatures in the same order as the validators of the current set."""

    signatures: tuple[Optional[bytes], ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "signatures",
            tuple(None if sig is None else bytes(sig) for sig in self.signatures),
        )


@dataclass(frozen=True)
class LogicCallArgs:
    """A contract to call and the message to send it."""

    contract_address: str
    payload: str


@dataclass(frozen=True)
class UpdateValset:
    """Payload replacing the validator set."""

    valset: Valset
    smart_contract_id: str


@dataclass(frozen=True)
class SubmitLogicCall:
    """Payload asking the contract to call another contract once."""

    logic_call_args: LogicCallArgs
    message_id: int
    smart_contract_id: str
    deadline: int


Payload = Union[UpdateValset, SubmitLogicCall]


def check_validator_power(powers) -> None:
    """Raise unless the powers together reach the threshold."""
    cumulative = 0
    for power in powers:
        cumulative += power
        if cumulative >= POWER_THRESHOLD:
            return
    raise ContractError("Insufficient Power")


def verify_signature(public_key: bytes, message_hash: bytes, signature: bytes) -> bool:
    """Check a compact secp256k1 signature over a 32-byte hash."""
    if len(message_hash) != _HASH_LEN or len(signature) != _SIGNATURE_LEN:
        return False
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    try:
        key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(public_key))
        key.verify(
            encode_dss_signature(r, s),
            bytes(message_hash),
            ec.ECDSA(Prehashed(hashes.SHA256())),
        )
    except (InvalidSignature, ValueError):
        return False
    return True


def _valset_to_json(valset: Valset) -> dict[str, Any]:
    return {
        "valset_id": str(valset.valset_id),
        "validators": [base64.b64encode(v).decode("ascii") for v in valset.validators],
        "powers": list(valset.powers),
    }


def encode_payload(payload: Payload) -> bytes:
    """Serialise a payload to the compact JSON the validators sign."""
    if isinstance(payload, UpdateValset):
        body = {
            "update_valset": {
                "valset": _valset_to_json(payload.valset),
                "smart_contract_id": payload.smart_contract_id,
            }
        }
    elif isinstance(payload, SubmitLogicCall):
        body = {
            "submit_logic_call": {
                "logic_call_args": {
                    "contract_address": payload.logic_call_args.contract_address,
                    "payload": payload.logic_call_args.payload,
                },
                "message_id": str(payload.message_id),
                "smart_contract_id": payload.smart_contract_id,
                "deadline": payload.deadline,
            }
        }
    else:
        raise TypeError(f"unsupported payload {payload!r}")
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


def _field(obj: Any, name: str) -> Any:
    if not isinstance(obj, dict):
        raise ContractError(f"expected an object holding {name!r}")
    try:
        return obj[name]
    except KeyError:
        raise ContractError(f"missing field `{name}`") from None


def _str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ContractError(f"field `{name}` must be a string")
    return value


def _int(value: Any, maximum: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ContractError(f"field `{name}` must be an integer in 0..={maximum}")
    return value


def _uint256(value: Any, name: str) -> int:
    text = _str(value, name)
    if not text.isascii() or not text.isdigit():
        raise ContractError(f"field `{name}` must be a decimal string")
    number = int(text)
    if number > _U256_MAX:
        raise ContractError(f"field `{name}` exceeds 256 bits")
    return number


def _binary(value: Any, name: str) -> bytes:
    text = _str(value, name)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise ContractError(f"field `{name}` must be base64") from None


def _parse_valset(obj: Any) -> Valset:
    validators = _field(obj, "validators")
    powers = _field(obj, "powers")
    if not isinstance(validators, list) or not isinstance(powers, list):
        raise ContractError("validators and powers must be arrays")
    return Valset(
        valset_id=_uint256(_field(obj, "valset_id"), "valset_id"),
        validators=tuple(_binary(v, "validators") for v in validators),
        powers=tuple(_int(p, _U32_MAX, "powers") for p in powers),
    )


def parse_payload(data: bytes) -> Payload:
    """Parse the JSON payload of an execute message."""
    try:
        document = json.loads(data)
    except ValueError as exc:
        raise ContractError(f"invalid payload: {exc}") from None
    if not isinstance(document, dict) or len(document) != 1:
        raise ContractError("payload must be an object with a single variant")
    (variant, body), = document.items()
    if variant == "update_valset":
        return UpdateValset(
            valset=_parse_valset(_field(body, "valset")),
            smart_contract_id=_str(_field(body, "smart_contract_id"), "smart_contract_id"),
        )
    if variant == "submit_logic_call":
        args = _field(body, "logic_call_args")
        return SubmitLogicCall(
            logic_call_args=LogicCallArgs(
                contract_address=_str(_field(args, "contract_address"), "contract_address"),
                payload=_str(_field(args, "payload"), "payload"),
            ),
            message_id=_uint256(_field(body, "message_id"), "message_id"),
            smart_contract_id=_str(_field(body, "smart_contract_id"), "smart_contract_id"),
            deadline=_int(_field(body, "deadline"), _U64_MAX, "deadline"),
        )
    raise ContractError(f"unknown variant `{variant}`")


class CompassContract:
    """Holds the current validator set and the message ids already used."""

    def __init__(self, smart_contract_id: str, valset: Valset) -> None:
        self.smart_contract_id = smart_contract_id
        self.valset = valset
        self.valset_id = valset.valset_id
        self.used_message_ids: set[int] = set()

    @classmethod
    def instantiate(cls, smart_contract_id: str, valset: Valset) -> "CompassContract":
        """Create the contract with an initial validator set of sufficient power."""
        check_validator_power(valset.powers)
        return cls(smart_contract_id, valset)

    def _check_validator_signatures(self, consensus: Consensus, message: bytes) -> None:
        message_hash = hashlib.sha256(message).digest()
        cumulative = 0
        for validator, power, signature in zip(
            self.valset.validators, self.valset.powers, consensus.signatures
        ):
            if signature is None:
                continue
            if not verify_signature(validator, message_hash, signature):
                raise ContractError("Invalid Signature")
            cumulative += power
            if cumulative >= POWER_THRESHOLD:
                return
        raise ContractError("Insufficient Power")

    def execute(self, env: Env, info: MessageInfo, consensus: Consensus, payload: bytes) -> Response:
        """Run a payload signed by enough of the current validator set."""
        payload = bytes(payload)
        self._check_validator_signatures(consensus, payload)
        parsed = parse_payload(payload)
        if parsed.smart_contract_id != self.smart_contract_id:
            raise ContractError("Wrong smart contract instance")
        if isinstance(parsed, UpdateValset):
            return self._update_valset(parsed.valset)
        return self._submit_logic_call(env, info, parsed)

    def _update_valset(self, new_valset: Valset) -> Response:
        if new_valset.valset_id <= self.valset_id:
            raise ContractError("Valset ID must be greater than the current valset ID")
        check_validator_power(new_valset.powers)
        self.valset = new_valset
        self.valset_id = new_valset.valset_id
        return Response()

    def _submit_logic_call(self, env: Env, info: MessageInfo, call: SubmitLogicCall) -> Response:
        args = call.logic_call_args
        if args.contract_address == env.contract_address:
            raise ContractError("Probable error, recursive compass invocation")
        if env.block.seconds >= call.deadline:
            raise ContractError("Timeout")
        if any(coin.amount != 0 for coin in info.funds):
            raise ContractError("No funds should be sent to compass")
        if call.message_id in self.used_message_ids:
            raise ContractError("Used Message_ID")
        self.used_message_ids.add(call.message_id)
        return Response().add_message(
            WasmExecute(args.contract_address, args.payload.encode("utf-8"), ())
        )