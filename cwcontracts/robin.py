"""A relay contract that forwards a payload as a cross-chain job."""

from __future__ import annotations

from dataclasses import dataclass

from .chain import Response


@dataclass(frozen=True)
class TargetContractInfo:
    """Identifies a contract on another chain."""

    chain_id: str
    compass_id: str
    contract_address: str
    smart_contract_abi: str


@dataclass(frozen=True)
class ExecutePalomaJob:
    """Custom message asking the chain to run a job on a target contract."""

    target_contract_info: TargetContractInfo
    payload: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))


def call(target_contract_info: TargetContractInfo, payload: bytes) -> Response:
    """Forward the payload to the target contract as a job."""
    return Response().add_message(ExecutePalomaJob(target_contract_info, payload))