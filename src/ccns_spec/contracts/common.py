"""Shared checks for contract specs."""

from __future__ import annotations

from typing import Any, Callable

from ..config import ADDRESS_SIZE, MAX_NAME_BYTES, ZERO_ADDRESS
from ..errors import ErrorCode, SpecError
from ..types import Call, ChainState, ContractKind, ContractState

# Executes a nested call against the same working state.
Invoke = Callable[[ChainState, Call], Any]


def contract_of(state: ChainState, address: bytes, kind: ContractKind) -> ContractState:
    contract = state.contracts.get(address)
    if contract is None:
        raise SpecError(ErrorCode.CONTRACT_NOT_FOUND, f"no contract at {address.hex()}")
    if contract.kind != kind:
        raise SpecError(
            ErrorCode.CONTRACT_NOT_FOUND,
            f"{address.hex()} is a {contract.kind.value}, expected {kind.value}",
        )
    return contract


def unpack(call: Call, count: int) -> tuple:
    if len(call.args) != count:
        raise SpecError(
            ErrorCode.INVALID_PAYLOAD,
            f"{call.method} takes {count} argument(s), got {len(call.args)}",
        )
    return tuple(call.args)


def require_owner(contract: ContractState, call: Call) -> None:
    if call.sender != contract.owner:
        raise SpecError(ErrorCode.NOT_OWNER, f"{call.method}: only callable by owner")


def require_address(value: object, what: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_SIZE:
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"{what} must be a {ADDRESS_SIZE}-byte address")
    if bytes(value) == ZERO_ADDRESS:
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"{what} must not be the zero address")
    return bytes(value)


def require_name(value: object) -> str:
    if not isinstance(value, str):
        raise SpecError(ErrorCode.INVALID_NAME, "name must be string")
    if not value:
        raise SpecError(ErrorCode.INVALID_NAME, "name must not be empty")
    if len(value.encode("utf-8")) > MAX_NAME_BYTES:
        raise SpecError(ErrorCode.INVALID_NAME, f"name too long (max {MAX_NAME_BYTES} bytes)")
    return value


def reject_value(call: Call) -> None:
    if call.value:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, f"{call.method} is not payable")
