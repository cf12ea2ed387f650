"""Lookup registry specs (set_authorized_caller, write, lookup)."""

from __future__ import annotations

from typing import Any

from ..config import ZERO_ADDRESS
from ..errors import ErrorCode, SpecError
from ..types import Call, ChainState, ContractKind, LookupStorage
from .common import (
    Invoke,
    contract_of,
    reject_value,
    require_address,
    require_name,
    require_owner,
    unpack,
)


def verify(state: ChainState, call: Call) -> None:
    contract = contract_of(state, call.target, ContractKind.LOOKUP)
    reject_value(call)
    if call.method == "set_authorized_caller":
        require_owner(contract, call)
        (caller,) = unpack(call, 1)
        caller = require_address(caller, "authorized caller")
        bound = contract.storage.authorized_caller
        # Bind once; re-binding the same address is a no-op.
        if bound != ZERO_ADDRESS and bound != caller:
            raise SpecError(ErrorCode.ALREADY_BOUND, "authorized caller already set")
    elif call.method == "write":
        name, owner = unpack(call, 2)
        if call.sender != contract.storage.authorized_caller:
            raise SpecError(ErrorCode.UNAUTHORIZED, "caller is not the authorized name service")
        require_name(name)
        require_address(owner, "owner")
    else:
        raise SpecError(ErrorCode.UNKNOWN_METHOD, f"lookup has no method {call.method!r}")


def apply(state: ChainState, call: Call, invoke: Invoke) -> Any:
    storage: LookupStorage = state.contracts[call.target].storage
    if call.method == "set_authorized_caller":
        storage.authorized_caller = bytes(call.args[0])
        return None
    if call.method == "write":
        name, owner = call.args
        storage.records[name] = bytes(owner)
        return None
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"lookup has no method {call.method!r}")


def view(state: ChainState, target: bytes, method: str, args: tuple) -> Any:
    storage: LookupStorage = contract_of(state, target, ContractKind.LOOKUP).storage
    if method == "lookup":
        (name,) = args
        return storage.records.get(name, ZERO_ADDRESS)
    if method == "authorized_caller":
        return storage.authorized_caller
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"lookup has no view {method!r}")
