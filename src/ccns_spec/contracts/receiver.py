"""Receiver specs (set_trusted_sender, ccip_receive)."""

from __future__ import annotations

from typing import Any

from ..config import ZERO_ADDRESS
from ..encoding import decode_name_payload
from ..errors import ErrorCode, SpecError
from ..types import Any2EVMMessage, Call, ChainState, ContractKind, ReceiverStorage
from .common import Invoke, contract_of, reject_value, require_address, require_owner, unpack


def _verify_ccip_receive(storage: ReceiverStorage, call: Call) -> None:
    (message,) = unpack(call, 1)
    if call.sender != storage.router:
        raise SpecError(ErrorCode.INVALID_ROUTER, "ccip_receive: caller is not the router")
    if not isinstance(message, Any2EVMMessage):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "ccip_receive expects an Any2EVMMessage")
    if message.source_chain_selector != storage.source_chain_selector:
        raise SpecError(
            ErrorCode.UNTRUSTED_SENDER,
            f"unexpected source chain {message.source_chain_selector}",
        )
    if storage.trusted_sender == ZERO_ADDRESS or message.sender != storage.trusted_sender:
        raise SpecError(ErrorCode.UNTRUSTED_SENDER, f"untrusted sender {message.sender.hex()}")


def verify(state: ChainState, call: Call) -> None:
    contract = contract_of(state, call.target, ContractKind.RECEIVER)
    reject_value(call)
    if call.method == "set_trusted_sender":
        require_owner(contract, call)
        (sender,) = unpack(call, 1)
        sender = require_address(sender, "trusted sender")
        bound = contract.storage.trusted_sender
        if bound != ZERO_ADDRESS and bound != sender:
            raise SpecError(ErrorCode.ALREADY_BOUND, "trusted sender already set")
    elif call.method == "ccip_receive":
        _verify_ccip_receive(contract.storage, call)
    else:
        raise SpecError(ErrorCode.UNKNOWN_METHOD, f"receiver has no method {call.method!r}")


def apply(state: ChainState, call: Call, invoke: Invoke) -> Any:
    storage: ReceiverStorage = state.contracts[call.target].storage
    if call.method == "set_trusted_sender":
        storage.trusted_sender = bytes(call.args[0])
        return None
    if call.method == "ccip_receive":
        (message,) = call.args
        name, owner = decode_name_payload(message.data)
        invoke(
            state,
            Call(sender=call.target, target=storage.lookup, method="write", args=(name, owner)),
        )
        return None
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"receiver has no method {call.method!r}")


def view(state: ChainState, target: bytes, method: str, args: tuple) -> Any:
    storage: ReceiverStorage = contract_of(state, target, ContractKind.RECEIVER).storage
    if method == "trusted_sender":
        return storage.trusted_sender
    if method == "source_chain_selector":
        return storage.source_chain_selector
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"receiver has no view {method!r}")
