"""Registrar specs (enable_chain, disable_chain, register, withdraw).

`register` writes the name into the local lookup first, then sends one
message per enabled route through the router, paying each fee from the
registrar's own balance. Every step runs against the caller's working
state, so a failure anywhere discards the local write and any messages
already queued by this call.
"""

from __future__ import annotations

from typing import Any

from ..config import MAX_GAS_LIMIT, U64_MAX, PropagationPolicy
from ..encoding import encode_address, encode_extra_args, encode_name_payload
from ..errors import ErrorCode, SpecError
from ..types import (
    Call,
    ChainRoute,
    ChainState,
    ContractKind,
    EVM2AnyMessage,
    RegistrarStorage,
)
from . import router as router_spec
from .common import (
    Invoke,
    contract_of,
    reject_value,
    require_address,
    require_name,
    require_owner,
    unpack,
)


def build_message(route: ChainRoute, name: str, owner: bytes) -> EVM2AnyMessage:
    return EVM2AnyMessage(
        receiver=encode_address(route.receiver),
        data=encode_name_payload(name, owner),
        extra_args=encode_extra_args(route.gas_limit),
    )


def verify(state: ChainState, call: Call) -> None:
    contract = contract_of(state, call.target, ContractKind.REGISTRAR)
    storage: RegistrarStorage = contract.storage

    if call.method == "":
        # Plain value transfer (fee funding).
        return

    reject_value(call)

    if call.method == "enable_chain":
        require_owner(contract, call)
        selector, receiver, gas_limit = unpack(call, 3)
        if isinstance(selector, bool) or not isinstance(selector, int) or not 0 < selector <= U64_MAX:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "chain selector must be a non-zero uint64")
        require_address(receiver, "receiver")
        if isinstance(gas_limit, bool) or not isinstance(gas_limit, int) or not 0 < gas_limit <= MAX_GAS_LIMIT:
            raise SpecError(ErrorCode.INVALID_GAS_LIMIT, f"gas limit must be 1-{MAX_GAS_LIMIT}")
    elif call.method == "disable_chain":
        require_owner(contract, call)
        (selector,) = unpack(call, 1)
        if selector not in storage.routes:
            raise SpecError(ErrorCode.CHAIN_NOT_ENABLED, f"chain {selector} is not enabled")
    elif call.method == "register":
        (name,) = unpack(call, 1)
        require_name(name)
        if not storage.routes and storage.policy == PropagationPolicy.STRICT:
            raise SpecError(ErrorCode.CHAIN_NOT_ENABLED, "no destination chain enabled")
    elif call.method == "withdraw":
        require_owner(contract, call)
        (beneficiary,) = unpack(call, 1)
        require_address(beneficiary, "beneficiary")
        if state.balances.get(call.target, 0) == 0:
            raise SpecError(ErrorCode.NOTHING_TO_WITHDRAW, "registrar balance is zero")
    else:
        raise SpecError(ErrorCode.UNKNOWN_METHOD, f"registrar has no method {call.method!r}")


def _apply_register(state: ChainState, call: Call, invoke: Invoke) -> list[bytes]:
    storage: RegistrarStorage = state.contracts[call.target].storage
    (name,) = call.args
    owner = call.sender

    invoke(state, Call(sender=call.target, target=storage.lookup, method="write", args=(name, owner)))

    router_storage = contract_of(state, storage.router, ContractKind.ROUTER).storage
    message_ids: list[bytes] = []
    for selector, route in storage.routes.items():
        message = build_message(route, name, owner)
        fee = router_spec.quote_fee(router_storage, selector, message)
        available = state.balances.get(call.target, 0)
        if available < fee:
            raise SpecError(
                ErrorCode.INSUFFICIENT_FEE,
                f"registrar cannot pay fee for chain {selector} (required {fee}, has {available})",
            )
        message_ids.append(
            invoke(
                state,
                Call(
                    sender=call.target,
                    target=storage.router,
                    method="ccip_send",
                    args=(selector, message),
                    value=fee,
                ),
            )
        )
    return message_ids


def apply(state: ChainState, call: Call, invoke: Invoke) -> Any:
    storage: RegistrarStorage = state.contracts[call.target].storage

    if call.method == "":
        return None
    if call.method == "enable_chain":
        selector, receiver, gas_limit = call.args
        storage.routes[selector] = ChainRoute(receiver=bytes(receiver), gas_limit=gas_limit)
        return None
    if call.method == "disable_chain":
        (selector,) = call.args
        del storage.routes[selector]
        return None
    if call.method == "register":
        return _apply_register(state, call, invoke)
    if call.method == "withdraw":
        (beneficiary,) = call.args
        amount = state.balances.pop(call.target, 0)
        state.balances[bytes(beneficiary)] = state.balances.get(bytes(beneficiary), 0) + amount
        return amount
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"registrar has no method {call.method!r}")


def view(state: ChainState, target: bytes, method: str, args: tuple) -> Any:
    storage: RegistrarStorage = contract_of(state, target, ContractKind.REGISTRAR).storage
    if method == "routes":
        return dict(storage.routes)
    if method == "route":
        (selector,) = args
        return storage.routes.get(selector)
    if method == "router":
        return storage.router
    if method == "lookup":
        return storage.lookup
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"registrar has no view {method!r}")
