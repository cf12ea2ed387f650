"""Router specs (get_fee, ccip_send, route_message).

The router is the only messaging surface a chain exposes. On the sending
side it quotes and collects fees and puts accepted messages in the chain's
outbox; on the receiving side it is the caller the receiver trusts.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import MAX_GAS_LIMIT, ZERO_ADDRESS
from ..encoding import compute_message_id, decode_address, decode_extra_args
from ..errors import ErrorCode, SpecError
from ..types import (
    Call,
    ChainState,
    ContractKind,
    EVM2AnyMessage,
    OutboundMessage,
    RouterStorage,
)
from .common import Invoke, contract_of, unpack

logger = logging.getLogger(__name__)


def quote_fee(storage: RouterStorage, destination_chain_selector: int, message: EVM2AnyMessage) -> int:
    if destination_chain_selector not in storage.supported_chains:
        raise SpecError(
            ErrorCode.UNSUPPORTED_DESTINATION_CHAIN,
            f"unsupported destination chain {destination_chain_selector}",
        )
    return storage.fee_base + storage.fee_per_byte * len(message.data)


def _verify_ccip_send(storage: RouterStorage, call: Call) -> None:
    destination, message = unpack(call, 2)
    if not isinstance(message, EVM2AnyMessage):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "ccip_send expects an EVM2AnyMessage")

    fee = quote_fee(storage, destination, message)

    receiver = decode_address(message.receiver)
    if receiver == ZERO_ADDRESS:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "receiver must not be the zero address")

    gas_limit = decode_extra_args(message.extra_args)
    if gas_limit == 0 or gas_limit > MAX_GAS_LIMIT:
        raise SpecError(ErrorCode.INVALID_GAS_LIMIT, f"gas limit must be 1-{MAX_GAS_LIMIT}")

    # Native fee only.
    if message.fee_token != ZERO_ADDRESS:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "only native fee payment is supported")

    if call.value < fee:
        raise SpecError(
            ErrorCode.INSUFFICIENT_FEE,
            f"fee too low (required {fee}, got {call.value})",
        )


def verify(state: ChainState, call: Call) -> None:
    contract = contract_of(state, call.target, ContractKind.ROUTER)
    storage: RouterStorage = contract.storage
    if call.method == "ccip_send":
        _verify_ccip_send(storage, call)
    elif call.method == "route_message":
        (message,) = unpack(call, 1)
        if not isinstance(message, OutboundMessage):
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "route_message expects an OutboundMessage")
        if call.sender != storage.off_ramp:
            raise SpecError(ErrorCode.UNAUTHORIZED, "only the off-ramp may route messages")
        if message.destination_chain_selector != state.chain_selector:
            raise SpecError(
                ErrorCode.UNSUPPORTED_DESTINATION_CHAIN,
                "message is not addressed to this chain",
            )
    else:
        raise SpecError(ErrorCode.UNKNOWN_METHOD, f"router has no method {call.method!r}")


def _apply_ccip_send(state: ChainState, call: Call) -> bytes:
    storage: RouterStorage = state.contracts[call.target].storage
    destination, message = call.args

    lane = (destination, call.sender)
    sequence_number = storage.sequence_numbers.get(lane, 0) + 1
    storage.sequence_numbers[lane] = sequence_number

    receiver = decode_address(message.receiver)
    gas_limit = decode_extra_args(message.extra_args)
    message_id = compute_message_id(
        state.chain_selector,
        destination,
        sequence_number,
        call.sender,
        receiver,
        message.data,
        gas_limit,
    )
    state.outbox.append(
        OutboundMessage(
            message_id=message_id,
            source_chain_selector=state.chain_selector,
            destination_chain_selector=destination,
            sequence_number=sequence_number,
            sender=call.sender,
            receiver=receiver,
            data=message.data,
            gas_limit=gas_limit,
            fee_paid=call.value,
        )
    )
    logger.debug(
        "ccip_send %s seq=%d %d -> %d", message_id.hex(), sequence_number,
        state.chain_selector, destination,
    )
    return message_id


def apply(state: ChainState, call: Call, invoke: Invoke) -> Any:
    if call.method == "ccip_send":
        return _apply_ccip_send(state, call)
    if call.method == "route_message":
        (message,) = call.args
        return invoke(
            state,
            Call(
                sender=call.target,
                target=message.receiver,
                method="ccip_receive",
                args=(message.to_any2evm(),),
            ),
        )
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"router has no method {call.method!r}")


def view(state: ChainState, target: bytes, method: str, args: tuple) -> Any:
    storage: RouterStorage = contract_of(state, target, ContractKind.ROUTER).storage
    if method == "get_fee":
        destination, message = args
        return quote_fee(storage, destination, message)
    if method == "is_chain_supported":
        (selector,) = args
        return selector in storage.supported_chains
    raise SpecError(ErrorCode.UNKNOWN_METHOD, f"router has no view {method!r}")
