"""State transition entrypoints for CCNS Python specs."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Optional

from .config import ADDRESS_SIZE
from .contracts import lookup as c_lookup
from .contracts import receiver as c_receiver
from .contracts import registrar as c_registrar
from .contracts import router as c_router
from .encoding import derive_contract_address
from .errors import ErrorCode, SpecError
from .types import (
    Call,
    ChainState,
    ContractKind,
    ContractState,
    DeliveryRecord,
    ExecutionState,
    OutboundMessage,
)

logger = logging.getLogger(__name__)

_SPECS = {
    ContractKind.LOOKUP: c_lookup,
    ContractKind.REGISTRAR: c_registrar,
    ContractKind.RECEIVER: c_receiver,
    ContractKind.ROUTER: c_router,
}


class TransitionResult:
    """Thin wrapper for call results."""

    def __init__(self, ok: bool, error: Optional[SpecError] = None, value: Any = None):
        self.ok = ok
        self.error = error
        self.value = value

    @classmethod
    def success(cls, value: Any = None) -> "TransitionResult":
        return cls(True, None, value)

    @classmethod
    def failure(cls, error: SpecError) -> "TransitionResult":
        return cls(False, error)


def _transfer(state: ChainState, source: bytes, destination: bytes, amount: int) -> None:
    if amount < 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "value negative")
    if amount == 0:
        return
    balance = state.balances.get(source, 0)
    if balance < amount:
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance for value")
    state.balances[source] = balance - amount
    state.balances[destination] = state.balances.get(destination, 0) + amount


def execute(state: ChainState, call: Call) -> Any:
    """Run a call in place against a working state.

    Used for nested calls between contracts; rollback is the caller's job.
    """
    if len(call.target) != ADDRESS_SIZE:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "call target must be an address")

    contract = state.contracts.get(call.target)
    if contract is None:
        # Externally owned account: only plain value transfers.
        if call.method:
            raise SpecError(ErrorCode.CONTRACT_NOT_FOUND, f"no contract at {call.target.hex()}")
        _transfer(state, call.sender, call.target, call.value)
        return None

    spec = _SPECS[contract.kind]
    spec.verify(state, call)
    _transfer(state, call.sender, call.target, call.value)
    return spec.apply(state, call, execute)


def apply_call(state: ChainState, call: Call) -> tuple[ChainState, TransitionResult]:
    """Apply a top-level call atomically.

    On failure the original state is returned unchanged, including balances
    and the outbox.
    """
    working = deepcopy(state)
    try:
        value = execute(working, call)
    except SpecError as exc:
        logger.debug("call %s on %s reverted: %s", call.method, call.target.hex(), exc)
        return state, TransitionResult.failure(exc)
    return working, TransitionResult.success(value)


def call_view(state: ChainState, target: bytes, method: str, *args: Any) -> Any:
    contract = state.contracts.get(target)
    if contract is None:
        raise SpecError(ErrorCode.CONTRACT_NOT_FOUND, f"no contract at {target.hex()}")
    return _SPECS[contract.kind].view(state, target, method, args)


def deploy(
    state: ChainState, deployer: bytes, kind: ContractKind, storage: Any
) -> tuple[ChainState, bytes]:
    """Create a contract owned by `deployer`; returns (new_state, address)."""
    next_state = deepcopy(state)
    nonce = next_state.nonces.get(deployer, 0)
    address = derive_contract_address(next_state.chain_selector, deployer, nonce)
    next_state.nonces[deployer] = nonce + 1
    next_state.contracts[address] = ContractState(kind=kind, owner=deployer, storage=storage)
    return next_state, address


def deliver_message(
    state: ChainState, router: bytes, off_ramp: bytes, message: OutboundMessage
) -> tuple[ChainState, DeliveryRecord]:
    """Execute an inbound message on its destination chain.

    Failure is terminal for the message: the state is left unchanged and the
    record carries the error.
    """
    call = Call(sender=off_ramp, target=router, method="route_message", args=(message,))
    next_state, result = apply_call(state, call)
    if result.ok:
        return next_state, DeliveryRecord(message.message_id, ExecutionState.SUCCESS)
    return state, DeliveryRecord(message.message_id, ExecutionState.FAILURE, result.error)
