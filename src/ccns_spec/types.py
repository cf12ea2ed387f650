"""Core types for CCNS Python specs.

This repo tracks the cross-chain name service surface exercised by the
CCIP local simulator tests: the lookup registry, the registrar, the
receiver, and the router/transport pair that carries messages between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .config import DEFAULT_FEE_BASE, DEFAULT_FEE_PER_BYTE, ZERO_ADDRESS, PropagationPolicy
from .errors import SpecError


class ContractKind(Enum):
    LOOKUP = "lookup"
    REGISTRAR = "registrar"
    RECEIVER = "receiver"
    ROUTER = "router"


class ExecutionState(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Configuration:
    """Addresses handed out by the simulator, fixed for its lifetime."""

    chain_selector: int
    source_router: bytes
    destination_router: bytes
    wrapped_native: bytes
    link_token: bytes
    ccip_bnm: bytes
    ccip_lnm: bytes


@dataclass
class ChainRoute:
    receiver: bytes
    gas_limit: int


# --- Contract storage ---


@dataclass
class LookupStorage:
    authorized_caller: bytes = ZERO_ADDRESS
    records: dict[str, bytes] = field(default_factory=dict)


@dataclass
class RegistrarStorage:
    router: bytes
    lookup: bytes
    policy: PropagationPolicy = PropagationPolicy.STRICT
    # Keyed by destination chain selector, in enable order.
    routes: dict[int, ChainRoute] = field(default_factory=dict)


@dataclass
class ReceiverStorage:
    router: bytes
    lookup: bytes
    source_chain_selector: int
    trusted_sender: bytes = ZERO_ADDRESS


@dataclass
class RouterStorage:
    off_ramp: bytes = ZERO_ADDRESS
    supported_chains: list[int] = field(default_factory=list)
    fee_base: int = DEFAULT_FEE_BASE
    fee_per_byte: int = DEFAULT_FEE_PER_BYTE
    # (destination selector, sender) -> last used sequence number
    sequence_numbers: dict[tuple[int, bytes], int] = field(default_factory=dict)


@dataclass
class ContractState:
    kind: ContractKind
    owner: bytes
    storage: Any


# --- Messages ---


@dataclass
class EVM2AnyMessage:
    receiver: bytes
    data: bytes
    extra_args: bytes
    fee_token: bytes = ZERO_ADDRESS


@dataclass
class Any2EVMMessage:
    message_id: bytes
    source_chain_selector: int
    sender: bytes
    data: bytes


@dataclass
class OutboundMessage:
    """A message accepted by a source router, waiting for transport."""

    message_id: bytes
    source_chain_selector: int
    destination_chain_selector: int
    sequence_number: int
    sender: bytes
    receiver: bytes
    data: bytes
    gas_limit: int
    fee_paid: int = 0

    def to_any2evm(self) -> Any2EVMMessage:
        return Any2EVMMessage(
            message_id=self.message_id,
            source_chain_selector=self.source_chain_selector,
            sender=self.sender,
            data=self.data,
        )


@dataclass
class DeliveryRecord:
    message_id: bytes
    state: ExecutionState
    error: Optional[SpecError] = None


# --- Calls / chain state ---


@dataclass
class Call:
    sender: bytes
    target: bytes
    method: str
    args: tuple = ()
    value: int = 0


@dataclass
class ChainState:
    chain_selector: int
    balances: dict[bytes, int] = field(default_factory=dict)
    # Deploy nonces per deployer, used for contract address derivation.
    nonces: dict[bytes, int] = field(default_factory=dict)
    contracts: dict[bytes, ContractState] = field(default_factory=dict)
    # Messages sent by committed calls, not yet handed to the transport.
    outbox: list[OutboundMessage] = field(default_factory=list)
