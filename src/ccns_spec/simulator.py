"""Local CCIP simulator for CCNS specs.

`ChainSimulator` plays the part of `CCIPLocalSimulator`: it creates the
simulated chain(s), deploys a router on each, hands out a `Configuration`,
and moves messages between chains through a `Transport`.

With the default settings there is a single chain whose source and
destination routers are the same contract, and messages are delivered as
soon as the sending call commits. A distinct source/destination pair, or
`auto_deliver=False`, makes delivery an explicit step driven by the caller;
`auto_deliver=True` restores immediate delivery across two chains.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from blake3 import blake3

from .config import ADDRESS_SIZE, PropagationPolicy, SimulatorSettings
from .encoding import derive_contract_address
from .errors import ErrorCode, SpecError
from .state_transition import apply_call, call_view, deliver_message, deploy
from .transport import Transport
from .types import (
    Call,
    ChainState,
    Configuration,
    ContractKind,
    DeliveryRecord,
    ExecutionState,
    LookupStorage,
    OutboundMessage,
    ReceiverStorage,
    RegistrarStorage,
    RouterStorage,
)

logger = logging.getLogger(__name__)

SIMULATOR_ADDRESS = blake3(b"ccns.simulator").digest()[:ADDRESS_SIZE]


class ChainSimulator:
    def __init__(self, settings: Optional[SimulatorSettings] = None):
        self.settings = settings or SimulatorSettings()
        self.chains: dict[int, ChainState] = {}
        self.transport = Transport()
        self.executions: dict[bytes, DeliveryRecord] = {}
        self._routers: dict[int, bytes] = {}
        self._configuration = self._bootstrap()

    # --- setup ---

    def _bootstrap(self) -> Configuration:
        selectors = [self.settings.source_chain_selector]
        if not self.settings.single_chain:
            selectors.append(self.settings.destination_chain_selector)

        for selector in selectors:
            state = ChainState(chain_selector=selector)
            router_storage = RouterStorage(
                supported_chains=list(selectors),
                fee_base=self.settings.fee_base,
                fee_per_byte=self.settings.fee_per_byte,
            )
            state, router = deploy(state, SIMULATOR_ADDRESS, ContractKind.ROUTER, router_storage)
            router_storage = state.contracts[router].storage
            router_storage.off_ramp = derive_contract_address(selector, router, 0)
            self.chains[selector] = state
            self._routers[selector] = router

        source = self.settings.source_chain_selector
        tokens = []
        for _ in range(4):
            # Token addresses only; token economics are out of scope.
            state = self.chains[source]
            nonce = state.nonces.get(SIMULATOR_ADDRESS, 0)
            tokens.append(derive_contract_address(source, SIMULATOR_ADDRESS, nonce))
            state.nonces[SIMULATOR_ADDRESS] = nonce + 1

        configuration = Configuration(
            chain_selector=self.settings.destination_chain_selector,
            source_router=self._routers[source],
            destination_router=self._routers[self.settings.destination_chain_selector],
            wrapped_native=tokens[0],
            link_token=tokens[1],
            ccip_bnm=tokens[2],
            ccip_lnm=tokens[3],
        )
        logger.info(
            "simulator ready: chains=%s auto_deliver=%s",
            sorted(self.chains), self.settings.delivers_on_commit,
        )
        return configuration

    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def source_chain_selector(self) -> int:
        return self.settings.source_chain_selector

    @property
    def destination_chain_selector(self) -> int:
        return self.settings.destination_chain_selector

    def chain(self, selector: Optional[int] = None) -> ChainState:
        selector = self.source_chain_selector if selector is None else selector
        state = self.chains.get(selector)
        if state is None:
            raise SpecError(ErrorCode.UNSUPPORTED_DESTINATION_CHAIN, f"unknown chain {selector}")
        return state

    def router_of(self, selector: int) -> bytes:
        self.chain(selector)
        return self._routers[selector]

    # --- deployment ---

    def _deploy(self, selector: Optional[int], deployer: bytes, kind: ContractKind, storage: Any) -> bytes:
        selector = self.source_chain_selector if selector is None else selector
        state, address = deploy(self.chain(selector), deployer, kind, storage)
        self.chains[selector] = state
        logger.debug("deployed %s at %s on %d", kind.value, address.hex(), selector)
        return address

    def deploy_lookup(self, deployer: bytes, chain_selector: Optional[int] = None) -> bytes:
        return self._deploy(chain_selector, deployer, ContractKind.LOOKUP, LookupStorage())

    def deploy_registrar(
        self,
        deployer: bytes,
        router: bytes,
        lookup: bytes,
        chain_selector: Optional[int] = None,
        policy: Optional[PropagationPolicy] = None,
    ) -> bytes:
        storage = RegistrarStorage(
            router=router, lookup=lookup, policy=policy or self.settings.policy
        )
        return self._deploy(chain_selector, deployer, ContractKind.REGISTRAR, storage)

    def deploy_receiver(
        self,
        deployer: bytes,
        router: bytes,
        lookup: bytes,
        source_chain_selector: int,
        chain_selector: Optional[int] = None,
    ) -> bytes:
        if chain_selector is None:
            chain_selector = self.destination_chain_selector
        storage = ReceiverStorage(
            router=router, lookup=lookup, source_chain_selector=source_chain_selector
        )
        return self._deploy(chain_selector, deployer, ContractKind.RECEIVER, storage)

    # --- calls ---

    def _chain_of(self, address: bytes, selector: Optional[int]) -> int:
        if selector is not None:
            return selector
        for candidate, state in self.chains.items():
            if address in state.contracts:
                return candidate
        return self.source_chain_selector

    def transact(
        self,
        sender: bytes,
        target: bytes,
        method: str,
        *args: Any,
        value: int = 0,
        chain_selector: Optional[int] = None,
    ) -> Any:
        """Send a transaction; raises the SpecError of a reverted call."""
        selector = self._chain_of(target, chain_selector)
        state, result = apply_call(
            self.chain(selector),
            Call(sender=sender, target=target, method=method, args=tuple(args), value=value),
        )
        if not result.ok:
            raise result.error
        self.chains[selector] = state
        self._flush_outbox(selector)
        if self.settings.delivers_on_commit:
            self.deliver_all()
        return result.value

    def call(self, target: bytes, method: str, *args: Any, chain_selector: Optional[int] = None) -> Any:
        selector = self._chain_of(target, chain_selector)
        return call_view(self.chain(selector), target, method, *args)

    def fund(self, address: bytes, amount: int, chain_selector: Optional[int] = None) -> None:
        """Faucet: credit native balance without a sender."""
        if amount < 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "amount negative")
        state = self.chain(self._chain_of(address, chain_selector))
        state.balances[address] = state.balances.get(address, 0) + amount

    def balance_of(self, address: bytes, chain_selector: Optional[int] = None) -> int:
        return self.chain(self._chain_of(address, chain_selector)).balances.get(address, 0)

    # --- delivery ---

    def _flush_outbox(self, selector: int) -> None:
        state = self.chains[selector]
        if not state.outbox:
            return
        accepted = self.transport.enqueue(state.outbox)
        logger.debug("chain %d: %d message(s) handed to transport", selector, accepted)
        state.outbox = []

    def pending_messages(self) -> list[OutboundMessage]:
        return self.transport.pending()

    def deliver_next(self) -> Optional[DeliveryRecord]:
        message = self.transport.pop_next()
        if message is None:
            return None

        selector = message.destination_chain_selector
        router = self._routers[selector]
        off_ramp = self.chains[selector].contracts[router].storage.off_ramp
        state, record = deliver_message(self.chains[selector], router, off_ramp, message)
        self.chains[selector] = state
        self.executions[message.message_id] = record

        if record.state == ExecutionState.SUCCESS:
            logger.info("delivered %s to %d", message.message_id.hex(), selector)
        else:
            logger.warning("message %s failed: %s", message.message_id.hex(), record.error)
        self._flush_outbox(selector)
        return record

    def deliver_all(self) -> list[DeliveryRecord]:
        records = []
        while len(self.transport):
            record = self.deliver_next()
            if record is not None:
                records.append(record)
        return records

    def delivery(self, message_id: bytes) -> DeliveryRecord:
        record = self.executions.get(message_id)
        if record is None:
            raise SpecError(ErrorCode.MESSAGE_NOT_FOUND, f"no delivery for {message_id.hex()}")
        return record

    def execution_state(self, message_id: bytes) -> Optional[ExecutionState]:
        record = self.executions.get(message_id)
        return record.state if record is not None else None
