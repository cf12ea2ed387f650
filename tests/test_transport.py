"""Transport ordering, at-most-once delivery and two-chain simulation."""

from __future__ import annotations

from ccns_spec.config import (
    CHAIN_SELECTOR_FUJI,
    CHAIN_SELECTOR_LOCAL,
    ZERO_ADDRESS,
    SimulatorSettings,
)
from ccns_spec.test_accounts import ALICE, BOB, CAROL, DAVE
from ccns_spec.transport import Transport, lane_of
from ccns_spec.types import ExecutionState, OutboundMessage

_NAME = "alice.ccns"


def _outbound(message_id: int, sender: bytes = DAVE, sequence_number: int = 1) -> OutboundMessage:
    return OutboundMessage(
        message_id=bytes([message_id]) * 32,
        source_chain_selector=CHAIN_SELECTOR_LOCAL,
        destination_chain_selector=CHAIN_SELECTOR_FUJI,
        sequence_number=sequence_number,
        sender=sender,
        receiver=BOB,
        data=b"",
        gas_limit=200_000,
    )


def test_transport_fifo() -> None:
    transport = Transport()
    assert transport.pop_next() is None

    accepted = transport.enqueue([_outbound(1), _outbound(2, sequence_number=2)])
    assert accepted == 2
    assert len(transport) == 2
    assert transport.pop_next().message_id == bytes([1]) * 32
    assert transport.pop_next().message_id == bytes([2]) * 32
    assert transport.pop_next() is None


def test_transport_at_most_once() -> None:
    transport = Transport()
    transport.enqueue([_outbound(1)])
    transport.pop_next()

    # Already handed out once; never queued again.
    assert transport.enqueue([_outbound(1)]) == 0
    assert len(transport) == 0


def test_transport_pending_by_lane() -> None:
    transport = Transport()
    transport.enqueue([_outbound(1, DAVE), _outbound(2, CAROL), _outbound(3, DAVE, 2)])

    lane = lane_of(_outbound(9, DAVE))
    assert [m.sequence_number for m in transport.pending(lane)] == [1, 2]
    assert len(transport.pending()) == 3


def test_explicit_delivery(deployment) -> None:
    d = deployment(SimulatorSettings(auto_deliver=False))
    sim = d.sim

    (message_id,) = sim.transact(BOB, d.registrar, "register", _NAME)

    # The source write is visible before the message arrives.
    assert sim.call(d.lookup_source, "lookup", _NAME) == BOB
    assert sim.call(d.lookup_destination, "lookup", _NAME) == ZERO_ADDRESS
    assert [m.message_id for m in sim.pending_messages()] == [message_id]
    assert sim.execution_state(message_id) is None

    record = sim.deliver_next()
    assert record.state == ExecutionState.SUCCESS
    assert sim.call(d.lookup_destination, "lookup", _NAME) == BOB
    assert sim.deliver_next() is None


def test_delivery_order_follows_send_order(deployment) -> None:
    d = deployment(SimulatorSettings(auto_deliver=False))
    sim = d.sim

    sim.transact(BOB, d.registrar, "register", _NAME)
    sim.transact(CAROL, d.registrar, "register", _NAME)
    assert sim.call(d.lookup_source, "lookup", _NAME) == CAROL

    sim.deliver_next()
    assert sim.call(d.lookup_destination, "lookup", _NAME) == BOB
    sim.deliver_next()
    assert sim.call(d.lookup_destination, "lookup", _NAME) == CAROL


def test_deliver_all(deployment) -> None:
    d = deployment(SimulatorSettings(auto_deliver=False))
    sim = d.sim
    for name in ("a.ccns", "b.ccns", "c.ccns"):
        sim.transact(BOB, d.registrar, "register", name)

    records = sim.deliver_all()
    assert [r.state for r in records] == [ExecutionState.SUCCESS] * 3
    assert sim.pending_messages() == []
    assert sim.call(d.lookup_destination, "lookup", "b.ccns") == BOB


def test_two_chains(deployment) -> None:
    settings = SimulatorSettings(
        source_chain_selector=CHAIN_SELECTOR_LOCAL,
        destination_chain_selector=CHAIN_SELECTOR_FUJI,
        auto_deliver=False,
    )
    d = deployment(settings)
    sim = d.sim
    config = sim.configuration()

    assert config.chain_selector == CHAIN_SELECTOR_FUJI
    assert config.source_router != config.destination_router
    assert sorted(sim.chains) == sorted([CHAIN_SELECTOR_LOCAL, CHAIN_SELECTOR_FUJI])
    assert d.receiver in sim.chain(CHAIN_SELECTOR_FUJI).contracts
    assert d.registrar in sim.chain(CHAIN_SELECTOR_LOCAL).contracts

    (message_id,) = sim.transact(ALICE, d.registrar, "register", _NAME)
    (pending,) = sim.pending_messages()
    assert pending.destination_chain_selector == CHAIN_SELECTOR_FUJI
    assert pending.source_chain_selector == CHAIN_SELECTOR_LOCAL

    sim.deliver_all()
    assert sim.execution_state(message_id) == ExecutionState.SUCCESS
    assert sim.call(d.lookup_source, "lookup", _NAME) == ALICE
    assert sim.call(d.lookup_destination, "lookup", _NAME) == ALICE
    assert d.lookup_destination not in sim.chain(CHAIN_SELECTOR_LOCAL).contracts


def test_two_chains_deliver_explicitly_by_default(deployment) -> None:
    d = deployment(SimulatorSettings(destination_chain_selector=CHAIN_SELECTOR_FUJI))
    sim = d.sim

    (message_id,) = sim.transact(ALICE, d.registrar, "register", _NAME)
    assert len(sim.pending_messages()) == 1
    assert sim.execution_state(message_id) is None
    assert sim.call(d.lookup_destination, "lookup", _NAME) == ZERO_ADDRESS

    sim.deliver_next()
    assert sim.call(d.lookup_destination, "lookup", _NAME) == ALICE


def test_two_chains_auto_deliver_opt_in(deployment) -> None:
    d = deployment(SimulatorSettings(destination_chain_selector=CHAIN_SELECTOR_FUJI, auto_deliver=True))
    d.sim.transact(ALICE, d.registrar, "register", _NAME)
    assert d.sim.pending_messages() == []
    assert d.sim.call(d.lookup_destination, "lookup", _NAME) == ALICE


def test_transport_remembers_delivered_ids() -> None:
    transport = Transport()
    for n in range(1, 6):
        transport.enqueue([_outbound(n, sequence_number=n)])
        transport.pop_next()

    assert transport.enqueue([_outbound(n, sequence_number=n) for n in range(1, 6)]) == 0
    assert transport.enqueue([_outbound(6, sequence_number=6)]) == 1
