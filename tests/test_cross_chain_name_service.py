"""End-to-end: register 'alice.ccns' and resolve it on both chains."""

from __future__ import annotations

from ccns_spec.config import DEFAULT_GAS_LIMIT, ZERO_ADDRESS
from ccns_spec.simulator import ChainSimulator
from ccns_spec.test_accounts import ALICE
from ccns_spec.types import ExecutionState

_SCENARIOS = "scenarios/cross_chain_name_service.json"


def _deploy_steps() -> list[dict]:
    return [
        {"op": "deploy_lookup", "as": "lookup_source", "from": "$alice"},
        {"op": "deploy_lookup", "as": "lookup_destination", "from": "$alice", "chain": "destination"},
        {
            "op": "deploy_registrar",
            "as": "register",
            "from": "$alice",
            "router": "$source_router",
            "lookup": "$lookup_source",
        },
        {
            "op": "deploy_receiver",
            "as": "receiver",
            "from": "$alice",
            "router": "$destination_router",
            "lookup": "$lookup_destination",
            "source_chain_selector": "$source_chain_selector",
        },
    ]


def _wiring_steps() -> list[dict]:
    return [
        {"op": "transact", "from": "$alice", "to": "$lookup_source",
         "method": "set_authorized_caller", "args": ["$register"]},
        {"op": "transact", "from": "$alice", "to": "$lookup_destination",
         "method": "set_authorized_caller", "args": ["$receiver"]},
        {"op": "transact", "from": "$alice", "to": "$receiver",
         "method": "set_trusted_sender", "args": ["$register"]},
        {"op": "transact", "from": "$alice", "to": "$register",
         "method": "enable_chain", "args": ["$chain_selector", "$receiver", DEFAULT_GAS_LIMIT]},
    ]


_QUERIES = [
    {"registry": "$lookup_source", "name": "alice.ccns"},
    {"registry": "$lookup_destination", "name": "alice.ccns"},
]


def test_register_and_lookup_across_chains() -> None:
    sim = ChainSimulator()
    config = sim.configuration()

    lookup_source = sim.deploy_lookup(ALICE)
    lookup_destination = sim.deploy_lookup(ALICE)
    register = sim.deploy_registrar(ALICE, config.source_router, lookup_source)
    receiver = sim.deploy_receiver(
        ALICE, config.destination_router, lookup_destination, config.chain_selector
    )

    # 1. Source lookup trusts the registrar.
    sim.transact(ALICE, lookup_source, "set_authorized_caller", register)
    # 2. Destination lookup trusts the receiver.
    sim.transact(ALICE, lookup_destination, "set_authorized_caller", receiver)
    # 3. Receiver trusts the registrar.
    sim.transact(ALICE, receiver, "set_trusted_sender", register)
    # 4. Enable the destination chain.
    sim.transact(ALICE, register, "enable_chain", config.chain_selector, receiver, DEFAULT_GAS_LIMIT)

    # 5. Register.
    (message_id,) = sim.transact(ALICE, register, "register", "alice.ccns")

    assert sim.execution_state(message_id) == ExecutionState.SUCCESS
    assert sim.call(lookup_source, "lookup", "alice.ccns") == ALICE
    assert sim.call(lookup_destination, "lookup", "alice.ccns") == ALICE
    assert sim.call(lookup_destination, "lookup", "bob.ccns") == ZERO_ADDRESS


def test_scenario_single_chain(scenario_test_group) -> None:
    scenario = {
        "description": "CCIPLocalSimulator flow: one chain, auto delivery",
        "steps": _deploy_steps() + _wiring_steps() + [
            {"op": "transact", "from": "$alice", "to": "$register",
             "method": "register", "args": ["alice.ccns"]},
        ],
        "queries": _QUERIES,
    }
    result = scenario_test_group(_SCENARIOS, "alice_ccns_single_chain", scenario)

    assert result["success"]
    assert [q["owner"] for q in result["lookups"]] == [ALICE.hex(), ALICE.hex()]
    assert [d["state"] for d in result["deliveries"]] == ["success"]
    assert result["pending"] == 0


def test_scenario_two_chains_explicit_delivery(scenario_test_group) -> None:
    scenario = {
        "description": "Distinct source and destination chains, delivery driven by the test",
        "settings": {
            "destination_chain_selector": 14_767_482_510_784_806_043,
            "auto_deliver": False,
        },
        "steps": _deploy_steps() + _wiring_steps() + [
            {"op": "transact", "from": "$alice", "to": "$register",
             "method": "register", "args": ["alice.ccns"]},
        ],
        "queries": _QUERIES,
    }
    result = scenario_test_group(_SCENARIOS, "alice_ccns_two_chains_pending", scenario)
    assert result["success"]
    assert result["pending"] == 1
    assert result["lookups"][1]["owner"] == ZERO_ADDRESS.hex()

    scenario = dict(scenario, steps=scenario["steps"] + [{"op": "deliver_all"}])
    result = scenario_test_group(_SCENARIOS, "alice_ccns_two_chains_delivered", scenario)
    assert result["success"]
    assert result["pending"] == 0
    assert [q["owner"] for q in result["lookups"]] == [ALICE.hex(), ALICE.hex()]
    assert len(result["post_state"]["chains"]) == 2


def test_scenario_untrusted_sender(scenario_test_group) -> None:
    wiring = [s for s in _wiring_steps() if s.get("method") != "set_trusted_sender"]
    scenario = {
        "description": "Receiver never told which registrar to trust",
        "steps": _deploy_steps() + wiring + [
            {"op": "transact", "from": "$bob", "to": "$register",
             "method": "register", "args": ["bob.ccns"]},
        ],
        "queries": [
            {"registry": "$lookup_source", "name": "bob.ccns"},
            {"registry": "$lookup_destination", "name": "bob.ccns"},
        ],
    }
    result = scenario_test_group(_SCENARIOS, "untrusted_sender", scenario)

    # The call itself commits; only the delivery fails.
    assert result["success"]
    assert result["deliveries"][0]["error"] == "UNTRUSTED_SENDER"
    assert result["lookups"][1]["owner"] == ZERO_ADDRESS.hex()


def test_scenario_register_without_route(scenario_test_group) -> None:
    wiring = [s for s in _wiring_steps() if s.get("method") != "enable_chain"]
    scenario = {
        "description": "Strict policy rejects register when no chain is enabled",
        "steps": _deploy_steps() + wiring + [
            {"op": "transact", "from": "$alice", "to": "$register",
             "method": "register", "args": ["alice.ccns"]},
        ],
        "queries": _QUERIES,
    }
    result = scenario_test_group(_SCENARIOS, "register_without_route", scenario)

    assert not result["success"]
    assert result["steps"][-1]["error"] == "CHAIN_NOT_ENABLED"
    assert [q["owner"] for q in result["lookups"]] == [ZERO_ADDRESS.hex()] * 2


def test_scenario_unauthorized_write(scenario_test_group) -> None:
    scenario = {
        "description": "Only the bound name service may write",
        "steps": _deploy_steps() + _wiring_steps() + [
            {"op": "transact", "from": "$eve", "to": "$lookup_source",
             "method": "write", "args": ["alice.ccns", "$eve"]},
        ],
        "queries": _QUERIES[:1],
    }
    result = scenario_test_group(_SCENARIOS, "unauthorized_write", scenario)

    assert not result["success"]
    assert result["steps"][-1]["error"] == "UNAUTHORIZED"
    assert result["lookups"][0]["owner"] == ZERO_ADDRESS.hex()
