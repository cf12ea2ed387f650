"""Registrar specs (enable_chain, disable_chain, register, withdraw)."""

from __future__ import annotations

import pytest

from ccns_spec.config import (
    CHAIN_SELECTOR_FUJI,
    DEFAULT_GAS_LIMIT,
    MAX_GAS_LIMIT,
    ZERO_ADDRESS,
    PropagationPolicy,
    SimulatorSettings,
)
from ccns_spec.errors import ErrorCode, SpecError
from ccns_spec.test_accounts import ALICE, BOB, CAROL, EVE
from ccns_spec.types import ChainRoute, ExecutionState

_NAME = "alice.ccns"


def _reverts(code: ErrorCode, fn, *args, **kwargs) -> None:
    with pytest.raises(SpecError) as excinfo:
        fn(*args, **kwargs)
    assert excinfo.value.code == code


def test_enable_chain(deployment) -> None:
    d = deployment()
    selector = d.sim.configuration().chain_selector
    assert d.sim.call(d.registrar, "route", selector) == ChainRoute(d.receiver, DEFAULT_GAS_LIMIT)
    assert list(d.sim.call(d.registrar, "routes")) == [selector]


def test_enable_chain_again_updates_route(deployment) -> None:
    d = deployment()
    selector = d.sim.configuration().chain_selector
    d.sim.transact(ALICE, d.registrar, "enable_chain", selector, d.receiver, 500_000)
    routes = d.sim.call(d.registrar, "routes")
    assert len(routes) == 1
    assert routes[selector].gas_limit == 500_000


def test_enable_chain_not_owner(deployment) -> None:
    d = deployment(enable=False)
    _reverts(
        ErrorCode.NOT_OWNER,
        d.sim.transact, EVE, d.registrar, "enable_chain", CHAIN_SELECTOR_FUJI, EVE, DEFAULT_GAS_LIMIT,
    )
    assert d.sim.call(d.registrar, "routes") == {}


@pytest.mark.parametrize("gas_limit", [0, MAX_GAS_LIMIT + 1, True])
def test_enable_chain_gas_limit_bounds(deployment, gas_limit: int) -> None:
    d = deployment(enable=False)
    selector = d.sim.configuration().chain_selector
    _reverts(
        ErrorCode.INVALID_GAS_LIMIT,
        d.sim.transact, ALICE, d.registrar, "enable_chain", selector, d.receiver, gas_limit,
    )


def test_enable_chain_zero_receiver(deployment) -> None:
    d = deployment(enable=False)
    selector = d.sim.configuration().chain_selector
    _reverts(
        ErrorCode.INVALID_ADDRESS,
        d.sim.transact, ALICE, d.registrar, "enable_chain", selector, ZERO_ADDRESS, DEFAULT_GAS_LIMIT,
    )


@pytest.mark.parametrize("selector", [0, 1 << 64, True, "1"])
def test_enable_chain_invalid_selector(deployment, selector) -> None:
    d = deployment(enable=False)
    _reverts(
        ErrorCode.INVALID_PAYLOAD,
        d.sim.transact, ALICE, d.registrar, "enable_chain", selector, d.receiver, DEFAULT_GAS_LIMIT,
    )
    assert d.sim.call(d.registrar, "routes") == {}


def test_disable_chain(deployment) -> None:
    d = deployment()
    selector = d.sim.configuration().chain_selector
    d.sim.transact(ALICE, d.registrar, "disable_chain", selector)
    assert d.sim.call(d.registrar, "route", selector) is None

    _reverts(ErrorCode.CHAIN_NOT_ENABLED, d.sim.transact, ALICE, d.registrar, "disable_chain", selector)


def test_disable_chain_not_owner(deployment) -> None:
    d = deployment()
    selector = d.sim.configuration().chain_selector
    _reverts(ErrorCode.NOT_OWNER, d.sim.transact, EVE, d.registrar, "disable_chain", selector)


def test_register_writes_both_lookups(deployment) -> None:
    d = deployment()
    message_ids = d.sim.transact(BOB, d.registrar, "register", _NAME)

    assert len(message_ids) == 1
    assert d.sim.execution_state(message_ids[0]) == ExecutionState.SUCCESS
    assert d.sim.call(d.lookup_source, "lookup", _NAME) == BOB
    assert d.sim.call(d.lookup_destination, "lookup", _NAME) == BOB


def test_register_strict_without_routes(deployment) -> None:
    d = deployment(enable=False)
    _reverts(ErrorCode.CHAIN_NOT_ENABLED, d.sim.transact, BOB, d.registrar, "register", _NAME)
    assert d.sim.call(d.lookup_source, "lookup", _NAME) == ZERO_ADDRESS
    assert d.sim.pending_messages() == []


def test_register_best_effort_without_routes(deployment) -> None:
    d = deployment(policy=PropagationPolicy.BEST_EFFORT, enable=False)
    message_ids = d.sim.transact(BOB, d.registrar, "register", _NAME)

    assert message_ids == []
    assert d.sim.call(d.lookup_source, "lookup", _NAME) == BOB
    assert d.sim.call(d.lookup_destination, "lookup", _NAME) == ZERO_ADDRESS


def test_register_invalid_name(deployment) -> None:
    d = deployment()
    _reverts(ErrorCode.INVALID_NAME, d.sim.transact, BOB, d.registrar, "register", "")
    _reverts(ErrorCode.INVALID_NAME, d.sim.transact, BOB, d.registrar, "register", "x" * 256)


def test_register_not_payable(deployment) -> None:
    d = deployment()
    d.sim.fund(BOB, 10)
    _reverts(ErrorCode.INVALID_PAYLOAD, d.sim.transact, BOB, d.registrar, "register", _NAME, value=10)
    assert d.sim.balance_of(BOB) == 10


def test_register_fee_paid_from_registrar(deployment) -> None:
    d = deployment(SimulatorSettings(fee_base=1_000, fee_per_byte=2))
    router = d.sim.configuration().source_router
    quoted = 1_000 + 2 * 128  # abi.encode("alice.ccns", owner) is four words

    d.sim.fund(CAROL, 5_000)
    d.sim.transact(CAROL, d.registrar, "", value=5_000)
    assert d.sim.balance_of(d.registrar) == 5_000

    d.sim.transact(BOB, d.registrar, "register", _NAME)
    assert d.sim.balance_of(d.registrar) == 5_000 - quoted
    assert d.sim.balance_of(router) == quoted
    assert d.sim.call(d.lookup_destination, "lookup", _NAME) == BOB


def test_register_insufficient_fee_rolls_back(deployment) -> None:
    d = deployment(SimulatorSettings(fee_base=1_000))
    d.sim.fund(d.registrar, 999)

    _reverts(ErrorCode.INSUFFICIENT_FEE, d.sim.transact, BOB, d.registrar, "register", _NAME)
    # The local write happened first but is discarded with the failed send.
    assert d.sim.call(d.lookup_source, "lookup", _NAME) == ZERO_ADDRESS
    assert d.sim.balance_of(d.registrar) == 999
    assert d.sim.pending_messages() == []


def test_register_second_route_unsupported_rolls_back(deployment) -> None:
    d = deployment(SimulatorSettings(auto_deliver=False))
    d.sim.transact(ALICE, d.registrar, "enable_chain", CHAIN_SELECTOR_FUJI, d.receiver, DEFAULT_GAS_LIMIT)

    _reverts(
        ErrorCode.UNSUPPORTED_DESTINATION_CHAIN,
        d.sim.transact, BOB, d.registrar, "register", _NAME,
    )
    assert d.sim.pending_messages() == []
    assert d.sim.call(d.lookup_source, "lookup", _NAME) == ZERO_ADDRESS


def test_withdraw(deployment) -> None:
    d = deployment()
    d.sim.fund(d.registrar, 750)

    amount = d.sim.transact(ALICE, d.registrar, "withdraw", CAROL)
    assert amount == 750
    assert d.sim.balance_of(d.registrar) == 0
    assert d.sim.balance_of(CAROL) == 750


def test_withdraw_nothing(deployment) -> None:
    d = deployment()
    _reverts(ErrorCode.NOTHING_TO_WITHDRAW, d.sim.transact, ALICE, d.registrar, "withdraw", CAROL)


def test_withdraw_not_owner(deployment) -> None:
    d = deployment()
    d.sim.fund(d.registrar, 750)
    _reverts(ErrorCode.NOT_OWNER, d.sim.transact, EVE, d.registrar, "withdraw", EVE)
    assert d.sim.balance_of(d.registrar) == 750


def test_funding_without_balance(deployment) -> None:
    d = deployment()
    _reverts(ErrorCode.INSUFFICIENT_BALANCE, d.sim.transact, CAROL, d.registrar, "", value=1)


def test_registrar_views(deployment) -> None:
    d = deployment()
    config = d.sim.configuration()
    assert d.sim.call(d.registrar, "router") == config.source_router
    assert d.sim.call(d.registrar, "lookup") == d.lookup_source
