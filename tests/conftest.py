"""Pytest hooks to generate fixtures (EEST-style)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from ccns_spec.config import DEFAULT_GAS_LIMIT, PropagationPolicy, SimulatorSettings
from ccns_spec.scenario import run_scenario
from ccns_spec.simulator import ChainSimulator
from ccns_spec.test_accounts import ALICE
from tools.fixtures_io import scenario_case, write_cases, write_vectors

_SCENARIO_CASES: dict[str, list[dict[str, Any]]] = {}
_VECTOR_CASES: dict[str, list[dict[str, Any]]] = {}
_ACCOUNTS: list[dict[str, str]] = []


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


def pytest_configure(config: pytest.Config) -> None:
    logging.getLogger("ccns_spec").setLevel(logging.DEBUG)


@pytest.fixture
def scenario_test_group() -> Callable[[str, str, dict[str, Any]], dict[str, Any]]:
    """Run a scenario, collect it under a fixture path and return its result."""

    def _scenario_test_group(rel_path: str, name: str, scenario: dict[str, Any]) -> dict[str, Any]:
        result = run_scenario(scenario)
        _SCENARIO_CASES.setdefault(rel_path, []).append(scenario_case(name, scenario, result))
        return result

    return _scenario_test_group


@pytest.fixture
def vector_test_group() -> Callable[[str, dict[str, Any]], None]:
    """Collect pre-built test_vectors under a specific fixture path."""

    def _vector_test_group(rel_path: str, vector: dict[str, Any]) -> None:
        _VECTOR_CASES.setdefault(rel_path, []).append(vector)

    return _vector_test_group


@pytest.fixture
def accounts_collector() -> Callable[[list[dict[str, str]]], None]:
    def _collect(accounts: list[dict[str, str]]) -> None:
        _ACCOUNTS[:] = accounts

    return _collect


@dataclass
class Deployment:
    sim: ChainSimulator
    lookup_source: bytes
    lookup_destination: bytes
    registrar: bytes
    receiver: bytes


def wire_name_service(
    sim: ChainSimulator,
    owner: bytes = ALICE,
    policy: Optional[PropagationPolicy] = None,
    enable: bool = True,
    trust: bool = True,
) -> Deployment:
    """Deploy and connect lookup/registrar/receiver the way the e2e flow does."""
    config = sim.configuration()
    lookup_source = sim.deploy_lookup(owner)
    lookup_destination = sim.deploy_lookup(owner, sim.destination_chain_selector)
    registrar = sim.deploy_registrar(owner, config.source_router, lookup_source, policy=policy)
    receiver = sim.deploy_receiver(
        owner, config.destination_router, lookup_destination, sim.source_chain_selector
    )

    sim.transact(owner, lookup_source, "set_authorized_caller", registrar)
    sim.transact(owner, lookup_destination, "set_authorized_caller", receiver)
    if trust:
        sim.transact(owner, receiver, "set_trusted_sender", registrar)
    if enable:
        sim.transact(owner, registrar, "enable_chain", config.chain_selector, receiver, DEFAULT_GAS_LIMIT)
    return Deployment(sim, lookup_source, lookup_destination, registrar, receiver)


@pytest.fixture
def deployment() -> Callable[..., Deployment]:
    def _deployment(settings: Optional[SimulatorSettings] = None, **kwargs: Any) -> Deployment:
        return wire_name_service(ChainSimulator(settings), **kwargs)

    return _deployment


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _SCENARIO_CASES.items():
        if cases:
            write_cases(out, rel_path, cases)

    for rel_path, vectors in _VECTOR_CASES.items():
        if vectors:
            write_vectors(out, rel_path, vectors)

    if _ACCOUNTS:
        (out / "accounts.json").write_text(json.dumps({"accounts": _ACCOUNTS}, indent=2))
