"""Declarative scenarios over a `ChainSimulator`.

A scenario is plain JSON/YAML data, so the same case can be run by this
model, stored as a fixture, and replayed against another implementation:

    settings: {auto_deliver: true}
    steps:
      - {op: deploy_lookup, as: lookup_source, from: $alice}
      - {op: transact, from: $alice, to: $lookup_source,
         method: set_authorized_caller, args: [$register]}
      - {op: deliver_all}
    queries:
      - {registry: $lookup_source, name: alice.ccns}

Strings starting with `$` name a label: a test account (`$alice`), a
configuration field (`$chain_selector`, `$destination_router`, ...) or the
`as` of an earlier deploy step. Strings starting with `0x` are raw bytes.
Everything else is passed through unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Optional

from .codec_adapter import chain_state_to_json
from .config import PropagationPolicy, SimulatorSettings
from .errors import ErrorCode, SpecError
from .simulator import ChainSimulator
from .state_digest import compute_state_digest
from .test_accounts import ACCOUNTS

logger = logging.getLogger(__name__)

_OPS = frozenset({
    "deploy_lookup",
    "deploy_registrar",
    "deploy_receiver",
    "transact",
    "fund",
    "deliver_next",
    "deliver_all",
})


class ScenarioRunner:
    def __init__(self, scenario: dict[str, Any]):
        self.scenario = scenario
        self.sim = ChainSimulator(SimulatorSettings.from_dict(scenario.get("settings", {})))
        self.labels: dict[str, Any] = {name.lower(): addr for name, addr in ACCOUNTS.items()}
        self.labels.update(asdict(self.sim.configuration()))
        self.labels["source_chain_selector"] = self.sim.source_chain_selector
        self.labels["destination_chain_selector"] = self.sim.destination_chain_selector

    def resolve(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self.resolve(v) for v in value]
        if not isinstance(value, str):
            return value
        if value.startswith("$"):
            key = value[1:]
            if key not in self.labels:
                raise SpecError(ErrorCode.INVALID_FORMAT, f"unknown label {value}")
            return self.labels[key]
        if value.startswith("0x"):
            return bytes.fromhex(value[2:])
        return value

    def _chain(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        if value == "source":
            return self.sim.source_chain_selector
        if value == "destination":
            return self.sim.destination_chain_selector
        return int(self.resolve(value))

    def _run_step(self, step: dict[str, Any]) -> Any:
        op = step.get("op")
        if op not in _OPS:
            raise SpecError(ErrorCode.INVALID_FORMAT, f"unknown scenario op {op!r}")
        chain = self._chain(step.get("chain"))

        if op == "deploy_lookup":
            address = self.sim.deploy_lookup(self.resolve(step["from"]), chain)
        elif op == "deploy_registrar":
            policy = step.get("policy")
            address = self.sim.deploy_registrar(
                self.resolve(step["from"]),
                self.resolve(step["router"]),
                self.resolve(step["lookup"]),
                chain,
                PropagationPolicy(policy) if policy else None,
            )
        elif op == "deploy_receiver":
            address = self.sim.deploy_receiver(
                self.resolve(step["from"]),
                self.resolve(step["router"]),
                self.resolve(step["lookup"]),
                int(self.resolve(step["source_chain_selector"])),
                chain,
            )
        elif op == "transact":
            return self.sim.transact(
                self.resolve(step["from"]),
                self.resolve(step["to"]),
                step.get("method", ""),
                *self.resolve(step.get("args", [])),
                value=int(step.get("value", 0)),
                chain_selector=chain,
            )
        elif op == "fund":
            self.sim.fund(self.resolve(step["to"]), int(step["amount"]), chain)
            return None
        elif op == "deliver_next":
            return self.sim.deliver_next()
        else:
            return self.sim.deliver_all()

        if "as" in step:
            self.labels[step["as"]] = address
        return address

    def run(self) -> dict[str, Any]:
        step_results: list[dict[str, Any]] = []
        first_error = 0
        for step in self.scenario.get("steps", []):
            try:
                self._run_step(step)
                step_results.append({"op": step.get("op"), "ok": True, "error": None})
            except SpecError as exc:
                logger.debug("scenario step %s failed: %s", step.get("op"), exc)
                step_results.append({"op": step.get("op"), "ok": False, "error": exc.code.name})
                if not first_error:
                    first_error = int(exc.code)

        lookups = []
        for q in self.scenario.get("queries", []):
            entry = {"registry": q["registry"], "name": q["name"]}
            try:
                owner = self.sim.call(self.resolve(q["registry"]), "lookup", q["name"])
            except SpecError as exc:
                logger.debug("scenario query %s failed: %s", q["registry"], exc)
                entry.update(owner=None, error=exc.code.name)
            else:
                entry["owner"] = owner.hex()
            lookups.append(entry)

        post_state = {
            "chains": [
                chain_state_to_json(self.sim.chains[s]) for s in sorted(self.sim.chains)
            ]
        }
        return {
            "success": first_error == 0,
            "error_code": first_error,
            "steps": step_results,
            "deliveries": [
                {
                    "message_id": r.message_id.hex(),
                    "state": r.state.value,
                    "error": r.error.code.name if r.error else None,
                }
                for r in self.sim.executions.values()
            ],
            "pending": len(self.sim.pending_messages()),
            "lookups": lookups,
            "post_state": post_state,
            "state_digest": compute_state_digest(post_state),
        }


def run_scenario(scenario: dict[str, Any]) -> dict[str, Any]:
    return ScenarioRunner(scenario).run()
