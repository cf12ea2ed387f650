"""Consume fixtures and validate against Python specs."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from ccns_spec.encoding import decode_name_payload, encode_name_payload  # noqa: E402
from ccns_spec.errors import SpecError  # noqa: E402
from ccns_spec.scenario import run_scenario  # noqa: E402
from ccns_spec.state_digest import compute_state_digest  # noqa: E402
from fixtures_io import load_cases  # noqa: E402


def _check_scenario_cases(path: Path) -> list[str]:
    failures: list[str] = []

    for case in load_cases(path):
        result = run_scenario(case["scenario"])
        expected = case["expected"]

        if result["success"] != expected["ok"]:
            failures.append(f"{case['name']}: ok_mismatch")
            continue

        if [s["error"] for s in result["steps"]] != [s["error"] for s in expected["steps"]]:
            failures.append(f"{case['name']}: error_mismatch")
            continue

        if result["lookups"] != expected["lookups"]:
            failures.append(f"{case['name']}: lookup_mismatch")
            continue

        if result["state_digest"] != compute_state_digest(expected["post_state"]):
            failures.append(f"{case['name']}: state_digest_mismatch")

    return failures


def _check_payload_vectors(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())
    for vec in data.get("test_vectors", []):
        inp, exp = vec["input"], vec["expected"]
        if "name" in inp:
            encoded = encode_name_payload(inp["name"], bytes.fromhex(inp["owner"])).hex()
            if encoded != exp["payload_hex"]:
                failures.append(f"{vec['name']}: encode_mismatch")
            continue
        try:
            decode_name_payload(bytes.fromhex(inp["payload_hex"]))
            actual = None
        except SpecError as exc:
            actual = exc.code.name
        if actual != exp.get("error"):
            failures.append(f"{vec['name']}: decode_mismatch")
    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []

    for path in sorted((fixtures / "scenarios").rglob("*.json")):
        failures.extend(_check_scenario_cases(path))

    payload = fixtures / "encoding" / "name_payload.json"
    if payload.exists():
        failures.extend(_check_payload_vectors(payload))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
