"""Helpers to read/write CCNS fixture files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def scenario_case(name: str, scenario: dict[str, Any], result: dict[str, Any]) -> dict[str, Any]:
    """Build a fixture case from a scenario and the model's result for it."""
    return {
        "name": name,
        "description": scenario.get("description", ""),
        "scenario": {k: v for k, v in scenario.items() if k != "description"},
        "expected": {
            "ok": result["success"],
            "error": next((s["error"] for s in result["steps"] if not s["ok"]), None),
            "steps": result["steps"],
            "deliveries": result["deliveries"],
            "pending": result["pending"],
            "lookups": result["lookups"],
            "post_state": result["post_state"],
        },
    }


def write_cases(out: Path, rel_path: str, cases: list[dict[str, Any]]) -> Path:
    target = out / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps({"cases": cases}, indent=2))
    return target


def write_vectors(out: Path, rel_path: str, vectors: list[dict[str, Any]]) -> Path:
    target = out / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps({"test_vectors": vectors}, indent=2))
    return target


def load_cases(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text())
    return data.get("cases", [])

