#!/usr/bin/env python3
"""
Run the conformance harness locally against the Python model.

Starts tools/serve_model.py as the reference client, optionally points the
harness at a second implementation, and replays every vector suite.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import subprocess
import sys
from pathlib import Path

import aiohttp

ROOT = Path(__file__).resolve().parent.parent


def _abs_path(path: str) -> str:
    return str(Path(path).expanduser().resolve())


async def _wait_healthy(endpoint: str, timeout: float) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=1)) as session:
        while loop.time() < deadline:
            try:
                async with session.get(f"{endpoint}/health") as resp:
                    if resp.status == 200:
                        return True
            except (aiohttp.ClientError, asyncio.TimeoutError):
                pass
            await asyncio.sleep(0.2)
    return False


def main() -> None:
    parser = argparse.ArgumentParser(description="Run CCNS conformance tests")
    parser.add_argument(
        "--vectors",
        default=str(ROOT / "vectors"),
        help="Path to vectors directory (default: ./vectors)",
    )
    parser.add_argument(
        "--results",
        default=str(ROOT / "conformance" / "results"),
        help="Path to results directory (default: ./conformance/results)",
    )
    parser.add_argument("--port", type=int, default=8081, help="Port for the model server")
    parser.add_argument(
        "--sol-endpoint",
        default=None,
        help="Endpoint of a second implementation to compare against",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Regenerate vectors from fixtures/ before running",
    )
    args = parser.parse_args()

    if args.refresh:
        subprocess.check_call(
            [sys.executable, str(ROOT / "tools" / "fixtures_to_vectors.py"), "--vectors", args.vectors]
        )

    endpoint = f"http://127.0.0.1:{args.port}"
    server = subprocess.Popen(
        [sys.executable, str(ROOT / "tools" / "serve_model.py"), "--host", "127.0.0.1", "--port", str(args.port)]
    )
    try:
        if not asyncio.run(_wait_healthy(endpoint, timeout=15.0)):
            raise SystemExit(f"model server at {endpoint} did not become healthy")

        env = os.environ.copy()
        env["VECTOR_DIR"] = _abs_path(args.vectors)
        env["RESULT_DIR"] = _abs_path(args.results)
        env["PY_ENDPOINT"] = endpoint
        if args.sol_endpoint:
            env["SOL_ENDPOINT"] = args.sol_endpoint
        else:
            env["SOL_ENABLED"] = "false"

        print("Running conformance harness against", endpoint)
        code = subprocess.call(
            [sys.executable, "runner.py"],
            cwd=str(ROOT / "conformance" / "harness"),
            env=env,
        )
    finally:
        server.terminate()
        server.wait(timeout=10)

    raise SystemExit(code)


if __name__ == "__main__":
    main()
