#!/usr/bin/env python3
"""Serve the Python spec as a conformance client.

Endpoints:
    GET  /health            -> {"success": true}
    POST /scenario/execute  -> run_scenario(body["scenario"]) result
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from aiohttp import web

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from ccns_spec.errors import SpecError  # noqa: E402
from ccns_spec.scenario import run_scenario  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"success": True})


async def execute_scenario(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"success": False, "error": "invalid json"}, status=400)

    scenario = body.get("scenario") if isinstance(body, dict) else None
    if not isinstance(scenario, dict):
        return web.json_response({"success": False, "error": "missing scenario"}, status=400)

    try:
        result = run_scenario(scenario)
    except (KeyError, TypeError, ValueError, SpecError) as e:
        logger.error(f"Malformed scenario: {e}")
        return web.json_response({"success": False, "error": f"malformed scenario: {e}"}, status=400)

    # Full post_state is only needed for fixtures; clients compare digests.
    result.pop("post_state", None)
    return web.json_response(result)


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", health)
    app.router.add_post("/scenario/execute", execute_scenario)
    return app


@click.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8081, type=int, help="Bind port")
def main(host: str, port: int) -> None:
    """Serve the CCNS Python spec over HTTP."""
    logger.info(f"Serving CCNS spec on {host}:{port}")
    web.run_app(make_app(), host=host, port=port)


if __name__ == "__main__":
    main()
