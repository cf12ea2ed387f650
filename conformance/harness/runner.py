#!/usr/bin/env python3
"""
CCNS Conformance Test Runner

Replays scenario vectors against every enabled name-service implementation
and compares the outcomes with the reference client and the recorded
expectations.
"""

import asyncio
import glob
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp
import click
import yaml

from comparator import ResultComparator
from config import HarnessConfig, ClientConfig
from reporter import ReportGenerator, SuiteResult, TestResult, ConformanceReport

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


class ConformanceClient:
    """HTTP client for a single implementation."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session:
            await self.session.close()

    async def health(self) -> bool:
        try:
            async with self.session.get(f"{self.config.endpoint}/health") as resp:
                data = await resp.json()
                return data.get("success", False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Health check failed: {e}")
            return False

    async def execute_scenario(self, scenario: Dict[str, Any]) -> Dict[str, Any]:
        """Run one scenario from a fresh simulator and return its outcome."""
        try:
            async with self.session.post(
                f"{self.config.endpoint}/scenario/execute",
                json={"scenario": scenario},
            ) as resp:
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Execute scenario failed: {e}")
            return {"success": False, "error": str(e)}


class ConformanceHarness:
    """Main test harness for conformance testing."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.clients: Dict[str, ConformanceClient] = {}
        self.comparator = ResultComparator(reference_client=config.reference_client)
        self.reporter = ReportGenerator(config.result_dir)

    async def setup(self) -> None:
        """Initialize all clients."""
        for name, client_config in self.config.get_enabled_clients().items():
            client = ConformanceClient(client_config)
            await client.connect()
            if not await client.health():
                logger.warning(f"{client_config.name} at {client_config.endpoint} is not healthy")
            self.clients[name] = client
            logger.info(f"Connected to {client_config.name} at {client_config.endpoint}")

    async def teardown(self) -> None:
        """Close all client connections."""
        for client in self.clients.values():
            await client.close()

    async def execute_all(self, scenario: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Execute a scenario on all clients concurrently."""
        names = list(self.clients.keys())
        outcomes = await asyncio.gather(*[
            self.clients[name].execute_scenario(scenario)
            for name in names
        ])
        return dict(zip(names, outcomes))

    async def run_vector(self, vector: Dict[str, Any]) -> TestResult:
        """Run a single test vector."""
        vector_name = vector.get("name", "unknown")
        start_time = time.time()

        scenario = vector.get("scenario")
        if not scenario:
            return TestResult(
                vector_name=vector_name,
                suite_name="",
                passed=False,
                execution_time_ms=(time.time() - start_time) * 1000,
                error="Vector has no scenario",
            )

        results = await self.execute_all(scenario)
        comparison = self.comparator.compare_results(results, vector_name)

        if self.config.check_expected and "expected" in vector:
            against_expected = self.comparator.compare_expected(
                vector["expected"], results, vector_name
            )
            comparison.divergences.extend(against_expected.divergences)
            comparison.success = comparison.success and against_expected.success

        return TestResult(
            vector_name=vector_name,
            suite_name="",
            passed=not comparison.has_divergences,
            execution_time_ms=(time.time() - start_time) * 1000,
            comparison=comparison,
        )

    async def run_suite(self, suite_path: str) -> SuiteResult:
        """Run a test suite from a YAML file."""
        suite_name = Path(suite_path).stem
        logger.info(f"Running suite: {suite_name}")

        start_time = time.time()

        with open(suite_path) as f:
            suite = yaml.safe_load(f) or {}

        vectors = suite.get("test_vectors", [])
        test_results = []
        skipped = 0

        for vector in vectors:
            if vector.get("runnable") is False:
                skipped += 1
                continue

            result = await self.run_vector(vector)
            result.suite_name = suite_name
            test_results.append(result)

            status = "PASS" if result.passed else "FAIL"
            logger.info(f"  [{status}] {result.vector_name}")

            if not result.passed and self.config.stop_on_first_failure:
                break

        passed = sum(1 for r in test_results if r.passed)
        failed = sum(1 for r in test_results if not r.passed)

        return SuiteResult(
            suite_name=suite_name,
            total_tests=len(test_results),
            passed_tests=passed,
            failed_tests=failed,
            skipped_tests=skipped,
            execution_time_ms=(time.time() - start_time) * 1000,
            test_results=test_results,
        )

    async def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        """Run all test suites."""
        start_time = time.time()

        suite_results = []
        for path in vector_paths:
            result = await self.run_suite(path)
            suite_results.append(result)
            if result.failed_tests and self.config.stop_on_first_failure:
                break

        return self.reporter.generate_report(
            suite_results=suite_results,
            clients=list(self.clients.keys()),
            reference_client=self.comparator.reference_client,
            execution_time_ms=(time.time() - start_time) * 1000,
        )


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector YAML files in directory."""
    patterns = [
        os.path.join(vector_dir, "**", "*.yaml"),
        os.path.join(vector_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific YAML file",
)
@click.option(
    "--py-endpoint",
    default=None,
    help="CCNS Python spec endpoint URL",
)
@click.option(
    "--sol-endpoint",
    default=None,
    help="CCNS Solidity endpoint URL",
)
@click.option(
    "--result-dir",
    default=None,
    help="Directory to write results",
)
@click.option(
    "--no-expected",
    is_flag=True,
    help="Only compare clients with each other",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first test failure",
)
def main(
    vectors: Optional[str],
    py_endpoint: Optional[str],
    sol_endpoint: Optional[str],
    result_dir: Optional[str],
    no_expected: bool,
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run CCNS conformance tests."""

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if py_endpoint:
        config.clients["ccns-py"].endpoint = py_endpoint
    if sol_endpoint:
        config.clients["ccns-sol"].endpoint = sol_endpoint
    if result_dir:
        config.result_dir = result_dir
    if no_expected:
        config.check_expected = False
    if verbose:
        config.verbose = True
        logging.getLogger().setLevel(logging.DEBUG)
    if stop_on_failure:
        config.stop_on_first_failure = True

    vector_dir = vectors or config.vector_dir
    if os.path.isfile(vector_dir):
        vector_files = [vector_dir]
    else:
        vector_files = find_vector_files(vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    async def run() -> int:
        harness = ConformanceHarness(config)

        try:
            await harness.setup()
            report = await harness.run_all(vector_files)

            harness.reporter.write_json_report(report)
            harness.reporter.write_summary(report)
            harness.reporter.print_summary(report)

            return 0 if report.total_failed == 0 else 1

        finally:
            await harness.teardown()

    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
