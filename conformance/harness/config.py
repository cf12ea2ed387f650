"""
Configuration management for the conformance test harness.
"""

import os
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class ClientConfig:
    """Configuration for a single client endpoint."""
    name: str
    endpoint: str
    enabled: bool = True
    timeout: float = 30.0


@dataclass
class HarnessConfig:
    """Main configuration for the test harness."""
    # Client endpoints
    clients: Dict[str, ClientConfig] = field(default_factory=dict)
    reference_client: str = "ccns-py"

    # Paths
    vector_dir: str = "/vectors"
    result_dir: str = "/results"

    # Execution settings
    stop_on_first_failure: bool = False
    check_expected: bool = True
    verbose: bool = False

    # Timeouts
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        config = cls()

        py_endpoint = os.environ.get("PY_ENDPOINT", "http://localhost:8081")
        sol_endpoint = os.environ.get("SOL_ENDPOINT", "http://localhost:8082")

        config.clients = {
            "ccns-py": ClientConfig(
                name="CCNS Python spec",
                endpoint=py_endpoint,
            ),
            "ccns-sol": ClientConfig(
                name="CCNS Solidity (hardhat)",
                endpoint=sol_endpoint,
                enabled=os.environ.get("SOL_ENABLED", "true").lower() in ("true", "1", "yes"),
            ),
        }

        # Load paths
        config.vector_dir = os.environ.get("VECTOR_DIR", "/vectors")
        config.result_dir = os.environ.get("RESULT_DIR", "/results")

        # Load settings
        config.verbose = os.environ.get("VERBOSE", "").lower() in ("true", "1", "yes")
        config.stop_on_first_failure = os.environ.get(
            "STOP_ON_FIRST_FAILURE", ""
        ).lower() in ("true", "1", "yes")
        config.request_timeout = float(os.environ.get("REQUEST_TIMEOUT", config.request_timeout))
        for client in config.clients.values():
            client.timeout = config.request_timeout

        return config

    def get_enabled_clients(self) -> Dict[str, ClientConfig]:
        """Get only enabled client configurations."""
        return {
            name: client
            for name, client in self.clients.items()
            if client.enabled
        }
