"""CCNS Python spec configuration constants.

Keep this file aligned with the CCIP local simulator constants
(`CCIPLocalSimulator`, `Client.sol`) used by the reference contracts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Addresses
ADDRESS_SIZE = 20
ZERO_ADDRESS = bytes(ADDRESS_SIZE)

# Chain selectors
CHAIN_SELECTOR_LOCAL = 16_015_286_601_757_825_753  # CCIPLocalSimulator (Sepolia id)
CHAIN_SELECTOR_FUJI = 14_767_482_510_784_806_043
CHAIN_SELECTOR_AMOY = 16_281_711_391_670_634_445
U64_MAX = (1 << 64) - 1

# Messaging
EVM_EXTRA_ARGS_V1_TAG = 0x97A657C9
DEFAULT_GAS_LIMIT = 200_000
MAX_GAS_LIMIT = 3_000_000
ABI_WORD_SIZE = 32

# Names
MAX_NAME_BYTES = 255

# Fees (the local simulator's router charges nothing)
DEFAULT_FEE_BASE = 0
DEFAULT_FEE_PER_BYTE = 0


class PropagationPolicy(Enum):
    """What `register` does when the registrar has no enabled routes."""

    STRICT = "strict"
    BEST_EFFORT = "best_effort"


_TRUTHY = ("true", "1", "yes")


def _flag(value) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass
class SimulatorSettings:
    """Runtime knobs for a `ChainSimulator`.

    `auto_deliver` left as None follows the chain layout: on for the
    single-chain simulator, off when source and destination differ.
    """

    source_chain_selector: int = CHAIN_SELECTOR_LOCAL
    destination_chain_selector: int = CHAIN_SELECTOR_LOCAL
    auto_deliver: Optional[bool] = None
    policy: PropagationPolicy = PropagationPolicy.STRICT
    fee_base: int = DEFAULT_FEE_BASE
    fee_per_byte: int = DEFAULT_FEE_PER_BYTE

    @property
    def single_chain(self) -> bool:
        return self.source_chain_selector == self.destination_chain_selector

    @property
    def delivers_on_commit(self) -> bool:
        if self.auto_deliver is None:
            return self.single_chain
        return self.auto_deliver

    @classmethod
    def from_env(cls) -> "SimulatorSettings":
        """Load settings from CCNS_* environment variables."""
        settings = cls()

        source = os.environ.get("CCNS_SOURCE_CHAIN_SELECTOR")
        if source:
            settings.source_chain_selector = int(source)
        destination = os.environ.get("CCNS_DESTINATION_CHAIN_SELECTOR")
        if destination:
            settings.destination_chain_selector = int(destination)

        auto = os.environ.get("CCNS_AUTO_DELIVER")
        if auto:
            settings.auto_deliver = _flag(auto)

        policy = os.environ.get("CCNS_POLICY")
        if policy:
            settings.policy = PropagationPolicy(policy.lower())

        settings.fee_base = int(os.environ.get("CCNS_FEE_BASE", settings.fee_base))
        settings.fee_per_byte = int(os.environ.get("CCNS_FEE_PER_BYTE", settings.fee_per_byte))
        return settings

    @classmethod
    def from_dict(cls, data: dict) -> "SimulatorSettings":
        settings = cls()
        if "source_chain_selector" in data:
            settings.source_chain_selector = int(data["source_chain_selector"])
        if "destination_chain_selector" in data:
            settings.destination_chain_selector = int(data["destination_chain_selector"])
        if "auto_deliver" in data:
            settings.auto_deliver = _flag(data["auto_deliver"])
        if "policy" in data:
            settings.policy = PropagationPolicy(data["policy"])
        settings.fee_base = int(data.get("fee_base", settings.fee_base))
        settings.fee_per_byte = int(data.get("fee_per_byte", settings.fee_per_byte))
        return settings

    def to_dict(self) -> dict:
        return {
            "source_chain_selector": self.source_chain_selector,
            "destination_chain_selector": self.destination_chain_selector,
            "auto_deliver": self.auto_deliver,
            "policy": self.policy.value,
            "fee_base": self.fee_base,
            "fee_per_byte": self.fee_per_byte,
        }
