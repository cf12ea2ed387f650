"""Canonical state digest implementation (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _u256_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u256 must be non-negative")
    return int(value).to_bytes(32, "big", signed=False)


def _address(value: str) -> bytes:
    addr = _hex_to_bytes(value)
    if len(addr) != 20:
        raise ValueError(f"address must be 20 bytes, got {len(addr)}")
    return addr


def _blob(data: bytes) -> bytes:
    return _u64_be(len(data)) + data


def _lookup_bytes(storage: dict[str, Any]) -> bytes:
    buf = bytearray(_address(storage["authorized_caller"]))
    records = sorted(
        (r["name"].encode("utf-8"), _address(r["owner"])) for r in storage.get("records", [])
    )
    buf += _u64_be(len(records))
    for name, owner in records:
        buf += _blob(name) + owner
    return bytes(buf)


def _registrar_bytes(storage: dict[str, Any]) -> bytes:
    buf = bytearray(_address(storage["router"]) + _address(storage["lookup"]))
    buf += _blob(storage.get("policy", "strict").encode())
    routes = storage.get("routes", [])
    buf += _u64_be(len(routes))
    # Route order is observable (fee payment order), so it is not sorted.
    for r in routes:
        buf += _u64_be(r["chain_selector"]) + _address(r["receiver"]) + _u256_be(r["gas_limit"])
    return bytes(buf)


def _receiver_bytes(storage: dict[str, Any]) -> bytes:
    return (
        _address(storage["router"])
        + _address(storage["lookup"])
        + _u64_be(storage["source_chain_selector"])
        + _address(storage["trusted_sender"])
    )


def _router_bytes(storage: dict[str, Any]) -> bytes:
    buf = bytearray()
    chains = sorted(storage.get("supported_chains", []))
    buf += _u64_be(len(chains))
    for c in chains:
        buf += _u64_be(c)
    buf += _u256_be(storage.get("fee_base", 0)) + _u256_be(storage.get("fee_per_byte", 0))
    seqs = sorted(
        (e["chain_selector"], _address(e["sender"]), e["sequence_number"])
        for e in storage.get("sequence_numbers", [])
    )
    buf += _u64_be(len(seqs))
    for dest, sender, seq in seqs:
        buf += _u64_be(dest) + sender + _u64_be(seq)
    return bytes(buf)


_STORAGE_ENCODERS = {
    "lookup": _lookup_bytes,
    "registrar": _registrar_bytes,
    "receiver": _receiver_bytes,
    "router": _router_bytes,
}


def _chain_bytes(chain: dict[str, Any]) -> bytes:
    buf = bytearray(_u64_be(chain["chain_selector"]))

    balances = sorted(
        (_address(b["address"]), b["balance"])
        for b in chain.get("balances", [])
        if b["balance"]
    )
    buf += _u64_be(len(balances))
    for addr, amount in balances:
        buf += addr + _u256_be(amount)

    contracts = sorted(
        ((_address(c["address"]), c) for c in chain.get("contracts", [])), key=lambda x: x[0]
    )
    buf += _u64_be(len(contracts))
    for addr, c in contracts:
        kind = c["kind"]
        buf += addr + _blob(kind.encode()) + _address(c["owner"])
        buf += _blob(_STORAGE_ENCODERS[kind](c.get("storage", {})))
    return bytes(buf)


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from post_state.

    `post_state` holds a `chains` list of chain-state JSON objects. Chains,
    balances, contracts and lookup records are encoded in canonical order and
    hashed with BLAKE3-256. Zero balances, deploy nonces and the transient
    outbox are not part of the digest.
    """
    chains = post_state.get("chains", []) if isinstance(post_state, dict) else []
    ordered = sorted(chains, key=lambda c: c["chain_selector"])
    buf = bytearray(_u64_be(len(ordered)))
    for chain in ordered:
        buf += _chain_bytes(chain)
    return blake3(bytes(buf)).hexdigest()
