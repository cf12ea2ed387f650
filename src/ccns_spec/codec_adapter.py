"""Convert CCNS chain state and messages to/from plain JSON.

The JSON shape is what fixtures, vectors and the conformance harness carry
between implementations: addresses and ids are lower-case hex without a
`0x` prefix, selectors and amounts are plain integers.
"""

from __future__ import annotations

from typing import Any

from .config import PropagationPolicy
from .types import (
    ChainRoute,
    ChainState,
    ContractKind,
    ContractState,
    LookupStorage,
    OutboundMessage,
    ReceiverStorage,
    RegistrarStorage,
    RouterStorage,
)


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v[2:] if v.startswith(("0x", "0X")) else v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def _storage_to_json(contract: ContractState) -> dict[str, Any]:
    s = contract.storage
    if contract.kind == ContractKind.LOOKUP:
        return {
            "authorized_caller": _bytes_to_hex(s.authorized_caller),
            "records": [
                {"name": name, "owner": _bytes_to_hex(owner)}
                for name, owner in s.records.items()
            ],
        }
    if contract.kind == ContractKind.REGISTRAR:
        return {
            "router": _bytes_to_hex(s.router),
            "lookup": _bytes_to_hex(s.lookup),
            "policy": s.policy.value,
            "routes": [
                {
                    "chain_selector": selector,
                    "receiver": _bytes_to_hex(route.receiver),
                    "gas_limit": route.gas_limit,
                }
                for selector, route in s.routes.items()
            ],
        }
    if contract.kind == ContractKind.RECEIVER:
        return {
            "router": _bytes_to_hex(s.router),
            "lookup": _bytes_to_hex(s.lookup),
            "source_chain_selector": s.source_chain_selector,
            "trusted_sender": _bytes_to_hex(s.trusted_sender),
        }
    return {
        "off_ramp": _bytes_to_hex(s.off_ramp),
        "supported_chains": list(s.supported_chains),
        "fee_base": s.fee_base,
        "fee_per_byte": s.fee_per_byte,
        "sequence_numbers": [
            {"chain_selector": dest, "sender": _bytes_to_hex(sender), "sequence_number": seq}
            for (dest, sender), seq in s.sequence_numbers.items()
        ],
    }


def _storage_from_json(kind: ContractKind, data: dict[str, Any]) -> Any:
    if kind == ContractKind.LOOKUP:
        return LookupStorage(
            authorized_caller=_hex_to_bytes(data["authorized_caller"]),
            records={r["name"]: _hex_to_bytes(r["owner"]) for r in data.get("records", [])},
        )
    if kind == ContractKind.REGISTRAR:
        return RegistrarStorage(
            router=_hex_to_bytes(data["router"]),
            lookup=_hex_to_bytes(data["lookup"]),
            policy=PropagationPolicy(data.get("policy", PropagationPolicy.STRICT.value)),
            routes={
                r["chain_selector"]: ChainRoute(
                    receiver=_hex_to_bytes(r["receiver"]), gas_limit=r["gas_limit"]
                )
                for r in data.get("routes", [])
            },
        )
    if kind == ContractKind.RECEIVER:
        return ReceiverStorage(
            router=_hex_to_bytes(data["router"]),
            lookup=_hex_to_bytes(data["lookup"]),
            source_chain_selector=data["source_chain_selector"],
            trusted_sender=_hex_to_bytes(data["trusted_sender"]),
        )
    return RouterStorage(
        off_ramp=_hex_to_bytes(data["off_ramp"]),
        supported_chains=list(data.get("supported_chains", [])),
        fee_base=data.get("fee_base", 0),
        fee_per_byte=data.get("fee_per_byte", 0),
        sequence_numbers={
            (e["chain_selector"], _hex_to_bytes(e["sender"])): e["sequence_number"]
            for e in data.get("sequence_numbers", [])
        },
    )


def message_to_json(m: OutboundMessage) -> dict[str, Any]:
    return {
        "message_id": _bytes_to_hex(m.message_id),
        "source_chain_selector": m.source_chain_selector,
        "destination_chain_selector": m.destination_chain_selector,
        "sequence_number": m.sequence_number,
        "sender": _bytes_to_hex(m.sender),
        "receiver": _bytes_to_hex(m.receiver),
        "data": _bytes_to_hex(m.data),
        "gas_limit": m.gas_limit,
        "fee_paid": m.fee_paid,
    }


def message_from_json(data: dict[str, Any]) -> OutboundMessage:
    return OutboundMessage(
        message_id=_hex_to_bytes(data["message_id"]),
        source_chain_selector=data["source_chain_selector"],
        destination_chain_selector=data["destination_chain_selector"],
        sequence_number=data["sequence_number"],
        sender=_hex_to_bytes(data["sender"]),
        receiver=_hex_to_bytes(data["receiver"]),
        data=_hex_to_bytes(data["data"]),
        gas_limit=data["gas_limit"],
        fee_paid=data.get("fee_paid", 0),
    )


def chain_state_to_json(state: ChainState) -> dict[str, Any]:
    return {
        "chain_selector": state.chain_selector,
        "balances": [
            {"address": _bytes_to_hex(addr), "balance": amount}
            for addr, amount in state.balances.items()
        ],
        "nonces": [
            {"address": _bytes_to_hex(addr), "nonce": nonce}
            for addr, nonce in state.nonces.items()
        ],
        "contracts": [
            {
                "address": _bytes_to_hex(addr),
                "kind": c.kind.value,
                "owner": _bytes_to_hex(c.owner),
                "storage": _storage_to_json(c),
            }
            for addr, c in state.contracts.items()
        ],
        "outbox": [message_to_json(m) for m in state.outbox],
    }


def chain_state_from_json(data: dict[str, Any]) -> ChainState:
    state = ChainState(chain_selector=data["chain_selector"])
    for b in data.get("balances", []):
        state.balances[_hex_to_bytes(b["address"])] = b["balance"]
    for n in data.get("nonces", []):
        state.nonces[_hex_to_bytes(n["address"])] = n["nonce"]
    for c in data.get("contracts", []):
        kind = ContractKind(c["kind"])
        state.contracts[_hex_to_bytes(c["address"])] = ContractState(
            kind=kind,
            owner=_hex_to_bytes(c["owner"]),
            storage=_storage_from_json(kind, c.get("storage", {})),
        )
    state.outbox = [message_from_json(m) for m in data.get("outbox", [])]
    return state
