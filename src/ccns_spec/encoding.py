"""ABI encoding utilities for CCNS messages (minimal subset).

Only the shapes the name service puts on the wire are supported:
`abi.encode(string, address)` for the payload, `abi.encode(address)` for the
receiver field, and `EVMExtraArgsV1` for the per-message gas limit.
"""

from __future__ import annotations

from dataclasses import dataclass

from blake3 import blake3

from .config import (
    ABI_WORD_SIZE,
    ADDRESS_SIZE,
    DEFAULT_GAS_LIMIT,
    EVM_EXTRA_ARGS_V1_TAG,
    MAX_NAME_BYTES,
)
from .errors import ErrorCode, SpecError

_ADDRESS_PAD = ABI_WORD_SIZE - ADDRESS_SIZE
_MESSAGE_ID_DOMAIN = b"ccns.message.v1"
_CREATE_DOMAIN = b"ccns.create.v1"


@dataclass
class Writer:
    buf: bytearray

    def write_u32(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(4, "big", signed=False))

    def write_u64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "big", signed=False))

    def write_u256(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(ABI_WORD_SIZE, "big", signed=False))

    def write_address(self, addr: bytes) -> None:
        _expect_len("address", addr, ADDRESS_SIZE)
        self.buf.extend(bytes(_ADDRESS_PAD))
        self.buf.extend(addr)

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)

    def write_padded(self, b: bytes) -> None:
        self.buf.extend(b)
        rem = len(b) % ABI_WORD_SIZE
        if rem:
            self.buf.extend(bytes(ABI_WORD_SIZE - rem))


class Reader:
    def __init__(self, data: bytes, code: ErrorCode = ErrorCode.MESSAGE_DECODE_FAILURE):
        self.data = bytes(data)
        self.code = code

    def _fail(self, message: str) -> SpecError:
        return SpecError(self.code, message)

    def word(self, offset: int) -> bytes:
        end = offset + ABI_WORD_SIZE
        if offset < 0 or end > len(self.data):
            raise self._fail(f"word at {offset} out of bounds")
        return self.data[offset:end]

    def u256(self, offset: int) -> int:
        return int.from_bytes(self.word(offset), "big")

    def address(self, offset: int) -> bytes:
        w = self.word(offset)
        if any(w[:_ADDRESS_PAD]):
            raise self._fail("address has dirty upper bits")
        return w[_ADDRESS_PAD:]

    def dynamic_bytes(self, head_offset: int) -> bytes:
        start = self.u256(head_offset)
        if start % ABI_WORD_SIZE:
            raise self._fail("unaligned dynamic offset")
        length = self.u256(start)
        begin = start + ABI_WORD_SIZE
        if begin + length > len(self.data):
            raise self._fail("dynamic data out of bounds")
        return self.data[begin:begin + length]


def _expect_len(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"{name} must be {size} bytes")


def encode_name_payload(name: str, owner: bytes) -> bytes:
    """abi.encode(string name, address owner)."""
    raw = name.encode("utf-8")
    w = Writer(bytearray())
    w.write_u256(2 * ABI_WORD_SIZE)
    w.write_address(owner)
    w.write_u256(len(raw))
    w.write_padded(raw)
    return bytes(w.buf)


def decode_name_payload(data: bytes) -> tuple[str, bytes]:
    """Inverse of `encode_name_payload`; raises MESSAGE_DECODE_FAILURE."""
    if len(data) < 3 * ABI_WORD_SIZE:
        raise SpecError(ErrorCode.MESSAGE_DECODE_FAILURE, "payload too short")
    if len(data) % ABI_WORD_SIZE:
        raise SpecError(ErrorCode.MESSAGE_DECODE_FAILURE, "payload not word aligned")

    r = Reader(data)
    raw = r.dynamic_bytes(0)
    owner = r.address(ABI_WORD_SIZE)
    if len(raw) > MAX_NAME_BYTES:
        raise SpecError(ErrorCode.MESSAGE_DECODE_FAILURE, "name too long")
    try:
        name = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SpecError(ErrorCode.MESSAGE_DECODE_FAILURE, "name is not utf-8") from exc
    return name, owner


def encode_address(addr: bytes) -> bytes:
    """abi.encode(address), as carried in EVM2AnyMessage.receiver."""
    w = Writer(bytearray())
    w.write_address(addr)
    return bytes(w.buf)


def decode_address(data: bytes) -> bytes:
    if len(data) != ABI_WORD_SIZE:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "receiver must be one abi word")
    return Reader(data, ErrorCode.INVALID_ADDRESS).address(0)


def encode_extra_args(gas_limit: int) -> bytes:
    """Client._argsToBytes(EVMExtraArgsV1({gasLimit}))."""
    w = Writer(bytearray())
    w.write_u32(EVM_EXTRA_ARGS_V1_TAG)
    w.write_u256(gas_limit)
    return bytes(w.buf)


def decode_extra_args(extra_args: bytes) -> int:
    """Return the gas limit carried by extra args (default when empty)."""
    if not extra_args:
        return DEFAULT_GAS_LIMIT
    if len(extra_args) != 4 + ABI_WORD_SIZE:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "extra args length invalid")
    tag = int.from_bytes(extra_args[:4], "big")
    if tag != EVM_EXTRA_ARGS_V1_TAG:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, f"unknown extra args tag {tag:#010x}")
    return int.from_bytes(extra_args[4:], "big")


def compute_message_id(
    source_chain_selector: int,
    destination_chain_selector: int,
    sequence_number: int,
    sender: bytes,
    receiver: bytes,
    data: bytes,
    gas_limit: int,
) -> bytes:
    w = Writer(bytearray(_MESSAGE_ID_DOMAIN))
    w.write_u64(source_chain_selector)
    w.write_u64(destination_chain_selector)
    w.write_u64(sequence_number)
    w.write_address(sender)
    w.write_address(receiver)
    w.write_u256(gas_limit)
    w.write_u64(len(data))
    w.write_bytes(data)
    return blake3(bytes(w.buf)).digest()


def derive_contract_address(chain_selector: int, deployer: bytes, nonce: int) -> bytes:
    """CREATE-style address: last 20 bytes of H(chain, deployer, nonce)."""
    w = Writer(bytearray(_CREATE_DOMAIN))
    w.write_u64(chain_selector)
    w.write_address(deployer)
    w.write_u64(nonce)
    return blake3(bytes(w.buf)).digest()[-ADDRESS_SIZE:]
