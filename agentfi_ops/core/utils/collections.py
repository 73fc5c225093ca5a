from __future__ import annotations

from collections.abc import Hashable, Iterable
from typing import Any, TypeVar

from eth_utils import to_checksum_address
from hexbytes import HexBytes

T = TypeVar("T", bound=Hashable)


def chunks(seq: list[Any], n: int) -> list[list[Any]]:
    if n < 1:
        raise ValueError("chunk size must be >= 1")
    return [seq[i : i + n] for i in range(0, len(seq), n)]


def deduplicate(seq: Iterable[T]) -> list[T]:
    seen: set[T] = set()
    out: list[T] = []
    for item in seq:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def to_bytes32(value: int | str | bytes) -> str:
    """Left-pad an int, hex string or bytes to a 0x-prefixed 32 byte word."""
    if isinstance(value, bool):
        raise TypeError("bool is not a valid bytes32 input")
    if isinstance(value, int):
        if value < 0 or value >= 2**256:
            raise ValueError(f"{value} does not fit in bytes32")
        return "0x" + value.to_bytes(32, "big").hex()
    raw = bytes(HexBytes(value))
    if len(raw) > 32:
        raise ValueError(f"{len(raw)} bytes do not fit in bytes32")
    return "0x" + raw.rjust(32, b"\x00").hex()


def bytes_to_address(word: str | bytes) -> str:
    """Read the low 20 bytes of an ABI word as a checksummed address."""
    raw = bytes(HexBytes(word))
    if len(raw) < 20:
        raise ValueError("word shorter than an address")
    return to_checksum_address(raw[-20:] if len(raw) <= 32 else raw[12:32])
