from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from eth_abi import decode, encode
from hexbytes import HexBytes

from agentfi_ops.core.utils.selectors import calc_sighash, signature_input_types


class MulticallError(RuntimeError):
    def __init__(self, index: int, description: str, reason: str = "call failed"):
        self.index = index
        self.description = description
        super().__init__(f"Multicall entry {index} ({description}) {reason}")


@dataclass(frozen=True)
class MulticallCall:
    target: str
    call_data: bytes | str

    def as_tuple(self) -> tuple[str, bytes | str]:
        return self.target, self.call_data


@dataclass
class MulticallResult:
    block_number: int
    return_data: Sequence[bytes]


@dataclass(frozen=True)
class ContractCall:
    """One read against ``target``: ``signature`` called with ``args``.

    ``output_types`` are eth-abi type strings; a single output decodes to a bare
    value, several decode to a tuple. A call with no outputs decodes to ``None``.
    """

    target: str
    signature: str
    args: tuple[Any, ...] = ()
    output_types: tuple[str, ...] = field(default=("uint256",))

    @property
    def call_data(self) -> bytes:
        selector = bytes(HexBytes(calc_sighash(self.signature)))
        input_types = signature_input_types(self.signature)
        if len(input_types) != len(self.args):
            raise ValueError(
                f"{self.signature} takes {len(input_types)} args, got {len(self.args)}"
            )
        return selector + encode(input_types, list(self.args))

    def decode(self, data: bytes) -> Any:
        if not self.output_types:
            return None
        values = decode(list(self.output_types), bytes(data))
        if len(values) == 1:
            return values[0]
        return values

    def describe(self) -> str:
        return f"{self.target}.{self.signature}"


@dataclass(frozen=True)
class ForwarderCall:
    target: str
    call_data: bytes | str
    value: int = 0
    allow_failure: bool = False
