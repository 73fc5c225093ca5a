from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import Any

from hexbytes import HexBytes
from web3 import AsyncWeb3

from agentfi_ops.adapters.multicall_adapter.types import (
    ContractCall,
    MulticallCall,
    MulticallError,
    MulticallResult,
)
from agentfi_ops.core.adapters.BaseAdapter import BaseAdapter
from agentfi_ops.core.constants.base import DEFAULT_MULTICALL_CHUNK_SIZE
from agentfi_ops.core.constants.contracts import MULTICALL3_ADDRESS
from agentfi_ops.core.constants.erc20_abi import ERC20_ABI
from agentfi_ops.core.constants.multicall_abi import MULTICALL3_ABI
from agentfi_ops.core.utils.collections import chunks

CallLike = MulticallCall | tuple[str, bytes | str]


class MulticallAdapter(BaseAdapter):
    adapter_type = "MULTICALL"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int | None = None,
        web3: Any | None = None,
        address: str | None = None,
        abi: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__("multicall_adapter", config, chain_id=chain_id)

        if web3 is None:
            raise ValueError("MulticallAdapter requires web3 instance")
        self.web3 = web3

        checksum_address = self.web3.to_checksum_address(address or MULTICALL3_ADDRESS)
        self.contract = self.web3.eth.contract(
            address=checksum_address, abi=abi or MULTICALL3_ABI
        )

    async def aggregate(
        self,
        calls: Iterable[CallLike],
        *,
        value: int = 0,
        block_identifier: str | int | None = None,
    ) -> MulticallResult:
        calls_list = list(calls)
        if not calls_list:
            return MulticallResult(block_number=0, return_data=[])

        encoded_calls = [self._coerce_call(call) for call in calls_list]
        call_fn = self.contract.functions.aggregate(encoded_calls).call
        if block_identifier is None:
            block_number, return_data = await call_fn({"value": int(value)})
        else:
            block_number, return_data = await call_fn(
                {"value": int(value)}, block_identifier=block_identifier
            )
        payload = tuple(self._ensure_bytes(r) for r in return_data)
        return MulticallResult(block_number=int(block_number), return_data=payload)

    async def aggregate3(
        self,
        calls: Iterable[CallLike],
        *,
        allow_failure: bool = True,
        block_identifier: str | int | None = None,
    ) -> list[tuple[bool, bytes]]:
        """Run ``calls`` through ``aggregate3``; each entry reports its own success."""
        calls_list = list(calls)
        if not calls_list:
            return []

        encoded_calls = [
            (target, bool(allow_failure), calldata)
            for target, calldata in (self._coerce_call(c) for c in calls_list)
        ]
        call_fn = self.contract.functions.aggregate3(encoded_calls).call
        if block_identifier is None:
            results = await call_fn()
        else:
            results = await call_fn(block_identifier=block_identifier)
        return [(bool(ok), self._ensure_bytes(data)) for ok, data in results]

    def build_call(self, target: str, call_data: bytes | str) -> MulticallCall:
        checksum = self.web3.to_checksum_address(target)
        normalized = self._normalize_call_data(call_data)
        return MulticallCall(target=checksum, call_data=normalized)

    def encode_eth_balance(self, account: str) -> MulticallCall:
        calldata = self.contract.encode_abi("getEthBalance", args=[account])
        return self.build_call(self.contract.address, calldata)

    def encode_erc20_balance(self, token: str, account: str) -> MulticallCall:
        addr = self.web3.to_checksum_address(token)
        erc20 = self.web3.eth.contract(address=addr, abi=ERC20_ABI)
        calldata = erc20.encode_abi("balanceOf", args=[account])
        return self.build_call(addr, calldata)

    @staticmethod
    def decode_uint256(data: bytes | str) -> int:
        raw = MulticallAdapter._normalize_call_data(data)
        if len(raw) < 32:
            raw = raw.rjust(32, b"\x00")
        return int.from_bytes(raw[:32], byteorder="big")

    def _coerce_call(self, call: CallLike) -> tuple[str, bytes]:
        if isinstance(call, MulticallCall):
            target_str, call_data = call.as_tuple()
        else:
            target_str, call_data = call
        return (
            self.web3.to_checksum_address(target_str),
            self._normalize_call_data(call_data),
        )

    @staticmethod
    def _normalize_call_data(data: bytes | str) -> bytes:
        if isinstance(data, bytes):
            return bytes(data)
        if isinstance(data, str):
            if data.startswith("0x"):
                return bytes.fromhex(data[2:])
            return data.encode()
        raise TypeError("Unsupported calldata type")

    @staticmethod
    def _ensure_bytes(data: bytes | str | HexBytes) -> bytes:
        if isinstance(data, bytes):
            return bytes(data)
        if isinstance(data, str):
            return bytes(HexBytes(data))
        raise TypeError("Unexpected return data type from multicall")


async def multicall_chunked(
    web3: AsyncWeb3,
    calls: Sequence[ContractCall],
    block_identifier: str | int = "latest",
    chunk_size: int = DEFAULT_MULTICALL_CHUNK_SIZE,
    allow_failure: bool = False,
    multicall_address: str | None = None,
) -> list[Any]:
    """Decode ``calls`` in input order, batching ``chunk_size`` per ``aggregate3``.

    Chunks run concurrently but are all pinned to the same block; ``"latest"``
    is resolved to a concrete block number once before any chunk is sent.
    A failed entry becomes ``None`` with ``allow_failure``; otherwise the first
    failure raises :class:`MulticallError` carrying its index.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    calls = list(calls)
    if not calls:
        return []

    if block_identifier == "latest":
        block_identifier = await web3.eth.block_number

    adapter = MulticallAdapter(web3=web3, address=multicall_address)
    batches = chunks(calls, chunk_size)
    raw_batches = await asyncio.gather(
        *[
            adapter.aggregate3(
                [(c.target, c.call_data) for c in batch],
                allow_failure=True,
                block_identifier=block_identifier,
            )
            for batch in batches
        ]
    )

    decoded: list[Any] = []
    for index, (call, (ok, data)) in enumerate(
        zip(calls, (r for batch in raw_batches for r in batch), strict=True)
    ):
        value = None
        reason = "reverted"
        if ok and (data or not call.output_types):
            try:
                value = call.decode(data)
            except Exception as exc:  # noqa: BLE001
                ok, reason = False, f"returned undecodable data: {exc}"
        else:
            ok = False
            if not data:
                reason = "returned no data"
        if not ok and not allow_failure:
            raise MulticallError(index, call.describe(), reason)
        decoded.append(value)
    return decoded
