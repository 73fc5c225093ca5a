from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from web3 import AsyncWeb3

from agentfi_ops.adapters.multicall_adapter.adapter import MulticallAdapter
from agentfi_ops.adapters.multicall_adapter.types import ForwarderCall
from agentfi_ops.core.constants.multicall_abi import MULTICALL_FORWARDER_ABI
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.transaction import encode_calldata


def build_forwarder_transaction(
    calls: Sequence[ForwarderCall],
    from_address: str,
    chain_id: int,
    forwarder_address: str | None = None,
) -> dict[str, Any]:
    """Batch ``calls`` into one MulticallForwarder transaction.

    Plain ``aggregate`` is used when nothing carries ETH and every call must
    succeed; anything else goes through ``aggregate3Value`` with the summed value.
    """
    if not calls:
        raise ValueError("at least one forwarder call is required")

    forwarder = forwarder_address or contract_address(chain_id, "multicall_forwarder")
    total_value = sum(int(c.value) for c in calls)
    normalize = MulticallAdapter._normalize_call_data

    if total_value == 0 and not any(c.allow_failure for c in calls):
        data = encode_calldata(
            MULTICALL_FORWARDER_ABI,
            "aggregate",
            [
                [
                    (AsyncWeb3.to_checksum_address(c.target), normalize(c.call_data))
                    for c in calls
                ]
            ],
        )
    else:
        data = encode_calldata(
            MULTICALL_FORWARDER_ABI,
            "aggregate3Value",
            [
                [
                    (
                        AsyncWeb3.to_checksum_address(c.target),
                        bool(c.allow_failure),
                        int(c.value),
                        normalize(c.call_data),
                    )
                    for c in calls
                ]
            ],
        )

    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "to": AsyncWeb3.to_checksum_address(forwarder),
        "data": data,
        "value": total_value,
    }
