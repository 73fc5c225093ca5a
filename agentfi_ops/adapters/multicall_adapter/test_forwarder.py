from __future__ import annotations

import pytest
from eth_abi import decode

from agentfi_ops.adapters.multicall_adapter.forwarder import (
    build_forwarder_transaction,
)
from agentfi_ops.adapters.multicall_adapter.types import ForwarderCall
from agentfi_ops.core.constants import CHAIN_ID_BLAST
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.selectors import calc_sighash

SENDER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TARGET_A = "0x0000000000000000000000000000000000000001"
TARGET_B = "0x0000000000000000000000000000000000000002"


class TestForwarderTransaction:
    def test_plain_aggregate_without_value(self):
        tx = build_forwarder_transaction(
            [ForwarderCall(TARGET_A, "0x1234"), ForwarderCall(TARGET_B, b"\x56")],
            SENDER.lower(),
            CHAIN_ID_BLAST,
        )
        forwarder = contract_address(CHAIN_ID_BLAST, "multicall_forwarder")
        assert tx["to"].lower() == forwarder.lower()
        assert tx["from"] == SENDER
        assert tx["value"] == 0
        assert tx["data"].startswith(calc_sighash("aggregate((address,bytes)[])"))

        (calls,) = decode(["(address,bytes)[]"], bytes.fromhex(tx["data"][10:]))
        assert [c[1] for c in calls] == [b"\x12\x34", b"\x56"]

    def test_value_uses_aggregate3_value(self):
        tx = build_forwarder_transaction(
            [
                ForwarderCall(TARGET_A, "0x1234"),
                ForwarderCall(TARGET_B, "0x56", value=3),
                ForwarderCall(TARGET_B, "0x78", value=4),
            ],
            SENDER,
            CHAIN_ID_BLAST,
        )
        assert tx["value"] == 7
        assert tx["data"].startswith(
            calc_sighash("aggregate3Value((address,bool,uint256,bytes)[])")
        )
        (calls,) = decode(
            ["(address,bool,uint256,bytes)[]"], bytes.fromhex(tx["data"][10:])
        )
        assert [c[2] for c in calls] == [0, 3, 4]
        assert not any(c[1] for c in calls)

    def test_allow_failure_uses_aggregate3_value(self):
        tx = build_forwarder_transaction(
            [ForwarderCall(TARGET_A, "0x1234", allow_failure=True)],
            SENDER,
            CHAIN_ID_BLAST,
            forwarder_address=TARGET_B,
        )
        assert tx["to"] == TARGET_B
        assert tx["value"] == 0
        assert tx["data"].startswith(
            calc_sighash("aggregate3Value((address,bool,uint256,bytes)[])")
        )

    def test_requires_calls(self):
        with pytest.raises(ValueError):
            build_forwarder_transaction([], SENDER, CHAIN_ID_BLAST)
