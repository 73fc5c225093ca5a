from __future__ import annotations

_CALL_COMPONENTS = [
    {"internalType": "address", "name": "target", "type": "address"},
    {"internalType": "bytes", "name": "callData", "type": "bytes"},
]

_CALL3_COMPONENTS = [
    {"internalType": "address", "name": "target", "type": "address"},
    {"internalType": "bool", "name": "allowFailure", "type": "bool"},
    {"internalType": "bytes", "name": "callData", "type": "bytes"},
]

_CALL3_VALUE_COMPONENTS = [
    {"internalType": "address", "name": "target", "type": "address"},
    {"internalType": "bool", "name": "allowFailure", "type": "bool"},
    {"internalType": "uint256", "name": "value", "type": "uint256"},
    {"internalType": "bytes", "name": "callData", "type": "bytes"},
]

_RESULT_COMPONENTS = [
    {"internalType": "bool", "name": "success", "type": "bool"},
    {"internalType": "bytes", "name": "returnData", "type": "bytes"},
]

# Multicall3 and the AgentFi MulticallForwarder share these three entry points.
# The forwarder appends the original sender to each call (ERC-2771).
MULTICALL3_ABI = [
    {
        "inputs": [
            {
                "components": _CALL_COMPONENTS,
                "internalType": "struct Multicall3.Call[]",
                "name": "calls",
                "type": "tuple[]",
            }
        ],
        "name": "aggregate",
        "outputs": [
            {"internalType": "uint256", "name": "blockNumber", "type": "uint256"},
            {"internalType": "bytes[]", "name": "returnData", "type": "bytes[]"},
        ],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": _CALL3_COMPONENTS,
                "internalType": "struct Multicall3.Call3[]",
                "name": "calls",
                "type": "tuple[]",
            }
        ],
        "name": "aggregate3",
        "outputs": [
            {
                "components": _RESULT_COMPONENTS,
                "internalType": "struct Multicall3.Result[]",
                "name": "returnData",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": _CALL3_VALUE_COMPONENTS,
                "internalType": "struct Multicall3.Call3Value[]",
                "name": "calls",
                "type": "tuple[]",
            }
        ],
        "name": "aggregate3Value",
        "outputs": [
            {
                "components": _RESULT_COMPONENTS,
                "internalType": "struct Multicall3.Result[]",
                "name": "returnData",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "addr", "type": "address"}],
        "name": "getEthBalance",
        "outputs": [
            {"internalType": "uint256", "name": "balance", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

MULTICALL_FORWARDER_ABI = MULTICALL3_ABI[:3]
