from __future__ import annotations

# Blast precompile and the AgentFi gas-reward helpers built on it.

IBLAST_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "readGasParams",
        "inputs": [{"name": "contractAddress", "type": "address"}],
        "outputs": [
            {"name": "etherSeconds", "type": "uint256"},
            {"name": "etherBalance", "type": "uint256"},
            {"name": "lastUpdated", "type": "uint256"},
            {"name": "gasMode", "type": "uint8"},
        ],
    },
    {
        "type": "function",
        "stateMutability": "view",
        "name": "readClaimableYield",
        "inputs": [{"name": "contractAddress", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "configureAutomaticYield",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "configureClaimableGas",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "configureGovernorOnBehalf",
        "inputs": [
            {"name": "newGovernor", "type": "address"},
            {"name": "contractAddress", "type": "address"},
        ],
        "outputs": [],
    },
]

# Blastable contracts expose claim + quote helpers that forward to IBlast.
BLASTABLE_ABI = [
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "claimMaxGas",
        "inputs": [{"name": "receiver", "type": "address"}],
        "outputs": [{"name": "amountClaimed", "type": "uint256"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "claimAllGas",
        "inputs": [{"name": "receiver", "type": "address"}],
        "outputs": [{"name": "amountClaimed", "type": "uint256"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "quoteClaimMaxGas",
        "inputs": [],
        "outputs": [{"name": "quoteAmount", "type": "uint256"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "quoteClaimAllGas",
        "inputs": [],
        "outputs": [{"name": "quoteAmount", "type": "uint256"}],
    },
]

GAS_COLLECTOR_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "getContractList",
        "inputs": [],
        "outputs": [
            {"name": "contractList_", "type": "address[]"},
            {"name": "gasReceiver_", "type": "address"},
        ],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "setClaimContractList",
        "inputs": [
            {"name": "contractList_", "type": "address[]"},
            {"name": "receiver_", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "claimGas",
        "inputs": [],
        "outputs": [{"name": "amountClaimed", "type": "uint256"}],
    },
]
