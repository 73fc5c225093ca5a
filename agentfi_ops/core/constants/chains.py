from agentfi_ops.core.constants.base import ONE_GWEI

CHAIN_ID_ETHEREUM = 1
CHAIN_ID_SEPOLIA = 11155111
CHAIN_ID_BLAST = 81457
CHAIN_ID_BLAST_SEPOLIA = 168587773
CHAIN_ID_HARDHAT = 31337

CHAIN_CODE_TO_ID = {
    "ethereum": CHAIN_ID_ETHEREUM,
    "mainnet": CHAIN_ID_ETHEREUM,
    "sepolia": CHAIN_ID_SEPOLIA,
    "blast": CHAIN_ID_BLAST,
    "blastsepolia": CHAIN_ID_BLAST_SEPOLIA,
    "blast-sepolia": CHAIN_ID_BLAST_SEPOLIA,
    "hardhat": CHAIN_ID_HARDHAT,
}

CHAIN_ID_TO_CODE: dict[int, str] = {
    v: k
    for k, v in CHAIN_CODE_TO_ID.items()
    if k not in ("mainnet", "blast-sepolia")
}

SUPPORTED_CHAINS = [
    CHAIN_ID_ETHEREUM,
    CHAIN_ID_SEPOLIA,
    CHAIN_ID_BLAST,
    CHAIN_ID_BLAST_SEPOLIA,
    CHAIN_ID_HARDHAT,
]

TESTNET_CHAIN_IDS: set[int] = {
    CHAIN_ID_SEPOLIA,
    CHAIN_ID_BLAST_SEPOLIA,
    CHAIN_ID_HARDHAT,
}

# number of blocks to wait to ensure finality
CHAIN_CONFIRMATIONS: dict[int, int] = {
    CHAIN_ID_ETHEREUM: 1,
    CHAIN_ID_SEPOLIA: 1,
    CHAIN_ID_BLAST: 1,
    CHAIN_ID_BLAST_SEPOLIA: 5,
    CHAIN_ID_HARDHAT: 0,
}

CHAIN_TX_OVERRIDES: dict[int, dict[str, int]] = {
    CHAIN_ID_ETHEREUM: {
        "maxFeePerGas": 40 * ONE_GWEI,
        "maxPriorityFeePerGas": 2 * ONE_GWEI,
    },
}

CHAIN_EXPLORER_URLS: dict[int, str] = {
    CHAIN_ID_ETHEREUM: "https://etherscan.io/",
    CHAIN_ID_SEPOLIA: "https://sepolia.etherscan.io/",
    CHAIN_ID_BLAST: "https://blastscan.io/",
    CHAIN_ID_BLAST_SEPOLIA: "https://sepolia.blastscan.io/",
}

ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"
