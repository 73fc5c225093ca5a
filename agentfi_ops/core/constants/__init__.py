from agentfi_ops.core.constants.base import MAX_UINT256, ONE_GWEI, WEI_PER_ETHER
from agentfi_ops.core.constants.chains import (
    CHAIN_CODE_TO_ID,
    CHAIN_ID_BLAST,
    CHAIN_ID_BLAST_SEPOLIA,
    CHAIN_ID_HARDHAT,
    SUPPORTED_CHAINS,
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BYTES32_ZERO = "0x" + "00" * 32

__all__ = [
    "BYTES32_ZERO",
    "CHAIN_CODE_TO_ID",
    "CHAIN_ID_BLAST",
    "CHAIN_ID_BLAST_SEPOLIA",
    "CHAIN_ID_HARDHAT",
    "MAX_UINT256",
    "ONE_GWEI",
    "SUPPORTED_CHAINS",
    "WEI_PER_ETHER",
    "ZERO_ADDRESS",
]
