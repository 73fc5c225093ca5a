DEFAULT_NATIVE_GAS_UNITS = 21000
# percent added on top of the highest estimate
GAS_BUFFER_PERCENT = 10
ONE_GWEI = 1_000_000_000
WEI_PER_ETHER = 10**18
SUGGESTED_PRIORITY_FEE_MULTIPLIER = 1.5
MAX_BASE_FEE_GROWTH_MULTIPLIER = 2

# Timeout constants (seconds)
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_TRANSACTION_TIMEOUT = 180

DEFAULT_MULTICALL_CHUNK_SIZE = 500
DEFAULT_FORWARDER_GAS_LIMIT = 3_000_000

MAX_UINT256 = 2**256 - 1

# Blast gas rewards vest linearly from 50% to 100% over this window.
GAS_CLAIM_CEIL_SECONDS = 30 * 24 * 60 * 60
GAS_CLAIM_BASE_RATE = 0.5
