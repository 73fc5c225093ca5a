from agentfi_ops.adapters.multicall_adapter.adapter import (
    MulticallAdapter,
    multicall_chunked,
)
from agentfi_ops.adapters.multicall_adapter.forwarder import (
    build_forwarder_transaction,
)
from agentfi_ops.adapters.multicall_adapter.types import (
    ContractCall,
    ForwarderCall,
    MulticallCall,
    MulticallError,
    MulticallResult,
)

__all__ = [
    "ContractCall",
    "ForwarderCall",
    "MulticallAdapter",
    "MulticallCall",
    "MulticallError",
    "MulticallResult",
    "build_forwarder_transaction",
    "multicall_chunked",
]
