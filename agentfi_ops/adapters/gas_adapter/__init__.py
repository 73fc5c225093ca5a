from agentfi_ops.adapters.gas_adapter.adapter import (
    GasAdapter,
    estimate_claim_rate,
    transfer_eth,
)
from agentfi_ops.adapters.gas_adapter.types import (
    GasClaim,
    GasCollectorState,
    GasParams,
)

__all__ = [
    "GasAdapter",
    "GasClaim",
    "GasCollectorState",
    "GasParams",
    "estimate_claim_rate",
    "transfer_eth",
]
