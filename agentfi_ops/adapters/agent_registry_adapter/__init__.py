from agentfi_ops.adapters.agent_registry_adapter.adapter import (
    UNKNOWN_AGENT_TYPE,
    AgentRegistryAdapter,
)
from agentfi_ops.adapters.agent_registry_adapter.strategy import (
    build_agent_tree,
    build_concentrated_liquidity_creation,
    build_strategy_creation_plan,
    build_strategy_deposit,
    build_strategy_initialization_call,
    build_strategy_withdrawal,
    flag_diffs,
    post_settings_if_changed,
    settings_diff,
    unique_owners,
    wrap_agent_calls,
)
from agentfi_ops.adapters.agent_registry_adapter.types import (
    AgentRecord,
    AgentTba,
    ApprovalRequest,
    BatchCall,
    ConcentratedLiquidityMintParams,
    GenesisAgentNode,
    StrategyCreationPlan,
    TokenDeposit,
)

__all__ = [
    "UNKNOWN_AGENT_TYPE",
    "AgentRecord",
    "AgentRegistryAdapter",
    "AgentTba",
    "ApprovalRequest",
    "BatchCall",
    "ConcentratedLiquidityMintParams",
    "GenesisAgentNode",
    "StrategyCreationPlan",
    "TokenDeposit",
    "build_agent_tree",
    "build_concentrated_liquidity_creation",
    "build_strategy_creation_plan",
    "build_strategy_deposit",
    "build_strategy_initialization_call",
    "build_strategy_withdrawal",
    "flag_diffs",
    "post_settings_if_changed",
    "settings_diff",
    "unique_owners",
    "wrap_agent_calls",
]
