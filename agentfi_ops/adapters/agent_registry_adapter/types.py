from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator
from web3 import AsyncWeb3

from agentfi_ops.core.constants import ZERO_ADDRESS


class AgentTba(BaseModel):
    agent_address: str
    implementation_address: str

    @field_validator("agent_address", "implementation_address")
    @classmethod
    def _checksum(cls, value: str) -> str:
        return AsyncWeb3.to_checksum_address(value)


class AgentRecord(BaseModel):
    agent_id: int
    owner: str
    tbas: list[AgentTba] = Field(default_factory=list)

    @property
    def agent_address(self) -> str | None:
        """Address of the agent's first token bound account, if it has one."""
        return self.tbas[0].agent_address if self.tbas else None


class GenesisAgentNode(BaseModel):
    genesis: AgentRecord
    strategies: list[AgentRecord] = Field(default_factory=list)


class TokenDeposit(BaseModel):
    token: str = ZERO_ADDRESS
    amount: int

    @property
    def is_eth(self) -> bool:
        return self.token.lower() == ZERO_ADDRESS

    def as_tuple(self) -> tuple[str, int]:
        return AsyncWeb3.to_checksum_address(self.token), int(self.amount)


class BatchCall(BaseModel):
    """One entry of an agent account ``executeBatch``."""

    to: str
    value: int = 0
    data: str
    operation: int = 0

    def as_tuple(self) -> tuple[str, int, str, int]:
        return (
            AsyncWeb3.to_checksum_address(self.to),
            int(self.value),
            self.data,
            int(self.operation),
        )


class ApprovalRequest(BaseModel):
    token: str
    owner: str
    spender: str
    amount: int


class StrategyCreationPlan(BaseModel):
    """Everything needed to create one strategy agent from a genesis agent.

    ``transaction`` is the final unsigned transaction; ``approvals`` must be
    mined first.
    """

    genesis_agent_id: int
    genesis_agent_address: str
    creates_genesis_tba: bool
    creation_settings_id: int
    deposit_eth: int = 0
    approvals: list[ApprovalRequest] = Field(default_factory=list)
    batch: list[BatchCall] = Field(default_factory=list)
    transaction: dict[str, Any]


class ConcentratedLiquidityMintParams(BaseModel):
    """Position opened by a new concentrated liquidity agent."""

    manager: str
    pool: str
    slippage_liquidity: int = Field(ge=0, lt=2**24)
    tick_lower: int
    tick_upper: int
    sqrt_price_x96: int

    def as_tuple(self) -> tuple[str, str, int, int, int, int]:
        return (
            AsyncWeb3.to_checksum_address(self.manager),
            AsyncWeb3.to_checksum_address(self.pool),
            int(self.slippage_liquidity),
            int(self.tick_lower),
            int(self.tick_upper),
            int(self.sqrt_price_x96),
        )
