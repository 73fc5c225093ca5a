from __future__ import annotations

from pydantic import BaseModel

GAS_MODES = ("VOID", "CLAIMABLE")


class GasParams(BaseModel):
    ether_seconds: int
    ether_balance: int
    last_updated: int
    gas_mode: int

    @property
    def gas_mode_name(self) -> str:
        if 0 <= self.gas_mode < len(GAS_MODES):
            return GAS_MODES[self.gas_mode]
        return "unknown"


class GasClaim(BaseModel):
    txn_hash: str
    receiver: str
    balance_before: int
    balance_after: int

    @property
    def claimed(self) -> int:
        return self.balance_after - self.balance_before


class GasCollectorState(BaseModel):
    contracts: list[str]
    receiver: str
