from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from eth_account import Account
from web3 import AsyncWeb3

from agentfi_ops.adapters.gas_adapter.types import (
    GasClaim,
    GasCollectorState,
    GasParams,
)
from agentfi_ops.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from agentfi_ops.core.adapters.decorators import status_tuple
from agentfi_ops.core.constants.base import (
    DEFAULT_NATIVE_GAS_UNITS,
    GAS_CLAIM_BASE_RATE,
    GAS_CLAIM_CEIL_SECONDS,
)
from agentfi_ops.core.constants.blast_abi import (
    BLASTABLE_ABI,
    GAS_COLLECTOR_ABI,
    IBLAST_ABI,
)
from agentfi_ops.core.utils.collections import deduplicate
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.transaction import (
    encode_call,
    local_sign_callback,
    send_transaction,
)
from agentfi_ops.core.utils.units import format_units
from agentfi_ops.core.utils.web3 import web3_from_chain_id

CLAIM_GAS_LIMIT = 2_000_000


def estimate_claim_rate(last_updated: int, now: int | None = None) -> float:
    """Share of accrued gas that ``claimMaxGas`` pays out right now.

    Rewards vest linearly from 50% at ``last_updated`` to 100% thirty days later.
    """
    if now is None:
        now = int(time.time())
    elapsed = max(0, int(now) - int(last_updated))
    vested = min(elapsed, GAS_CLAIM_CEIL_SECONDS) / GAS_CLAIM_CEIL_SECONDS
    return GAS_CLAIM_BASE_RATE + (1 - GAS_CLAIM_BASE_RATE) * vested


class GasAdapter(BaseAdapter):
    adapter_type = "GAS"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        wallet_address: str | None = None,
        sign_callback: Callable | None = None,
        gas_collector_address: str | None = None,
    ) -> None:
        super().__init__(
            "gas_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self.blast_address = AsyncWeb3.to_checksum_address(
            contract_address(self.chain_id, "blast")
        )
        self.gas_collector_address = AsyncWeb3.to_checksum_address(
            gas_collector_address or contract_address(self.chain_id, "gas_collector")
        )

    estimate_claim_rate = staticmethod(estimate_claim_rate)

    @status_tuple
    async def read_gas_params(self, contract: str) -> GasParams:
        async with web3_from_chain_id(self.chain_id) as web3:
            blast = web3.eth.contract(address=self.blast_address, abi=IBLAST_ABI)
            ether_seconds, ether_balance, last_updated, gas_mode = (
                await blast.functions.readGasParams(
                    web3.to_checksum_address(contract)
                ).call()
            )
        return GasParams(
            ether_seconds=ether_seconds,
            ether_balance=ether_balance,
            last_updated=last_updated,
            gas_mode=gas_mode,
        )

    @status_tuple
    async def get_gas_collector_state(self) -> GasCollectorState:
        async with web3_from_chain_id(self.chain_id) as web3:
            collector = web3.eth.contract(
                address=self.gas_collector_address, abi=GAS_COLLECTOR_ABI
            )
            contracts, receiver = await collector.functions.getContractList().call()
        return GasCollectorState(
            contracts=[AsyncWeb3.to_checksum_address(c) for c in contracts],
            receiver=AsyncWeb3.to_checksum_address(receiver),
        )

    @require_wallet
    @status_tuple
    async def configure_gas_collector(
        self, contracts: Sequence[str], receiver: str
    ) -> str | None:
        """Point the GasCollector at ``contracts`` and ``receiver`` when it differs.

        Returns the transaction hash, or ``None`` when nothing needed changing.
        """
        expected = deduplicate(AsyncWeb3.to_checksum_address(c) for c in contracts)
        receiver = AsyncWeb3.to_checksum_address(receiver)

        ok, state = await self.get_gas_collector_state()
        if not ok:
            raise RuntimeError(state)

        current = {c.lower() for c in state.contracts}
        missing = [c for c in expected if c.lower() not in current]
        if state.receiver.lower() == receiver.lower() and not missing:
            self.logger.debug("GasCollector contract list already set")
            return None

        self.logger.info(
            f"GasCollector setting {len(expected)} contract(s), receiver {receiver}"
        )
        transaction = await encode_call(
            target=self.gas_collector_address,
            abi=GAS_COLLECTOR_ABI,
            fn_name="setClaimContractList",
            args=[expected, receiver],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        return await send_transaction(transaction, self.sign_callback)

    @require_wallet
    @status_tuple
    async def claim_gas(self) -> str:
        self.logger.info("Claiming gas through GasCollector")
        transaction = await encode_call(
            target=self.gas_collector_address,
            abi=GAS_COLLECTOR_ABI,
            fn_name="claimGas",
            args=[],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        return await send_transaction(transaction, self.sign_callback)

    async def _claim(
        self, fn_name: str, contract: str, receiver: str | None
    ) -> GasClaim:
        contract = AsyncWeb3.to_checksum_address(contract)
        receiver = AsyncWeb3.to_checksum_address(receiver or contract)

        async with web3_from_chain_id(self.chain_id) as web3:
            before = await web3.eth.get_balance(receiver)

        transaction = await encode_call(
            target=contract,
            abi=BLASTABLE_ABI,
            fn_name=fn_name,
            args=[receiver],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        transaction["gas"] = CLAIM_GAS_LIMIT
        txn_hash = await send_transaction(
            transaction, self.sign_callback, keep_gas_limit=True
        )

        async with web3_from_chain_id(self.chain_id) as web3:
            after = await web3.eth.get_balance(receiver)
        claim = GasClaim(
            txn_hash=txn_hash,
            receiver=receiver,
            balance_before=int(before),
            balance_after=int(after),
        )
        self.logger.info(f"Claimed {format_units(claim.claimed)} ETH of gas")
        return claim

    @require_wallet
    @status_tuple
    async def claim_max_gas(
        self, contract: str, receiver: str | None = None
    ) -> GasClaim:
        return await self._claim("claimMaxGas", contract, receiver)

    @require_wallet
    @status_tuple
    async def claim_all_gas(
        self, contract: str, receiver: str | None = None
    ) -> GasClaim:
        return await self._claim("claimAllGas", contract, receiver)


async def transfer_eth(
    from_account: Mapping[str, str],
    to: str,
    amount_wei: int,
    chain_id: int,
    wait_for_receipt: bool = True,
) -> str:
    """Send native ETH from a configured ``{address, key}`` account."""
    if int(amount_wei) <= 0:
        raise ValueError("amount must be positive")
    key = from_account.get("key")
    if not key:
        raise ValueError("account has no private key")
    sender = from_account.get("address") or Account.from_key(key).address

    transaction = {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(sender),
        "to": AsyncWeb3.to_checksum_address(to),
        "value": int(amount_wei),
        "gas": DEFAULT_NATIVE_GAS_UNITS,
    }
    return await send_transaction(
        transaction,
        local_sign_callback(key),
        wait_for_receipt,
        keep_gas_limit=True,
    )
