import asyncio
from collections.abc import Callable
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from agentfi_ops.core.constants.base import (
    DEFAULT_TRANSACTION_TIMEOUT,
    GAS_BUFFER_PERCENT,
    MAX_BASE_FEE_GROWTH_MULTIPLIER,
    SUGGESTED_PRIORITY_FEE_MULTIPLIER,
)
from agentfi_ops.core.utils.network import ensure_chain, get_network_settings
from agentfi_ops.core.utils.web3 import (
    get_transaction_chain_id,
    web3_from_chain_id,
    web3s_from_chain_id,
)


# ABI encoding only; never sends requests
_OFFLINE_WEB3 = Web3()


class TransactionRevertedError(RuntimeError):
    def __init__(
        self,
        txn_hash: str,
        receipt: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(message or f"Transaction reverted: {txn_hash}")


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _raise_revert_error(
    txn_hash: str,
    receipt: dict[str, Any],
    transaction: dict[str, Any],
    cause: Exception | None = None,
) -> None:
    gas_used = _as_int(receipt.get("gasUsed"))
    gas_limit = _as_int(transaction.get("gas"))

    oogs = bool(gas_used and gas_limit and gas_used >= gas_limit)
    suffix = (
        f" gasUsed={gas_used} gasLimit={gas_limit}"
        + (" (likely out of gas)" if oogs else "")
        if gas_used or gas_limit
        else ""
    )
    error = TransactionRevertedError(
        txn_hash,
        receipt,
        message=f"Transaction reverted (status=0): {txn_hash}{suffix}",
    )
    if cause:
        raise error from cause
    raise error


def _get_transaction_from_address(transaction: dict) -> str:
    if "from" not in transaction:
        raise ValueError("Transaction does not contain from address")
    return AsyncWeb3.to_checksum_address(transaction["from"])


def _normalize_hash(txn_hash: str | bytes) -> str:
    if isinstance(txn_hash, bytes):
        txn_hash = txn_hash.hex()
    if not txn_hash.startswith("0x"):
        txn_hash = f"0x{txn_hash}"
    return txn_hash


async def nonce_transaction(transaction: dict):
    transaction = transaction.copy()

    from_address = _get_transaction_from_address(transaction)

    async def _get_nonce(web3: AsyncWeb3) -> int:
        return await web3.eth.get_transaction_count(
            from_address, block_identifier="pending"
        )

    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        nonces = await asyncio.gather(*[_get_nonce(web3) for web3 in web3s])
        transaction["nonce"] = max(nonces)

    return transaction


async def gas_price_transaction(transaction: dict):
    """Fill EIP-1559 fee fields, preferring the chain's fixed fee overrides."""
    transaction = transaction.copy()
    chain_id = get_transaction_chain_id(transaction)

    overrides = get_network_settings(chain_id).overrides
    if overrides:
        transaction.update(overrides)
        return transaction

    async def _get_base_fee(web3: AsyncWeb3) -> int:
        latest_block = await web3.eth.get_block("latest")
        return latest_block.baseFeePerGas

    async def _get_priority_fee(web3: AsyncWeb3) -> int:
        lookback_blocks = 10
        percentile = 80
        fee_history = await web3.eth.fee_history(
            lookback_blocks, "latest", [percentile]
        )
        historical_priority_fees = [i[0] for i in fee_history.reward]
        if not historical_priority_fees:
            return 0
        return sum(historical_priority_fees) // len(historical_priority_fees)

    async with web3s_from_chain_id(chain_id) as web3s:
        base_fees = await asyncio.gather(*[_get_base_fee(web3) for web3 in web3s])
        priority_fees = await asyncio.gather(
            *[_get_priority_fee(web3) for web3 in web3s]
        )

        base_fee = max(base_fees)
        priority_fee = max(priority_fees)

        transaction["maxFeePerGas"] = int(
            base_fee * MAX_BASE_FEE_GROWTH_MULTIPLIER
            + priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
        )
        transaction["maxPriorityFeePerGas"] = int(
            priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
        )

    return transaction


async def gas_limit_transaction(transaction: dict, keep_gas_limit: bool = False):
    transaction = transaction.copy()

    if keep_gas_limit and transaction.get("gas"):
        return transaction

    # RPCs treat an explicit gas field as a cap while estimating
    transaction.pop("gas", None)

    async def _estimate_gas(web3: AsyncWeb3) -> int:
        try:
            return await web3.eth.estimate_gas(transaction, block_identifier="latest")
        except Exception as e:  # noqa: BLE001
            logger.info(
                f"Failed to estimate gas using {web3.provider.endpoint_uri}. Error: {e}"
            )
            return 0

    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        gas_limits = await asyncio.gather(*[_estimate_gas(web3) for web3 in web3s])

        gas_limit = max(gas_limits)
        if gas_limit == 0:
            logger.error("Gas estimation failed on all RPCs")
            raise RuntimeError("Gas estimation failed on all RPCs")

        # rounds up
        transaction["gas"] = -(-gas_limit * (100 + GAS_BUFFER_PERCENT) // 100)

    return transaction


async def broadcast_transaction(chain_id, signed_transaction: bytes) -> str:
    async with web3_from_chain_id(chain_id) as web3:
        tx_hash = await web3.eth.send_raw_transaction(signed_transaction)
        return _normalize_hash(tx_hash.hex())


async def wait_for_transaction_receipt(
    chain_id: int,
    txn_hash: str,
    poll_interval: float = 0.1,
    timeout: int = DEFAULT_TRANSACTION_TIMEOUT,
    confirmations: int | None = None,
) -> dict:
    txn_hash = _normalize_hash(txn_hash)
    if confirmations is None:
        confirmations = get_network_settings(chain_id).confirmations

    async def _wait_for_receipt(web3: AsyncWeb3) -> dict:
        return await web3.eth.wait_for_transaction_receipt(
            txn_hash, poll_latency=poll_interval, timeout=timeout
        )

    async def _get_block_number(web3: AsyncWeb3) -> int:
        return await web3.eth.block_number

    async with web3s_from_chain_id(chain_id) as web3s:
        pending = {asyncio.create_task(_wait_for_receipt(web3)) for web3 in web3s}
        receipt = None
        error: BaseException | None = None
        try:
            while pending and receipt is None:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    if task.exception() is not None:
                        error = task.exception()
                        logger.debug(f"Receipt lookup for {txn_hash} failed: {error}")
                    elif receipt is None:
                        receipt = task.result()
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if receipt is None:
            raise error

        if receipt.get("status") == 0:
            raise TransactionRevertedError(txn_hash, dict(receipt))

        target_block = receipt["blockNumber"] + confirmations - 1
        while (
            max(await asyncio.gather(*[_get_block_number(w) for w in web3s]))
            < target_block
        ):
            await asyncio.sleep(poll_interval)
        return receipt


async def ensure_connected_chain(chain_id: int) -> None:
    """Raise ``ChainMismatchError`` unless the RPC answers with ``chain_id``."""
    async with web3_from_chain_id(chain_id) as web3:
        ensure_chain(await web3.eth.chain_id, chain_id)


async def send_transaction(
    transaction: dict,
    sign_callback: Callable,
    wait_for_receipt: bool = True,
    confirmations: int | None = None,
    keep_gas_limit: bool = False,
) -> str:
    if sign_callback is None:
        raise ValueError("sign_callback must be provided to send transaction")

    chain_id = get_transaction_chain_id(transaction)
    logger.info(
        f"Broadcasting transaction to={transaction.get('to')} "
        f"value={transaction.get('value', 0)} chain={chain_id}"
    )
    await ensure_connected_chain(chain_id)
    transaction = await gas_limit_transaction(transaction, keep_gas_limit)
    transaction = await nonce_transaction(transaction)
    transaction = await gas_price_transaction(transaction)
    signed_transaction = await sign_callback(transaction)
    txn_hash = await broadcast_transaction(chain_id, signed_transaction)
    logger.info(f"Transaction broadcasted: {txn_hash}")
    if wait_for_receipt:
        try:
            await wait_for_transaction_receipt(
                chain_id, txn_hash, confirmations=confirmations
            )
        except TransactionRevertedError as exc:
            _raise_revert_error(txn_hash, exc.receipt, transaction, cause=exc)
    return txn_hash


def local_sign_callback(private_key: str) -> Callable:
    account = Account.from_key(private_key)

    async def sign_callback(tx: dict) -> bytes:
        signed = account.sign_transaction(tx)
        return signed.raw_transaction

    return sign_callback


async def sign_and_send_transaction(
    transaction: dict,
    private_key: str,
    wait_for_receipt: bool = True,
    confirmations: int | None = None,
    keep_gas_limit: bool = False,
) -> str:
    return await send_transaction(
        transaction,
        local_sign_callback(private_key),
        wait_for_receipt,
        confirmations=confirmations,
        keep_gas_limit=keep_gas_limit,
    )


def encode_calldata(abi: list[dict[str, Any]], fn_name: str, args: list[Any]) -> str:
    """ABI-encode a call without touching the network."""
    contract = _OFFLINE_WEB3.eth.contract(abi=abi)
    try:
        return contract.encode_abi(fn_name, args)
    except (ValueError, TypeError, Web3Exception) as exc:
        raise ValueError(f"Failed to encode {fn_name}: {exc}") from exc


async def encode_call(
    *,
    target: str,
    abi: list[dict[str, Any]],
    fn_name: str,
    args: list[Any],
    from_address: str,
    chain_id: int,
    value: int = 0,
) -> dict[str, Any]:
    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "to": AsyncWeb3.to_checksum_address(target),
        "data": encode_calldata(abi, fn_name, args),
        "value": int(value),
    }
