from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any

from hexbytes import HexBytes
from loguru import logger
from web3 import AsyncWeb3

from agentfi_ops.adapters.agent_registry_adapter.types import (
    AgentRecord,
    ApprovalRequest,
    BatchCall,
    ConcentratedLiquidityMintParams,
    GenesisAgentNode,
    StrategyCreationPlan,
    TokenDeposit,
)
from agentfi_ops.adapters.multicall_adapter.forwarder import (
    build_forwarder_transaction,
)
from agentfi_ops.adapters.multicall_adapter.types import ForwarderCall
from agentfi_ops.core.constants.agentfi_abi import (
    AGENT_ACCOUNT_ABI,
    CONCENTRATED_LIQUIDITY_AGENT_FACTORY_ABI,
    GENESIS_ACCOUNT_FACTORY_ABI,
    STRATEGY_AGENT_ABI,
    STRATEGY_FACTORY_ABI,
)
from agentfi_ops.core.constants.base import DEFAULT_FORWARDER_GAS_LIMIT
from agentfi_ops.core.constants.erc20_abi import ERC20_ABI
from agentfi_ops.core.utils.collections import deduplicate, to_bytes32
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.selectors import FunctionParams
from agentfi_ops.core.utils.transaction import encode_calldata

# (implementation, function params routed to it)
ModuleOverride = tuple[str, Sequence[FunctionParams]]
# (role, account, grant_access)
RoleGrant = tuple[int | str, str, bool]


def build_agent_tree(
    genesis_records: Iterable[AgentRecord], strategy_records: Iterable[AgentRecord]
) -> list[GenesisAgentNode]:
    """Attach strategy agents to the genesis agent whose first TBA owns them."""
    by_owner: dict[str, list[AgentRecord]] = {}
    for record in strategy_records:
        by_owner.setdefault(record.owner.lower(), []).append(record)

    tree = []
    for genesis in genesis_records:
        if genesis.agent_address is None:
            continue
        tree.append(
            GenesisAgentNode(
                genesis=genesis,
                strategies=by_owner.get(genesis.agent_address.lower(), []),
            )
        )
    return tree


def unique_owners(tree: Iterable[GenesisAgentNode]) -> list[str]:
    return deduplicate(AsyncWeb3.to_checksum_address(n.genesis.owner) for n in tree)


def wrap_agent_calls(calls: Sequence[BatchCall]) -> str:
    """Calldata for an agent account running ``calls``.

    A single call goes through ``execute`` and several through ``executeBatch``.
    """
    if not calls:
        raise ValueError("agent account needs at least one call")
    if len(calls) == 1:
        return encode_calldata(AGENT_ACCOUNT_ABI, "execute", list(calls[0].as_tuple()))
    return encode_calldata(
        AGENT_ACCOUNT_ABI, "executeBatch", [[c.as_tuple() for c in calls]]
    )


def _agent_transaction(
    chain_id: int, sender: str, agent_address: str, data: str, value: int = 0
) -> dict[str, Any]:
    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(sender),
        "to": AsyncWeb3.to_checksum_address(agent_address),
        "data": data,
        "value": int(value),
    }


def flag_diffs(
    expected: Sequence[tuple[str, bool]], current: Sequence[Any]
) -> list[tuple[str, bool]]:
    """Entries of ``expected`` whose on-chain flag in ``current`` differs."""
    return [
        (AsyncWeb3.to_checksum_address(account), bool(flag))
        for (account, flag), actual in zip(expected, current, strict=True)
        if bool(actual) != bool(flag)
    ]


def _normalize_setting(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, (list, tuple)):
        return [_normalize_setting(v) for v in value]
    return value


def _setting(settings: Mapping[str, Any] | Sequence[Any], field: str, idx: int) -> Any:
    if isinstance(settings, Mapping):
        if field in settings:
            return settings[field]
        # getters name their outputs with a trailing underscore
        return settings.get(f"{field}_")
    return settings[idx]


def settings_diff(
    current: Mapping[str, Any] | Sequence[Any],
    expected: Mapping[str, Any],
    fields: Sequence[str],
) -> list[str]:
    """Names of ``fields`` whose values differ, ignoring hex and address case."""
    return [
        field
        for idx, field in enumerate(fields)
        if _normalize_setting(_setting(current, field, idx))
        != _normalize_setting(expected[field])
    ]


async def post_settings_if_changed(
    current: Mapping[str, Any] | Sequence[Any],
    expected: Mapping[str, Any],
    fields: Sequence[str],
    post: Callable[[Mapping[str, Any]], Awaitable[Any]],
) -> Any | None:
    """Await ``post(expected)`` only when the current settings differ.

    Returns whatever ``post`` returned, or ``None`` when nothing changed.
    """
    diffs = settings_diff(current, expected, fields)
    if not diffs:
        logger.debug("Agent creation settings unchanged, skipping post")
        return None
    logger.info(f"Posting agent creation settings, changed: {', '.join(diffs)}")
    return await post(expected)


def build_strategy_initialization_call(
    strategy_account_abi: list[dict[str, Any]],
    overrides: Sequence[ModuleOverride],
    roles: Sequence[RoleGrant],
) -> str:
    """``multicall([blastConfigure(), setOverrides(...), setRoles(...)])`` calldata."""
    override_args = [
        (
            AsyncWeb3.to_checksum_address(implementation),
            [fp.as_tuple() for fp in params],
        )
        for implementation, params in overrides
    ]
    role_args = [
        (
            to_bytes32(role),
            AsyncWeb3.to_checksum_address(account),
            bool(grant),
        )
        for role, account, grant in roles
    ]
    txdatas = [
        encode_calldata(strategy_account_abi, "blastConfigure", []),
        encode_calldata(strategy_account_abi, "setOverrides", [override_args]),
        encode_calldata(strategy_account_abi, "setRoles", [role_args]),
    ]
    return encode_calldata(strategy_account_abi, "multicall", [txdatas])


def build_strategy_creation_plan(
    *,
    chain_id: int,
    sender: str,
    genesis_agent_id: int,
    genesis_agent_address: str,
    creates_genesis_tba: bool,
    genesis_config_id: int,
    strategy_config_id: int,
    token_deposits: Sequence[TokenDeposit],
    deposit_eth: int = 0,
    approvals: Sequence[ApprovalRequest] = (),
) -> StrategyCreationPlan:
    """Assemble the transaction creating a strategy agent from a genesis agent.

    The genesis TBA pulls each ERC-20 deposit from ``sender`` into the strategy
    factory, then calls ``createAgent``. When the TBA does not exist yet the
    multicall forwarder creates it and calls it in the same transaction.
    """
    strategy_factory = AsyncWeb3.to_checksum_address(
        contract_address(chain_id, "strategy_factory")
    )
    sender = AsyncWeb3.to_checksum_address(sender)
    genesis_agent_address = AsyncWeb3.to_checksum_address(genesis_agent_address)

    batch = [
        BatchCall(
            to=deposit.token,
            data=encode_calldata(
                ERC20_ABI,
                "transferFrom",
                [sender, strategy_factory, deposit.amount],
            ),
        )
        for deposit in token_deposits
        if not deposit.is_eth
    ]
    if token_deposits:
        factory_data = encode_calldata(
            STRATEGY_FACTORY_ABI,
            "createAgent",
            [strategy_config_id, [d.as_tuple() for d in token_deposits]],
        )
    else:
        factory_data = encode_calldata(
            STRATEGY_FACTORY_ABI, "createAgent", [strategy_config_id]
        )
    batch.append(BatchCall(to=strategy_factory, value=deposit_eth, data=factory_data))
    agent_data = wrap_agent_calls(batch)

    if creates_genesis_tba:
        create_account = ForwarderCall(
            target=contract_address(chain_id, "genesis_account_factory"),
            call_data=encode_calldata(
                GENESIS_ACCOUNT_FACTORY_ABI,
                "createAccount",
                [genesis_agent_id, genesis_config_id],
            ),
        )
        agent_call = ForwarderCall(
            target=genesis_agent_address, call_data=agent_data, value=deposit_eth
        )
        transaction = build_forwarder_transaction(
            [create_account, agent_call], sender, chain_id
        )
        if deposit_eth:
            transaction["gas"] = DEFAULT_FORWARDER_GAS_LIMIT
    else:
        transaction = _agent_transaction(
            chain_id, sender, genesis_agent_address, agent_data, deposit_eth
        )

    return StrategyCreationPlan(
        genesis_agent_id=genesis_agent_id,
        genesis_agent_address=genesis_agent_address,
        creates_genesis_tba=creates_genesis_tba,
        creation_settings_id=strategy_config_id,
        deposit_eth=deposit_eth,
        approvals=list(approvals),
        batch=batch,
        transaction=transaction,
    )


def build_strategy_deposit(
    *,
    chain_id: int,
    sender: str,
    genesis_agent_address: str,
    strategy_agent_address: str,
    token_deposits: Sequence[TokenDeposit],
) -> dict[str, Any]:
    """Transaction adding funds to a strategy agent through its genesis TBA.

    The genesis TBA pulls each ERC-20 from ``sender`` straight into the
    strategy agent and forwards the ETH entries, then has the strategy agent
    put its balance to work with ``moduleA_depositBalance()``.
    """
    if not token_deposits:
        raise ValueError("deposit needs at least one token amount")
    sender = AsyncWeb3.to_checksum_address(sender)
    strategy_agent_address = AsyncWeb3.to_checksum_address(strategy_agent_address)
    deposit_eth = sum(d.amount for d in token_deposits if d.is_eth)

    batch = [
        BatchCall(
            to=deposit.token,
            data=encode_calldata(
                ERC20_ABI,
                "transferFrom",
                [sender, strategy_agent_address, deposit.amount],
            ),
        )
        for deposit in token_deposits
        if not deposit.is_eth
    ]
    if deposit_eth:
        batch.append(BatchCall(to=strategy_agent_address, value=deposit_eth, data="0x"))
    batch.append(
        BatchCall(
            to=strategy_agent_address,
            data=encode_calldata(STRATEGY_AGENT_ABI, "moduleA_depositBalance", []),
        )
    )
    return _agent_transaction(
        chain_id, sender, genesis_agent_address, wrap_agent_calls(batch), deposit_eth
    )


def build_strategy_withdrawal(
    *,
    chain_id: int,
    sender: str,
    genesis_agent_address: str,
    strategy_agent_address: str,
    receiver: str | None = None,
) -> dict[str, Any]:
    """Transaction emptying a strategy agent, to its owner or to ``receiver``."""
    if receiver is None:
        data = encode_calldata(STRATEGY_AGENT_ABI, "moduleA_withdrawBalance", [])
    else:
        data = encode_calldata(
            STRATEGY_AGENT_ABI,
            "moduleA_withdrawBalanceTo",
            [AsyncWeb3.to_checksum_address(receiver)],
        )
    call = BatchCall(to=strategy_agent_address, data=data)
    return _agent_transaction(
        chain_id, sender, genesis_agent_address, wrap_agent_calls([call])
    )


def build_concentrated_liquidity_creation(
    *,
    chain_id: int,
    sender: str,
    mint_params: ConcentratedLiquidityMintParams,
    deposit0: TokenDeposit,
    deposit1: TokenDeposit,
    root_agent_address: str | None = None,
) -> dict[str, Any]:
    """Transaction creating a concentrated liquidity agent.

    With ``root_agent_address`` the new agent is owned by that agent,
    otherwise the factory also mints an explorer agent to hold it.
    """
    factory = AsyncWeb3.to_checksum_address(
        contract_address(chain_id, "concentrated_liquidity_agent_factory")
    )
    args: list[Any] = [mint_params.as_tuple(), deposit0.as_tuple(), deposit1.as_tuple()]
    if root_agent_address is None:
        fn_name = "createConcentratedLiquidityAgentAndExplorer"
    else:
        fn_name = "createConcentratedLiquidityAgentForRoot"
        args.append(AsyncWeb3.to_checksum_address(root_agent_address))
    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(sender),
        "to": factory,
        "data": encode_calldata(
            CONCENTRATED_LIQUIDITY_AGENT_FACTORY_ABI, fn_name, args
        ),
        "value": sum(d.amount for d in (deposit0, deposit1) if d.is_eth),
    }
