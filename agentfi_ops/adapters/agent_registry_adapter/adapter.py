from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from web3 import AsyncWeb3

from agentfi_ops.adapters.agent_registry_adapter.strategy import (
    build_agent_tree,
    build_concentrated_liquidity_creation,
    build_strategy_creation_plan,
    build_strategy_deposit,
    build_strategy_withdrawal,
    flag_diffs,
    post_settings_if_changed,
)
from agentfi_ops.adapters.agent_registry_adapter.types import (
    AgentRecord,
    AgentTba,
    ApprovalRequest,
    ConcentratedLiquidityMintParams,
    GenesisAgentNode,
    StrategyCreationPlan,
    TokenDeposit,
)
from agentfi_ops.adapters.multicall_adapter.adapter import (
    MulticallAdapter,
    multicall_chunked,
)
from agentfi_ops.adapters.multicall_adapter.types import ContractCall
from agentfi_ops.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from agentfi_ops.core.adapters.decorators import status_tuple
from agentfi_ops.core.constants.agentfi_abi import (
    AGENT_COLLECTION_ABI,
    AGENT_FACTORY_ABI,
    AGENT_REGISTRY_ABI,
    GENESIS_ACCOUNT_FACTORY_ABI,
    OPERATOR_ABI,
)
from agentfi_ops.core.constants.base import MAX_UINT256
from agentfi_ops.core.constants.contracts import STRATEGY_MODULES
from agentfi_ops.core.constants.erc20_abi import ERC20_ABI
from agentfi_ops.core.utils.collections import bytes_to_address
from agentfi_ops.core.utils.events import AgentCreationSummary, watch_tx_for_events
from agentfi_ops.core.utils.network import address_book_chain_id, contract_address
from agentfi_ops.core.utils.tba import fetch_tba_address
from agentfi_ops.core.utils.transaction import encode_call, send_transaction
from agentfi_ops.core.utils.web3 import web3_from_chain_id
from agentfi_ops.core.utils.web3_batch import batch_web3_calls

LIST_AGENTS_CHUNK_SIZE = 1000

STRATEGY_TYPE_SELECTOR = "0x82ccd330"  # strategyType()
MODULE_A_DEPOSIT_BALANCE_SELECTOR = "0x7bb485dc"  # moduleA_depositBalance()

AGENT_CREATION_SETTINGS_FIELDS = (
    "strategyAccountImpl",
    "explorerAccountImpl",
    "strategyInitializationCall",
    "explorerInitializationCall",
    "isActive",
)

COLLECTION_NAMES = ("genesis", "strategy", "explorer")

UNKNOWN_AGENT_TYPE = "unknown"

_TBA_OUTPUT = ("(address,address)[]",)


class AgentRegistryAdapter(BaseAdapter):
    """Reads and maintains AgentFi agents through the AgentRegistry.

    Collections may be given by address or by the names ``"genesis"``,
    ``"strategy"`` and ``"explorer"``.
    """

    adapter_type = "AGENT_REGISTRY"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        wallet_address: str | None = None,
        sign_callback: Callable | None = None,
        registry_address: str | None = None,
    ) -> None:
        super().__init__(
            "agent_registry_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self.registry_address = AsyncWeb3.to_checksum_address(
            registry_address or contract_address(self.chain_id, "agent_registry")
        )

    def _collection(self, collection: str) -> str:
        if collection in COLLECTION_NAMES:
            collection = contract_address(self.chain_id, f"{collection}_collection")
        return AsyncWeb3.to_checksum_address(collection)

    @staticmethod
    def _to_tbas(raw: Sequence[Sequence[str]]) -> list[AgentTba]:
        return [
            AgentTba(agent_address=agent, implementation_address=impl)
            for agent, impl in raw
        ]

    async def _get_tbas(self, web3: AsyncWeb3, collection: str, agent_id: int):
        registry = web3.eth.contract(
            address=self.registry_address, abi=AGENT_REGISTRY_ABI
        )
        raw = await registry.functions.getTbasOfNft(
            self._collection(collection), int(agent_id)
        ).call()
        return self._to_tbas(raw)

    @status_tuple
    async def get_tbas_of_nft(self, collection: str, agent_id: int) -> list[AgentTba]:
        async with web3_from_chain_id(self.chain_id) as web3:
            return await self._get_tbas(web3, collection, agent_id)

    def _operator_target(self, contract: str) -> tuple[str, str]:
        """Address and log label of an operator-managed contract."""
        if contract == "agent_registry":
            return self.registry_address, "AgentRegistry"
        if contract == "dispatcher":
            address = contract_address(self.chain_id, "dispatcher")
            return AsyncWeb3.to_checksum_address(address), "Dispatcher"
        address = AsyncWeb3.to_checksum_address(contract)
        return address, address

    @status_tuple
    async def is_operator(self, account: str, contract: str = "agent_registry") -> bool:
        target, _ = self._operator_target(contract)
        async with web3_from_chain_id(self.chain_id) as web3:
            registry = web3.eth.contract(address=target, abi=OPERATOR_ABI)
            return bool(
                await registry.functions.isOperator(
                    web3.to_checksum_address(account)
                ).call()
            )

    async def _sync_flags(
        self,
        target: str,
        label: str,
        read_signature: str,
        write_fn: tuple[list[dict[str, Any]], str],
        expected: Sequence[tuple[str, bool]],
    ) -> str | None:
        """Send ``write_fn`` with the entries of ``expected`` that differ on-chain."""
        if not expected:
            return None
        accounts = [AsyncWeb3.to_checksum_address(a) for a, _ in expected]
        async with web3_from_chain_id(self.chain_id) as web3:
            current = await multicall_chunked(
                web3,
                [
                    ContractCall(target, read_signature, (account,), ("bool",))
                    for account in accounts
                ],
            )
        diffs = flag_diffs(expected, current)
        if not diffs:
            self.logger.debug(f"{label} {write_fn[1]} already up to date")
            return None

        self.logger.info(f"{label} {write_fn[1]} for {len(diffs)} address(es)")
        abi, fn_name = write_fn
        transaction = await encode_call(
            target=target,
            abi=abi,
            fn_name=fn_name,
            args=[diffs],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        return await send_transaction(transaction, self.sign_callback)

    @require_wallet
    @status_tuple
    async def set_operators(
        self, expected: Sequence[tuple[str, bool]], contract: str = "agent_registry"
    ) -> str | None:
        """Bring operator flags to ``expected``; returns the txn hash or ``None``.

        ``contract`` is ``"agent_registry"``, ``"dispatcher"`` or an address.
        """
        target, label = self._operator_target(contract)
        return await self._sync_flags(
            target,
            label,
            "isOperator(address)",
            (OPERATOR_ABI, "setOperators"),
            expected,
        )

    @require_wallet
    @status_tuple
    async def set_factory_whitelist(
        self, collection: str, expected: Sequence[tuple[str, bool]]
    ) -> str | None:
        """Bring the factory whitelist of ``collection`` to ``expected``."""
        target = self._collection(collection)
        return await self._sync_flags(
            target,
            f"Collection {target}",
            "factoryIsWhitelisted(address)",
            (AGENT_COLLECTION_ABI, "setWhitelist"),
            expected,
        )

    async def _list_agents(
        self,
        web3: AsyncWeb3,
        collection: str,
        block_identifier: int,
        chunk_size: int,
    ) -> list[AgentRecord]:
        collection = self._collection(collection)
        (total,) = await multicall_chunked(
            web3,
            [ContractCall(collection, "totalSupply()")],
            block_identifier=block_identifier,
        )
        calls = []
        for agent_id in range(1, int(total) + 1):
            calls.append(
                ContractCall(collection, "ownerOf(uint256)", (agent_id,), ("address",))
            )
            calls.append(
                ContractCall(
                    self.registry_address,
                    "getTbasOfNft(address,uint256)",
                    (collection, agent_id),
                    _TBA_OUTPUT,
                )
            )
        results = await multicall_chunked(
            web3, calls, block_identifier=block_identifier, chunk_size=chunk_size
        )
        return [
            AgentRecord(
                agent_id=idx + 1,
                owner=AsyncWeb3.to_checksum_address(results[2 * idx]),
                tbas=self._to_tbas(results[2 * idx + 1]),
            )
            for idx in range(int(total))
        ]

    @status_tuple
    async def list_agents(
        self,
        collection: str,
        owner_filter: str | None = None,
        block_identifier: str | int = "latest",
        chunk_size: int = LIST_AGENTS_CHUNK_SIZE,
    ) -> list[AgentRecord]:
        async with web3_from_chain_id(self.chain_id) as web3:
            if block_identifier == "latest":
                block_identifier = await web3.eth.block_number
            records = await self._list_agents(
                web3, collection, block_identifier, chunk_size
            )
        if owner_filter is not None:
            records = [r for r in records if r.owner.lower() == owner_filter.lower()]
        return records

    @status_tuple
    async def get_agent_tree(
        self, chunk_size: int = LIST_AGENTS_CHUNK_SIZE
    ) -> list[GenesisAgentNode]:
        """Genesis agents with TBAs and the strategy agents each TBA owns."""
        async with web3_from_chain_id(self.chain_id) as web3:
            block = await web3.eth.block_number
            genesis = await self._list_agents(web3, "genesis", block, chunk_size)
            strategies = await self._list_agents(web3, "strategy", block, chunk_size)
        return build_agent_tree(genesis, strategies)

    @status_tuple
    async def find_agent_type(
        self, address: str, known_modules: Mapping[str, str] | None = None
    ) -> str:
        """Name the strategy type of the account at ``address``.

        The account's override for ``strategyType()`` or
        ``moduleA_depositBalance()`` points at its module implementation. If
        neither matches a known module the account's own ``strategyType()`` is
        used, and ``"unknown"`` when that reverts too.
        """
        if known_modules is None:
            known_modules = STRATEGY_MODULES.get(
                address_book_chain_id(self.chain_id), {}
            )
        modules = {impl.lower(): name for impl, name in known_modules.items()}
        account = AsyncWeb3.to_checksum_address(address)
        strategy_type = ContractCall(account, "strategyType()", (), ("string",))
        overrides = [
            ContractCall(account, "overrides(bytes4)", (bytes.fromhex(sel[2:]),))
            for sel in (STRATEGY_TYPE_SELECTOR, MODULE_A_DEPOSIT_BALANCE_SELECTOR)
        ]
        calls = [(c.target, c.call_data) for c in (strategy_type, *overrides)]
        async with web3_from_chain_id(self.chain_id) as web3:
            multicall = MulticallAdapter(web3=web3, chain_id=self.chain_id)
            results = await multicall.aggregate3(calls, allow_failure=True)

        for ok, data in results[1:]:
            # overrides() returns (address implementation, bytes32 requiredRole)
            if not ok or len(data) != 64:
                continue
            name = modules.get(bytes_to_address(data[:32]).lower())
            if name is not None:
                return name

        ok, data = results[0]
        if ok and data:
            try:
                name = strategy_type.decode(data)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug(f"strategyType() of {account} undecodable: {exc}")
            else:
                if name:
                    return str(name)
        return UNKNOWN_AGENT_TYPE

    @status_tuple
    async def get_agent_creation_settings(self, factory: str) -> dict[str, Any]:
        async with web3_from_chain_id(self.chain_id) as web3:
            contract = web3.eth.contract(
                address=web3.to_checksum_address(factory), abi=AGENT_FACTORY_ABI
            )
            values = await contract.functions.getAgentCreationSettings().call()
        return dict(zip(AGENT_CREATION_SETTINGS_FIELDS, values, strict=True))

    @require_wallet
    @status_tuple
    async def post_agent_creation_settings(
        self, factory: str, expected: Mapping[str, Any]
    ) -> str | None:
        """Post ``expected`` to ``factory`` unless it already holds those settings."""
        factory = AsyncWeb3.to_checksum_address(factory)
        async with web3_from_chain_id(self.chain_id) as web3:
            contract = web3.eth.contract(address=factory, abi=AGENT_FACTORY_ABI)
            current = await contract.functions.getAgentCreationSettings().call()

        async def _post(settings: Mapping[str, Any]) -> str:
            transaction = await encode_call(
                target=factory,
                abi=AGENT_FACTORY_ABI,
                fn_name="postAgentCreationSettings",
                args=[tuple(settings[f] for f in AGENT_CREATION_SETTINGS_FIELDS)],
                from_address=self.wallet_address,
                chain_id=self.chain_id,
            )
            return await send_transaction(transaction, self.sign_callback)

        return await post_settings_if_changed(
            current, expected, AGENT_CREATION_SETTINGS_FIELDS, _post
        )

    async def _missing_approvals(
        self, web3: AsyncWeb3, deposits: Sequence[TokenDeposit], spender: str
    ) -> list[ApprovalRequest]:
        """ERC-20 deposits the wallet has not yet allowed ``spender`` to pull."""
        owner = AsyncWeb3.to_checksum_address(self.wallet_address)
        erc20s = [d for d in deposits if not d.is_eth]
        allowances = await multicall_chunked(
            web3,
            [
                ContractCall(d.token, "allowance(address,address)", (owner, spender))
                for d in erc20s
            ],
        )
        return [
            ApprovalRequest(
                token=d.token, owner=owner, spender=spender, amount=d.amount
            )
            for d, allowance in zip(erc20s, allowances, strict=True)
            if int(allowance) < d.amount
        ]

    async def _approve(self, approvals: Sequence[ApprovalRequest]) -> None:
        for approval in approvals:
            self.logger.info(f"Approving {approval.token} to {approval.spender}")
            transaction = await encode_call(
                target=approval.token,
                abi=ERC20_ABI,
                fn_name="approve",
                args=[approval.spender, MAX_UINT256],
                from_address=approval.owner,
                chain_id=self.chain_id,
            )
            await send_transaction(transaction, self.sign_callback)
    async def _genesis_agent_address(
        self, web3: AsyncWeb3, genesis_agent_id: int
    ) -> tuple[str, bool]:
        tbas = await self._get_tbas(web3, "genesis", genesis_agent_id)
        if tbas:
            return tbas[0].agent_address, False

        factory = web3.eth.contract(
            address=web3.to_checksum_address(
                contract_address(self.chain_id, "genesis_account_factory")
            ),
            abi=GENESIS_ACCOUNT_FACTORY_ABI,
        )
        creation_index, chain_id = await batch_web3_calls(
            web3,
            lambda: factory.functions.getCreateCount(int(genesis_agent_id)).call(),
            lambda: web3.eth.chain_id,
        )
        address = await fetch_tba_address(
            web3,
            contract_address(self.chain_id, "genesis_account_impl"),
            int(creation_index) + 1,
            int(chain_id),
            contract_address(self.chain_id, "genesis_collection"),
            genesis_agent_id,
        )
        return address, True

    @require_wallet
    @status_tuple
    async def plan_strategy_creation(
        self,
        genesis_agent_id: int,
        strategy_config_id: int,
        token_deposits: Sequence[TokenDeposit] = (),
        deposit_eth: int | None = None,
        genesis_config_id: int = 1,
    ) -> StrategyCreationPlan:
        """Look up the genesis TBA and allowances, then build the creation txn.

        ``deposit_eth`` defaults to the sum of the ETH entries in
        ``token_deposits``.
        """
        if deposit_eth is None:
            deposit_eth = sum(d.amount for d in token_deposits if d.is_eth)
        sender = AsyncWeb3.to_checksum_address(self.wallet_address)

        async with web3_from_chain_id(self.chain_id) as web3:
            genesis_address, creates_tba = await self._genesis_agent_address(
                web3, genesis_agent_id
            )
            approvals = await self._missing_approvals(
                web3, token_deposits, genesis_address
            )

        if creates_tba:
            self.logger.info(
                f"Genesis agent {genesis_agent_id} has no TBA yet, "
                f"it will be created at {genesis_address}"
            )
        return build_strategy_creation_plan(
            chain_id=self.chain_id,
            sender=sender,
            genesis_agent_id=genesis_agent_id,
            genesis_agent_address=genesis_address,
            creates_genesis_tba=creates_tba,
            genesis_config_id=genesis_config_id,
            strategy_config_id=strategy_config_id,
            token_deposits=token_deposits,
            deposit_eth=deposit_eth,
            approvals=approvals,
        )

    @require_wallet
    @status_tuple
    async def create_strategy_agent(
        self,
        genesis_agent_id: int,
        strategy_config_id: int,
        token_deposits: Sequence[TokenDeposit] = (),
        deposit_eth: int | None = None,
        genesis_config_id: int = 1,
    ) -> AgentCreationSummary:
        ok, plan = await self.plan_strategy_creation(
            genesis_agent_id,
            strategy_config_id,
            token_deposits,
            deposit_eth,
            genesis_config_id,
        )
        if not ok:
            raise RuntimeError(plan)

        await self._approve(plan.approvals)

        self.logger.info(
            f"Creating strategy agent from genesis agent {genesis_agent_id}"
        )
        txn_hash = await send_transaction(
            plan.transaction,
            self.sign_callback,
            wait_for_receipt=False,
            keep_gas_limit=True,
        )
        return await watch_tx_for_events(self.chain_id, txn_hash)

    @require_wallet
    @status_tuple
    async def deposit_to_strategy_agent(
        self,
        genesis_agent_address: str,
        strategy_agent_address: str,
        token_deposits: Sequence[TokenDeposit],
    ) -> str:
        """Top up a strategy agent owned by the wallet's genesis agent TBA."""
        genesis_agent_address = AsyncWeb3.to_checksum_address(genesis_agent_address)
        transaction = build_strategy_deposit(
            chain_id=self.chain_id,
            sender=self.wallet_address,
            genesis_agent_address=genesis_agent_address,
            strategy_agent_address=strategy_agent_address,
            token_deposits=token_deposits,
        )
        async with web3_from_chain_id(self.chain_id) as web3:
            approvals = await self._missing_approvals(
                web3, token_deposits, genesis_agent_address
            )
        await self._approve(approvals)

        self.logger.info(f"Depositing into strategy agent {strategy_agent_address}")
        return await send_transaction(transaction, self.sign_callback)

    @require_wallet
    @status_tuple
    async def withdraw_from_strategy_agent(
        self,
        genesis_agent_address: str,
        strategy_agent_address: str,
        receiver: str | None = None,
    ) -> str:
        """Withdraw a strategy agent's whole balance to its owner or ``receiver``."""
        transaction = build_strategy_withdrawal(
            chain_id=self.chain_id,
            sender=self.wallet_address,
            genesis_agent_address=genesis_agent_address,
            strategy_agent_address=strategy_agent_address,
            receiver=receiver,
        )
        self.logger.info(
            f"Withdrawing from strategy agent {strategy_agent_address}"
            + (f" to {receiver}" if receiver else "")
        )
        return await send_transaction(transaction, self.sign_callback)

    async def _root_agent_address(self, web3: AsyncWeb3) -> str | None:
        block = await web3.eth.block_number
        records = await self._list_agents(
            web3, "genesis", block, LIST_AGENTS_CHUNK_SIZE
        )
        owner = self.wallet_address.lower()
        for record in records:
            if record.owner.lower() == owner and record.agent_address:
                return record.agent_address
        return None

    async def _check_balances(
        self, web3: AsyncWeb3, deposits: Sequence[TokenDeposit]
    ) -> None:
        owner = AsyncWeb3.to_checksum_address(self.wallet_address)
        erc20s = [d for d in deposits if not d.is_eth]
        balances = await multicall_chunked(
            web3,
            [ContractCall(d.token, "balanceOf(address)", (owner,)) for d in erc20s],
        )
        short = [
            (d.token, int(balance), d.amount)
            for d, balance in zip(erc20s, balances, strict=True)
            if int(balance) < d.amount
        ]
        eth = sum(d.amount for d in deposits if d.is_eth)
        if eth:
            balance = int(await web3.eth.get_balance(owner))
            if balance < eth:
                short.append(("ETH", balance, eth))
        if short:
            token, have, need = short[0]
            raise ValueError(f"Insufficient {token} balance: have {have}, need {need}")

    @require_wallet
    @status_tuple
    async def create_concentrated_liquidity_agent(
        self,
        mint_params: ConcentratedLiquidityMintParams,
        deposit0: TokenDeposit,
        deposit1: TokenDeposit,
        root_agent_address: str | None = None,
        find_root_agent: bool = True,
    ) -> AgentCreationSummary:
        """Create a concentrated liquidity agent funded by the wallet.

        Without ``root_agent_address`` the first TBA of the lowest-id genesis
        agent the wallet owns becomes the root. When there is none, or
        ``find_root_agent`` is false, the factory mints an explorer agent to
        hold the new agent.
        """
        deposits = [deposit0, deposit1]
        factory = AsyncWeb3.to_checksum_address(
            contract_address(self.chain_id, "concentrated_liquidity_agent_factory")
        )
        async with web3_from_chain_id(self.chain_id) as web3:
            if root_agent_address is None and find_root_agent:
                root_agent_address = await self._root_agent_address(web3)
            await self._check_balances(web3, deposits)
            approvals = await self._missing_approvals(web3, deposits, factory)
        await self._approve(approvals)

        transaction = build_concentrated_liquidity_creation(
            chain_id=self.chain_id,
            sender=self.wallet_address,
            mint_params=mint_params,
            deposit0=deposit0,
            deposit1=deposit1,
            root_agent_address=root_agent_address,
        )
        if root_agent_address is None:
            self.logger.info("Creating concentrated liquidity agent and explorer")
        else:
            self.logger.info(
                f"Creating concentrated liquidity agent for {root_agent_address}"
            )
        txn_hash = await send_transaction(
            transaction, self.sign_callback, wait_for_receipt=False
        )
        return await watch_tx_for_events(self.chain_id, txn_hash)
