from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from eth_abi import encode

from agentfi_ops.adapters.agent_registry_adapter.adapter import (
    AgentRegistryAdapter,
)
from agentfi_ops.adapters.agent_registry_adapter.types import (
    ConcentratedLiquidityMintParams,
    TokenDeposit,
)
from agentfi_ops.adapters.multicall_adapter.adapter import MulticallAdapter
from agentfi_ops.core.constants import CHAIN_ID_BLAST, MAX_UINT256, ZERO_ADDRESS
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.selectors import calc_sighash

MODULE = "agentfi_ops.adapters.agent_registry_adapter.adapter"

OWNER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
TBA = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
IMPL = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
USDB = "0x4300000000000000000000000000000000000003"


async def _value(value):
    return value


class _Eth:
    def __init__(self, block: int = 77):
        self._block = block
        self.contract = MagicMock()

    @property
    def block_number(self):
        return _value(self._block)


def _web3(block: int = 77):
    web3 = MagicMock()
    web3.eth = _Eth(block)
    return web3


def _patch_web3(web3):
    patcher = patch(f"{MODULE}.web3_from_chain_id")
    mock_ctx = patcher.start()
    mock_ctx.return_value.__aenter__.return_value = web3
    return patcher


@pytest.fixture
def adapter():
    return AgentRegistryAdapter(
        chain_id=CHAIN_ID_BLAST,
        wallet_address=OWNER,
        sign_callback=AsyncMock(),
    )


class TestListAgents:
    @pytest.mark.asyncio
    async def test_list_agents_reads_owner_and_tbas(self, adapter):
        chunked = AsyncMock(side_effect=[[2], [OWNER, [(TBA, IMPL)], OTHER, []]])
        patcher = _patch_web3(_web3(block=77))
        try:
            with patch(f"{MODULE}.multicall_chunked", chunked):
                ok, records = await adapter.list_agents("genesis")
        finally:
            patcher.stop()

        assert ok, records
        assert [r.agent_id for r in records] == [1, 2]
        assert records[0].agent_address == TBA
        assert records[1].agent_address is None

        listing = chunked.await_args_list[1]
        calls = listing.args[1]
        assert listing.kwargs["block_identifier"] == 77
        assert [c.signature for c in calls] == [
            "ownerOf(uint256)",
            "getTbasOfNft(address,uint256)",
        ] * 2

    @pytest.mark.asyncio
    async def test_owner_filter(self, adapter):
        chunked = AsyncMock(side_effect=[[2], [OWNER, [], OTHER, []]])
        patcher = _patch_web3(_web3())
        try:
            with patch(f"{MODULE}.multicall_chunked", chunked):
                ok, records = await adapter.list_agents(
                    "strategy", owner_filter=OTHER.lower()
                )
        finally:
            patcher.stop()

        assert ok
        assert [r.agent_id for r in records] == [2]

    @pytest.mark.asyncio
    async def test_agent_tree_uses_one_block(self, adapter):
        chunked = AsyncMock(
            side_effect=[
                [1],
                [OWNER, [(TBA, IMPL)]],
                [2],
                [TBA.lower(), [], OTHER, []],
            ]
        )
        patcher = _patch_web3(_web3(block=12))
        try:
            with patch(f"{MODULE}.multicall_chunked", chunked):
                ok, tree = await adapter.get_agent_tree()
        finally:
            patcher.stop()

        assert ok, tree
        assert len(tree) == 1
        assert [s.agent_id for s in tree[0].strategies] == [1]
        blocks = {c.kwargs["block_identifier"] for c in chunked.await_args_list}
        assert blocks == {12}

    def test_unknown_collection_name(self, adapter):
        with pytest.raises(ValueError):
            adapter._collection("basket")


def _word(address: str) -> bytes:
    return bytes(12) + bytes.fromhex(address[2:])


class TestFindAgentType:
    async def _find(self, adapter, monkeypatch, results):
        async def fake(self, calls, *, allow_failure=True, block_identifier=None):
            assert len(calls) == 3
            return results

        monkeypatch.setattr(MulticallAdapter, "aggregate3", fake)
        patcher = _patch_web3(MagicMock())
        try:
            return await adapter.find_agent_type(
                TBA, known_modules={IMPL: "Dex Balancer"}
            )
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_override_matches_module(self, adapter, monkeypatch):
        override = _word(IMPL) + bytes(32)
        results = [(False, b""), (False, b""), (True, override)]
        assert await self._find(adapter, monkeypatch, results) == (
            True,
            "Dex Balancer",
        )

    @pytest.mark.asyncio
    async def test_falls_back_to_strategy_type(self, adapter, monkeypatch):
        results = [
            (True, encode(["string"], ["Loopooor"])),
            (True, _word(OTHER) + bytes(32)),
            (True, _word(IMPL)),
        ]
        assert await self._find(adapter, monkeypatch, results) == (True, "Loopooor")

    @pytest.mark.asyncio
    async def test_unknown(self, adapter, monkeypatch):
        results = [(False, b""), (False, b""), (False, b"")]
        assert await self._find(adapter, monkeypatch, results) == (True, "unknown")


class TestRegistryReads:
    @pytest.mark.asyncio
    async def test_get_tbas_of_nft(self, adapter):
        web3 = _web3()
        getter = web3.eth.contract.return_value.functions.getTbasOfNft
        getter.return_value.call = AsyncMock(return_value=[(TBA.lower(), IMPL)])
        patcher = _patch_web3(web3)
        try:
            ok, tbas = await adapter.get_tbas_of_nft("genesis", 5)
        finally:
            patcher.stop()

        assert ok, tbas
        assert tbas[0].agent_address == TBA
        assert tbas[0].implementation_address == IMPL
        assert getter.call_args.args[1] == 5

    @pytest.mark.asyncio
    async def test_is_operator(self, adapter):
        web3 = _web3()
        web3.to_checksum_address = lambda a: a
        getter = web3.eth.contract.return_value.functions.isOperator
        getter.return_value.call = AsyncMock(return_value=1)
        patcher = _patch_web3(web3)
        try:
            assert await adapter.is_operator(OTHER) == (True, True)
        finally:
            patcher.stop()
        getter.assert_called_once_with(OTHER)


class TestOperators:
    @pytest.mark.asyncio
    async def test_only_changed_flags_are_sent(self, adapter):
        chunked = AsyncMock(return_value=[True, False])
        send = AsyncMock(return_value="0xhash")
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", chunked),
                patch(f"{MODULE}.send_transaction", send),
            ):
                ok, txn_hash = await adapter.set_operators(
                    [(OWNER, True), (OTHER, True)]
                )
        finally:
            patcher.stop()

        assert ok and txn_hash == "0xhash"
        transaction = send.await_args.args[0]
        assert transaction["data"].startswith(
            calc_sighash("setOperators((address,bool)[])")
        )
        assert OTHER[2:].lower() in transaction["data"]
        assert OWNER[2:].lower() not in transaction["data"]

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, adapter):
        send = AsyncMock()
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[True])),
                patch(f"{MODULE}.send_transaction", send),
            ):
                assert await adapter.set_operators([(OWNER, True)]) == (True, None)
        finally:
            patcher.stop()
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_wallet(self):
        adapter = AgentRegistryAdapter(chain_id=CHAIN_ID_BLAST)
        ok, err = await adapter.set_operators([(OWNER, True)])
        assert not ok
        assert "wallet" in err

    @pytest.mark.asyncio
    async def test_dispatcher_operators(self, adapter):
        dispatcher = contract_address(CHAIN_ID_BLAST, "dispatcher")
        chunked = AsyncMock(return_value=[False])
        send = AsyncMock(return_value="0xhash")
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", chunked),
                patch(f"{MODULE}.send_transaction", send),
            ):
                ok, txn_hash = await adapter.set_operators(
                    [(OTHER, True)], contract="dispatcher"
                )
        finally:
            patcher.stop()

        assert ok and txn_hash == "0xhash"
        (read,) = chunked.await_args.args[1]
        assert read.target.lower() == dispatcher.lower()
        transaction = send.await_args.args[0]
        assert transaction["to"].lower() == dispatcher.lower()
        assert transaction["data"].startswith(
            calc_sighash("setOperators((address,bool)[])")
        )

    @pytest.mark.asyncio
    async def test_is_operator_on_dispatcher(self, adapter):
        web3 = _web3()
        web3.to_checksum_address = lambda a: a
        getter = web3.eth.contract.return_value.functions.isOperator
        getter.return_value.call = AsyncMock(return_value=False)
        patcher = _patch_web3(web3)
        try:
            result = await adapter.is_operator(OTHER, contract="dispatcher")
        finally:
            patcher.stop()
        assert result == (True, False)
        address = web3.eth.contract.call_args.kwargs["address"]
        dispatcher = contract_address(CHAIN_ID_BLAST, "dispatcher")
        assert address.lower() == dispatcher.lower()


class TestFactoryWhitelist:
    @pytest.mark.asyncio
    async def test_only_changed_factories_are_sent(self, adapter):
        chunked = AsyncMock(return_value=[False, False])
        send = AsyncMock(return_value="0xhash")
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", chunked),
                patch(f"{MODULE}.send_transaction", send),
            ):
                ok, txn_hash = await adapter.set_factory_whitelist(
                    "explorer", [(IMPL, True), (OTHER, False)]
                )
        finally:
            patcher.stop()

        assert ok and txn_hash == "0xhash"
        reads = chunked.await_args.args[1]
        assert {c.signature for c in reads} == {"factoryIsWhitelisted(address)"}
        transaction = send.await_args.args[0]
        explorer = contract_address(CHAIN_ID_BLAST, "explorer_collection")
        assert transaction["to"].lower() == explorer.lower()
        assert transaction["data"].startswith(
            calc_sighash("setWhitelist((address,bool)[])")
        )
        assert IMPL[2:].lower() in transaction["data"]
        assert OTHER[2:].lower() not in transaction["data"]

    @pytest.mark.asyncio
    async def test_whitelist_already_set(self, adapter):
        send = AsyncMock()
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[True])),
                patch(f"{MODULE}.send_transaction", send),
            ):
                result = await adapter.set_factory_whitelist("strategy", [(IMPL, 1)])
        finally:
            patcher.stop()
        assert result == (True, None)
        send.assert_not_awaited()


SETTINGS = {
    "strategyAccountImpl": IMPL,
    "explorerAccountImpl": ZERO_ADDRESS,
    "strategyInitializationCall": "0xabcd",
    "explorerInitializationCall": "0x",
    "isActive": True,
}


class TestAgentCreationSettings:
    def _web3_with_settings(self, current):
        web3 = _web3()
        getter = web3.eth.contract.return_value.functions.getAgentCreationSettings
        getter.return_value.call = AsyncMock(return_value=current)
        return web3

    @pytest.mark.asyncio
    async def test_get_names_fields(self, adapter):
        current = [IMPL, ZERO_ADDRESS, b"\xab\xcd", b"", True]
        patcher = _patch_web3(self._web3_with_settings(current))
        try:
            ok, settings = await adapter.get_agent_creation_settings(TBA)
        finally:
            patcher.stop()
        assert ok
        assert settings["strategyInitializationCall"] == b"\xab\xcd"
        assert settings["isActive"] is True

    @pytest.mark.asyncio
    async def test_post_skipped_when_unchanged(self, adapter):
        current = [IMPL.lower(), ZERO_ADDRESS, b"\xab\xcd", b"", True]
        send = AsyncMock()
        patcher = _patch_web3(self._web3_with_settings(current))
        try:
            with patch(f"{MODULE}.send_transaction", send):
                result = await adapter.post_agent_creation_settings(TBA, SETTINGS)
        finally:
            patcher.stop()
        assert result == (True, None)
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_post_when_changed(self, adapter):
        current = [IMPL, ZERO_ADDRESS, b"\xab\xcd", b"", False]
        send = AsyncMock(return_value="0xhash")
        patcher = _patch_web3(self._web3_with_settings(current))
        try:
            with patch(f"{MODULE}.send_transaction", send):
                result = await adapter.post_agent_creation_settings(TBA, SETTINGS)
        finally:
            patcher.stop()
        assert result == (True, "0xhash")
        transaction = send.await_args.args[0]
        assert transaction["to"] == TBA
        assert transaction["data"].startswith(
            calc_sighash(
                "postAgentCreationSettings((address,address,bytes,bytes,bool))"
            )
        )


class TestStrategyCreation:
    def _web3_with_tba(self, tbas):
        web3 = _web3()
        functions = web3.eth.contract.return_value.functions
        functions.getTbasOfNft.return_value.call = AsyncMock(return_value=tbas)
        return web3

    @pytest.mark.asyncio
    async def test_plan_collects_missing_allowances(self, adapter):
        deposits = [
            TokenDeposit(token=USDB, amount=100),
            TokenDeposit(amount=5),
        ]
        chunked = AsyncMock(return_value=[10])
        patcher = _patch_web3(self._web3_with_tba([(TBA, IMPL)]))
        try:
            with patch(f"{MODULE}.multicall_chunked", chunked):
                ok, plan = await adapter.plan_strategy_creation(7, 3, deposits)
        finally:
            patcher.stop()

        assert ok, plan
        assert plan.genesis_agent_address == TBA
        assert plan.creates_genesis_tba is False
        assert plan.deposit_eth == 5
        assert plan.transaction["value"] == 5
        assert [(a.token, a.spender, a.amount) for a in plan.approvals] == [
            (USDB, TBA, 100)
        ]

    @pytest.mark.asyncio
    async def test_plan_predicts_missing_tba(self, adapter):
        web3 = self._web3_with_tba([])
        web3.batch_requests.side_effect = RuntimeError("batching disabled")
        web3.eth.chain_id = _value(CHAIN_ID_BLAST)
        functions = web3.eth.contract.return_value.functions
        functions.getCreateCount.return_value.call = AsyncMock(return_value=0)
        fetch = AsyncMock(return_value=OTHER)
        patcher = _patch_web3(web3)
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[])),
                patch(f"{MODULE}.fetch_tba_address", fetch),
            ):
                ok, plan = await adapter.plan_strategy_creation(7, 3)
        finally:
            patcher.stop()

        assert ok, plan
        assert plan.creates_genesis_tba is True
        assert plan.genesis_agent_address == OTHER
        assert fetch.await_args.args[2] == 1

    @pytest.mark.asyncio
    async def test_create_approves_then_sends_plan(self, adapter):
        send = AsyncMock(side_effect=["0xapprove", "0xcreate"])
        watch = AsyncMock(return_value="summary")
        patcher = _patch_web3(self._web3_with_tba([(TBA, IMPL)]))
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[0])),
                patch(f"{MODULE}.send_transaction", send),
                patch(f"{MODULE}.watch_tx_for_events", watch),
            ):
                result = await adapter.create_strategy_agent(
                    7, 3, [TokenDeposit(token=USDB, amount=100)]
                )
        finally:
            patcher.stop()

        assert result == (True, "summary")
        approve_tx = send.await_args_list[0].args[0]
        assert approve_tx["to"] == USDB
        assert approve_tx["data"].startswith(calc_sighash("approve(address,uint256)"))
        assert approve_tx["data"].endswith(hex(MAX_UINT256)[2:])

        create_call = send.await_args_list[1]
        assert create_call.args[0]["to"] == TBA
        assert create_call.kwargs == {"wait_for_receipt": False, "keep_gas_limit": True}
        watch.assert_awaited_once_with(CHAIN_ID_BLAST, "0xcreate")


class TestStrategyFunds:
    @pytest.mark.asyncio
    async def test_deposit_approves_genesis_tba_first(self, adapter):
        send = AsyncMock(side_effect=["0xapprove", "0xdeposit"])
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[0])),
                patch(f"{MODULE}.send_transaction", send),
            ):
                result = await adapter.deposit_to_strategy_agent(
                    TBA, OTHER, [TokenDeposit(token=USDB, amount=100)]
                )
        finally:
            patcher.stop()

        assert result == (True, "0xdeposit")
        approve_tx = send.await_args_list[0].args[0]
        assert approve_tx["to"] == USDB
        assert TBA[2:].lower() in approve_tx["data"]
        deposit_tx = send.await_args_list[1].args[0]
        assert deposit_tx["to"] == TBA
        assert deposit_tx["data"].startswith(
            calc_sighash("executeBatch((address,uint256,bytes,uint8)[])")
        )

    @pytest.mark.asyncio
    async def test_deposit_with_allowance_sends_once(self, adapter):
        send = AsyncMock(return_value="0xdeposit")
        patcher = _patch_web3(_web3())
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", AsyncMock(return_value=[100])),
                patch(f"{MODULE}.send_transaction", send),
            ):
                result = await adapter.deposit_to_strategy_agent(
                    TBA,
                    OTHER,
                    [TokenDeposit(token=USDB, amount=100), TokenDeposit(amount=3)],
                )
        finally:
            patcher.stop()
        assert result == (True, "0xdeposit")
        send.assert_awaited_once()
        assert send.await_args.args[0]["value"] == 3

    @pytest.mark.asyncio
    async def test_withdraw(self, adapter):
        send = AsyncMock(return_value="0xwithdraw")
        with patch(f"{MODULE}.send_transaction", send):
            result = await adapter.withdraw_from_strategy_agent(TBA, OTHER, OWNER)
        assert result == (True, "0xwithdraw")
        transaction = send.await_args.args[0]
        assert transaction["to"] == TBA
        assert transaction["data"].startswith(
            calc_sighash("execute(address,uint256,bytes,uint8)")
        )
        assert calc_sighash("moduleA_withdrawBalanceTo(address)")[2:] in (
            transaction["data"]
        )


FOR_ROOT = calc_sighash(
    "createConcentratedLiquidityAgentForRoot("
    "(address,address,uint24,int24,int24,uint160),"
    "(address,uint256),(address,uint256),address)"
)
AND_EXPLORER = calc_sighash(
    "createConcentratedLiquidityAgentAndExplorer("
    "(address,address,uint24,int24,int24,uint160),"
    "(address,uint256),(address,uint256))"
)


class TestConcentratedLiquidityAgent:
    mint = ConcentratedLiquidityMintParams(
        manager=IMPL,
        pool=OTHER,
        slippage_liquidity=1_000_000,
        tick_lower=-120_000,
        tick_upper=-60_000,
        sqrt_price_x96=2**96,
    )
    deposits = (TokenDeposit(amount=10), TokenDeposit(token=USDB, amount=300))

    async def _create(self, adapter, chunked, send, **kwargs):
        web3 = _web3()
        web3.eth.get_balance = AsyncMock(return_value=10**18)
        watch = AsyncMock(return_value="summary")
        patcher = _patch_web3(web3)
        try:
            with (
                patch(f"{MODULE}.multicall_chunked", chunked),
                patch(f"{MODULE}.send_transaction", send),
                patch(f"{MODULE}.watch_tx_for_events", watch),
            ):
                return await adapter.create_concentrated_liquidity_agent(
                    self.mint, *self.deposits, **kwargs
                )
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_owned_genesis_agent_becomes_root(self, adapter):
        chunked = AsyncMock(
            side_effect=[[1], [OWNER.lower(), [(TBA, IMPL)]], [300], [0]]
        )
        send = AsyncMock(side_effect=["0xapprove", "0xcreate"])
        result = await self._create(adapter, chunked, send)

        assert result == (True, "summary")
        factory = contract_address(
            CHAIN_ID_BLAST, "concentrated_liquidity_agent_factory"
        )
        approve_tx = send.await_args_list[0].args[0]
        assert approve_tx["to"] == USDB
        assert factory[2:].lower() in approve_tx["data"]

        create_call = send.await_args_list[1]
        transaction = create_call.args[0]
        assert transaction["to"].lower() == factory.lower()
        assert transaction["value"] == 10
        assert transaction["data"].startswith(FOR_ROOT)
        assert transaction["data"].endswith(TBA[2:].lower())
        assert create_call.kwargs == {"wait_for_receipt": False}

    @pytest.mark.asyncio
    async def test_no_owned_agent_mints_explorer(self, adapter):
        chunked = AsyncMock(side_effect=[[1], [OTHER, [(TBA, IMPL)]], [300], [300]])
        send = AsyncMock(return_value="0xcreate")
        result = await self._create(adapter, chunked, send)

        assert result == (True, "summary")
        send.assert_awaited_once()
        assert send.await_args.args[0]["data"].startswith(AND_EXPLORER)

    @pytest.mark.asyncio
    async def test_short_balance_sends_nothing(self, adapter):
        chunked = AsyncMock(return_value=[299])
        send = AsyncMock()
        ok, err = await self._create(
            adapter, chunked, send, find_root_agent=False
        )

        assert not ok
        assert "Insufficient" in err
        send.assert_not_awaited()
