from unittest.mock import AsyncMock

import pytest
from eth_abi import decode

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
    BatchCall,
    ConcentratedLiquidityMintParams,
    TokenDeposit,
)
from agentfi_ops.core.constants import CHAIN_ID_BLAST, ZERO_ADDRESS
from agentfi_ops.core.constants.agentfi_abi import AGENT_ACCOUNT_ABI
from agentfi_ops.core.constants.base import DEFAULT_FORWARDER_GAS_LIMIT
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.selectors import FunctionParams, calc_sighash

OWNER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
TBA = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
IMPL = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
USDB = "0x4300000000000000000000000000000000000003"

EXECUTE = calc_sighash("execute(address,uint256,bytes,uint8)")
EXECUTE_BATCH = calc_sighash("executeBatch((address,uint256,bytes,uint8)[])")
CREATE_AGENT = calc_sighash("createAgent(uint256)")
CREATE_AGENT_WITH_DEPOSITS = calc_sighash("createAgent(uint256,(address,uint256)[])")
TRANSFER_FROM = calc_sighash("transferFrom(address,address,uint256)")


def _record(agent_id, owner, tba=None):
    tbas = [AgentTba(agent_address=tba, implementation_address=IMPL)] if tba else []
    return AgentRecord(agent_id=agent_id, owner=owner, tbas=tbas)


def _batch_calls(data: str):
    assert data.startswith(EXECUTE_BATCH)
    (calls,) = decode(["(address,uint256,bytes,uint8)[]"], bytes.fromhex(data[10:]))
    return calls


class TestAgentTree:
    def test_strategies_attach_to_first_tba(self):
        genesis = [_record(1, OWNER, TBA), _record(2, OWNER)]
        strategies = [_record(1, TBA.lower()), _record(2, OTHER)]

        tree = build_agent_tree(genesis, strategies)

        assert len(tree) == 1
        assert tree[0].genesis.agent_id == 1
        assert [s.agent_id for s in tree[0].strategies] == [1]

    def test_unique_owners(self):
        genesis = [
            _record(1, OWNER, TBA),
            _record(2, OWNER.lower(), IMPL),
            _record(3, OTHER, OTHER),
        ]
        tree = build_agent_tree(genesis, [])
        assert unique_owners(tree) == [OWNER, OTHER]


class TestWrapAgentCalls:
    def test_single_call_uses_execute(self):
        data = wrap_agent_calls([BatchCall(to=USDB, data="0x1234")])
        assert data.startswith(EXECUTE)

    def test_several_calls_use_execute_batch(self):
        calls = _batch_calls(
            wrap_agent_calls(
                [BatchCall(to=USDB, data="0x12"), BatchCall(to=TBA, value=5, data="0x")]
            )
        )
        assert [c[1] for c in calls] == [0, 5]

    def test_empty(self):
        with pytest.raises(ValueError):
            wrap_agent_calls([])


SETTINGS_FIELDS = ("strategyAccountImpl", "initializationCall", "isActive")


class TestSettingsDiff:
    def test_positional_current_ignores_case(self):
        current = (IMPL.lower(), b"\xab\xcd", True)
        expected = {
            "strategyAccountImpl": IMPL,
            "initializationCall": "0xABCD",
            "isActive": True,
        }
        assert settings_diff(current, expected, SETTINGS_FIELDS) == []

    def test_named_outputs_with_trailing_underscore(self):
        current = {
            "strategyAccountImpl_": IMPL,
            "initializationCall_": "0x",
            "isActive_": True,
        }
        expected = {
            "strategyAccountImpl": TBA,
            "initializationCall": "0x",
            "isActive": False,
        }
        assert settings_diff(current, expected, SETTINGS_FIELDS) == [
            "strategyAccountImpl",
            "isActive",
        ]

    @pytest.mark.asyncio
    async def test_post_only_when_changed(self):
        expected = {
            "strategyAccountImpl": IMPL,
            "initializationCall": "0x",
            "isActive": True,
        }
        post = AsyncMock(return_value="0xhash")

        unchanged = (IMPL, b"", True)
        assert await post_settings_if_changed(
            unchanged, expected, SETTINGS_FIELDS, post
        ) is None
        post.assert_not_awaited()

        changed = (IMPL, b"", False)
        assert (
            await post_settings_if_changed(changed, expected, SETTINGS_FIELDS, post)
            == "0xhash"
        )
        post.assert_awaited_once_with(expected)


class TestInitializationCall:
    def test_multicall_of_configure_overrides_roles(self):
        params = [FunctionParams(selector="0x82ccd330", required_role=0)]
        data = build_strategy_initialization_call(
            AGENT_ACCOUNT_ABI, [(IMPL, params)], [(9, OWNER, True)]
        )
        assert data.startswith(calc_sighash("multicall(bytes[])"))

        (inner,) = decode(["bytes[]"], bytes.fromhex(data[10:]))
        assert ["0x" + d[:4].hex() for d in inner] == [
            calc_sighash("blastConfigure()"),
            calc_sighash("setOverrides((address,(bytes4,bytes32)[])[])"),
            calc_sighash("setRoles((bytes32,address,bool)[])"),
        ]
        (roles,) = decode(["(bytes32,address,bool)[]"], inner[2][4:])
        assert roles[0][0] == (9).to_bytes(32, "big")
        assert roles[0][1].lower() == OWNER.lower()


class TestStrategyCreationPlan:
    def _plan(self, **kwargs):
        params = {
            "chain_id": CHAIN_ID_BLAST,
            "sender": OWNER,
            "genesis_agent_id": 7,
            "genesis_agent_address": TBA,
            "creates_genesis_tba": False,
            "genesis_config_id": 1,
            "strategy_config_id": 3,
            "token_deposits": [],
        }
        params.update(kwargs)
        return build_strategy_creation_plan(**params)

    def test_without_deposits_calls_the_tba_directly(self):
        plan = self._plan()
        tx = plan.transaction
        assert tx["to"] == TBA
        assert tx["value"] == 0
        assert tx["data"].startswith(EXECUTE)
        assert len(plan.batch) == 1
        assert plan.batch[0].data.startswith(CREATE_AGENT)

    def test_erc20_and_eth_deposits(self):
        deposits = [
            TokenDeposit(token=USDB, amount=100),
            TokenDeposit(token=ZERO_ADDRESS, amount=50),
        ]
        plan = self._plan(token_deposits=deposits, deposit_eth=50)
        factory = contract_address(CHAIN_ID_BLAST, "strategy_factory")

        calls = _batch_calls(plan.transaction["data"])
        assert len(calls) == 2
        transfer, create = calls
        assert transfer[0].lower() == USDB.lower()
        assert "0x" + transfer[2][:4].hex() == TRANSFER_FROM
        assert create[0].lower() == factory.lower()
        assert create[1] == 50
        assert "0x" + create[2][:4].hex() == CREATE_AGENT_WITH_DEPOSITS
        (_, sent) = decode(["uint256", "(address,uint256)[]"], create[2][4:])
        assert [amount for _, amount in sent] == [100, 50]
        assert plan.transaction["value"] == 50
        assert "gas" not in plan.transaction

    def test_new_tba_goes_through_forwarder(self):
        plan = self._plan(creates_genesis_tba=True)
        forwarder = contract_address(CHAIN_ID_BLAST, "multicall_forwarder")
        tx = plan.transaction
        assert tx["to"].lower() == forwarder.lower()
        assert tx["data"].startswith(calc_sighash("aggregate((address,bytes)[])"))
        assert "gas" not in tx

    def test_new_tba_with_eth_sets_gas_limit(self):
        plan = self._plan(
            creates_genesis_tba=True,
            token_deposits=[TokenDeposit(amount=10)],
            deposit_eth=10,
        )
        tx = plan.transaction
        assert tx["value"] == 10
        assert tx["gas"] == DEFAULT_FORWARDER_GAS_LIMIT
        assert tx["data"].startswith(
            calc_sighash("aggregate3Value((address,bool,uint256,bytes)[])")
        )
        (calls,) = decode(
            ["(address,bool,uint256,bytes)[]"], bytes.fromhex(tx["data"][10:])
        )
        assert [c[2] for c in calls] == [0, 10]
        assert calls[1][0].lower() == TBA.lower()


STRATEGY = OTHER
DEPOSIT_BALANCE = calc_sighash("moduleA_depositBalance()")


def _execute_args(data: str):
    assert data.startswith(EXECUTE)
    return decode(["address", "uint256", "bytes", "uint8"], bytes.fromhex(data[10:]))


class TestStrategyDeposit:
    def _deposit(self, deposits):
        return build_strategy_deposit(
            chain_id=CHAIN_ID_BLAST,
            sender=OWNER.lower(),
            genesis_agent_address=TBA,
            strategy_agent_address=STRATEGY,
            token_deposits=deposits,
        )

    def test_tokens_and_eth_then_deposit_balance(self):
        tx = self._deposit(
            [TokenDeposit(token=USDB, amount=100), TokenDeposit(amount=5)]
        )
        assert tx["to"] == TBA
        assert tx["from"] == OWNER
        assert tx["value"] == 5

        transfer, forward, deposit = _batch_calls(tx["data"])
        assert transfer[0].lower() == USDB.lower()
        assert "0x" + transfer[2][:4].hex() == TRANSFER_FROM
        sender, receiver, amount = decode(
            ["address", "address", "uint256"], transfer[2][4:]
        )
        assert (sender.lower(), receiver.lower(), amount) == (
            OWNER.lower(),
            STRATEGY.lower(),
            100,
        )
        assert forward[0].lower() == STRATEGY.lower()
        assert (forward[1], forward[2]) == (5, b"")
        assert deposit[0].lower() == STRATEGY.lower()
        assert deposit[1] == 0
        assert "0x" + deposit[2].hex() == DEPOSIT_BALANCE

    def test_token_only_deposit_sends_no_eth(self):
        tx = self._deposit([TokenDeposit(token=USDB, amount=7)])
        assert tx["value"] == 0
        assert len(_batch_calls(tx["data"])) == 2

    def test_nothing_to_deposit(self):
        with pytest.raises(ValueError):
            self._deposit([])


class TestStrategyWithdrawal:
    def test_withdraw_to_owner(self):
        tx = build_strategy_withdrawal(
            chain_id=CHAIN_ID_BLAST,
            sender=OWNER,
            genesis_agent_address=TBA,
            strategy_agent_address=STRATEGY,
        )
        to, value, inner, operation = _execute_args(tx["data"])
        assert tx["to"] == TBA
        assert tx["value"] == 0
        assert to.lower() == STRATEGY.lower()
        assert (value, operation) == (0, 0)
        assert "0x" + inner.hex() == calc_sighash("moduleA_withdrawBalance()")

    def test_withdraw_to_receiver(self):
        tx = build_strategy_withdrawal(
            chain_id=CHAIN_ID_BLAST,
            sender=OWNER,
            genesis_agent_address=TBA,
            strategy_agent_address=STRATEGY,
            receiver=IMPL.lower(),
        )
        _, _, inner, _ = _execute_args(tx["data"])
        assert "0x" + inner[:4].hex() == calc_sighash(
            "moduleA_withdrawBalanceTo(address)"
        )
        (receiver,) = decode(["address"], inner[4:])
        assert receiver.lower() == IMPL.lower()


class TestFlagDiffs:
    def test_only_differing_entries(self):
        expected = [(OWNER, True), (OTHER.lower(), False), (TBA, True)]
        assert flag_diffs(expected, [True, 1, 0]) == [(OTHER, False), (TBA, True)]

    def test_lengths_must_match(self):
        with pytest.raises(ValueError):
            flag_diffs([(OWNER, True)], [])


MINT_TYPES = ["(address,address,uint24,int24,int24,uint160)"]
DEPOSIT_TYPES = ["(address,uint256)", "(address,uint256)"]


class TestConcentratedLiquidityCreation:
    mint = ConcentratedLiquidityMintParams(
        manager=IMPL,
        pool=TBA,
        slippage_liquidity=1_000_000,
        tick_lower=-120_000,
        tick_upper=-60_000,
        sqrt_price_x96=2**96,
    )

    def _create(self, root=None):
        return build_concentrated_liquidity_creation(
            chain_id=CHAIN_ID_BLAST,
            sender=OWNER,
            mint_params=self.mint,
            deposit0=TokenDeposit(amount=10),
            deposit1=TokenDeposit(token=USDB, amount=300),
            root_agent_address=root,
        )

    def test_for_root_agent(self):
        tx = self._create(root=TBA.lower())
        factory = contract_address(
            CHAIN_ID_BLAST, "concentrated_liquidity_agent_factory"
        )
        assert tx["to"].lower() == factory.lower()
        assert tx["value"] == 10
        assert tx["data"].startswith(
            calc_sighash(
                "createConcentratedLiquidityAgentForRoot("
                "(address,address,uint24,int24,int24,uint160),"
                "(address,uint256),(address,uint256),address)"
            )
        )
        mint, deposit0, deposit1, root = decode(
            MINT_TYPES + DEPOSIT_TYPES + ["address"], bytes.fromhex(tx["data"][10:])
        )
        assert mint[2:] == (1_000_000, -120_000, -60_000, 2**96)
        assert deposit0 == (ZERO_ADDRESS, 10)
        assert deposit1[0].lower() == USDB.lower()
        assert deposit1[1] == 300
        assert root.lower() == TBA.lower()

    def test_without_root_mints_explorer(self):
        tx = self._create()
        assert tx["data"].startswith(
            calc_sighash(
                "createConcentratedLiquidityAgentAndExplorer("
                "(address,address,uint24,int24,int24,uint160),"
                "(address,uint256),(address,uint256))"
            )
        )
        decode(MINT_TYPES + DEPOSIT_TYPES, bytes.fromhex(tx["data"][10:]))

    def test_slippage_must_fit_uint24(self):
        with pytest.raises(ValueError):
            ConcentratedLiquidityMintParams(
                manager=IMPL,
                pool=TBA,
                slippage_liquidity=2**24,
                tick_lower=0,
                tick_upper=60,
                sqrt_price_x96=1,
            )
