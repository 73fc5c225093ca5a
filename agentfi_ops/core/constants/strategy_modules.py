"""Override rows installed on strategy agents, one table per strategy module.

Each row is ``(selector, signature, role)``; role 0 is public, 1 restricts the
call to the agent owner and 9 to the strategy manager. A few Loopooor rows
only exist as selectors.
"""

from __future__ import annotations

from agentfi_ops.core.utils.selectors import FunctionParams

ModuleRow = tuple[str, str | None, int]

DEX_BALANCER_MODULE_A_ROWS: list[ModuleRow] = [
    ("0x82ccd330", "strategyType()", 0),
    ("0x7bb485dc", "moduleA_depositBalance()", 1),
    ("0x740d25a3", "moduleA_depositBalanceAndRefundTo(address)", 1),
    ("0xd36bfc2e", "moduleA_withdrawBalance()", 1),
    ("0xc4fb5289", "moduleA_withdrawBalanceTo(address)", 1),
]

DEX_BALANCER_MODULE_G_ROWS: list[ModuleRow] = [
    ("0x0411d3cf", "moduleG_claimRingTo(address)", 1),
    ("0x2a6bedfb", "moduleG_withdrawBalanceTo(address)", 1),
]

LOOPOOOR_MODULE_D_ROWS: list[ModuleRow] = [
    ("0xdc3be667", None, 0),
    ("0xbeeb3261", None, 0),
    ("0x243cd14e", "borrowBalance()", 0),
    ("0x5fe3b567", "comptroller()", 0),
    ("0xe7b4e734", "duoAsset()", 0),
    ("0x2c86d98e", None, 0),
    ("0x295a5212", "mode()", 0),
    ("0x93f0899a", "moduleName()", 0),
    ("0x1a32aad6", "oToken()", 0),
    ("0x4c711a2a", None, 0),
    ("0xf1a2e849", None, 0),
    ("0xeee24219", "rateContract()", 0),
    ("0x82ccd330", "strategyType()", 0),
    ("0xcd48069b", "supplyBalance()", 0),
    ("0x6f307dc3", "underlying()", 0),
    ("0x90800373", "wrapMint()", 0),
    ("0xbdaab1a6", "moduleD_borrow(address,uint256)", 1),
    ("0xbbdfbc47", "moduleD_burnFixedRate(address,address,uint256)", 1),
    ("0x2fd3858c", "moduleD_burnVariableRate(address,address,uint256,uint256)", 1),
    ("0x7be13c92", None, 1),
    ("0xb440ae7b", None, 1),
    ("0xcbefbc26", "moduleD_depositBalance(address,address,address,uint8,uint256)", 1),
    ("0x3da8dddb", None, 1),
    ("0x6eb73f74", "moduleD_mint(address,uint256)", 1),
    (
        "0x037581e6",
        "moduleD_mintFixedRate(address,address,address,uint256,uint256,uint256,bytes)",
        1,
    ),
    (
        "0x4808034e",
        "moduleD_mintFixedRateEth(address,address,uint256,uint256,uint256,bytes)",
        1,
    ),
    (
        "0x136bcd12",
        "moduleD_mintVariableRate(address,address,address,uint256,uint256,bytes)",
        1,
    ),
    (
        "0x70832259",
        "moduleD_mintVariableRateEth(address,address,uint256,uint256,bytes)",
        1,
    ),
    ("0xa6b204c1", None, 1),
    ("0x378e38bf", "moduleD_redeem(address,uint256)", 1),
    ("0x34502682", "moduleD_repayBorrow(address,uint256)", 1),
    ("0x559c47e1", None, 1),
    ("0xe2eefd3d", "moduleD_sendBalanceTo(address,address)", 1),
    ("0xedabb82d", "moduleD_withdrawBalance()", 1),
    ("0xb627fbb9", "moduleD_withdrawBalanceTo(address)", 1),
]

CONCENTRATED_LIQUIDITY_MODULE_C_ROWS: list[ModuleRow] = [
    ("0x481c6a75", "manager()", 0),
    ("0x93f0899a", "moduleName()", 0),
    ("0x16f0115b", "pool()", 0),
    ("0x09218e91", "position()", 0),
    ("0x3850c7bd", "slot0()", 0),
    ("0x82ccd330", "strategyType()", 0),
    ("0x17d70f7c", "tokenId()", 0),
    ("0xb3463e0f", "hyperlockStaking()", 0),
    ("0x7004cd10", "moduleC_burn()", 9),
    ("0x23a1c099", "moduleC_collect((uint128,uint128))", 9),
    ("0x76223cbe", "moduleC_collectToSelf()", 9),
    ("0x089b0539", "moduleC_decreaseLiquidity((uint128,uint256,uint256,uint256))", 9),
    ("0x91b8dcf4", "moduleC_decreaseLiquidityWithSlippage(uint128,uint160,uint24)", 9),
    (
        "0xe0ad98b9",
        "moduleC_exactInputSingle(address,(address,address,uint24,uint256,uint256,uint256,uint160))",
        9,
    ),
    (
        "0xc44e0a4e",
        "moduleC_exactInputSingle02(address,(address,address,uint24,uint256,uint256,uint160))",
        9,
    ),
    ("0x18ac4325", "moduleC_fullWithdrawToSelf(uint160,uint24)", 9),
    (
        "0xdc307439",
        "moduleC_increaseLiquidity((uint256,uint256,uint256,uint256,uint256))",
        9,
    ),
    ("0x52d1c175", "moduleC_increaseLiquidityWithBalance(uint160,uint24)", 9),
    (
        "0xbdb7336b",
        "moduleC_mint((address,address,address,address,uint24,int24,int24,uint256,uint256,uint256,uint256,uint256))",
        9,
    ),
    (
        "0xaeb0ea21",
        "moduleC_mintWithBalance((address,address,uint24,int24,int24,uint160))",
        9,
    ),
    ("0x4921fc42", "moduleC_partialWithdrawalToSelf(uint128,uint160,uint24)", 9),
    (
        "0x66f0beb2",
        "moduleC_rebalance((address,uint24,uint24,uint24,int24,int24,uint160))",
        9,
    ),
    (
        "0x02f93db4",
        "moduleC_rebalance02((address,uint24,uint24,uint24,int24,int24,uint160))",
        9,
    ),
    ("0x9a569684", "moduleC_wrap()", 9),
    ("0x7e551aee", "moduleC_collectTo(address)", 1),
    ("0x13bf4fdb", "moduleC_fullWithdrawTo(address,uint160,uint24)", 1),
    (
        "0xe1794328",
        "moduleC_increaseLiquidityWithBalanceAndRefundTo(address,uint160,uint24)",
        1,
    ),
    (
        "0x6dd4afce",
        "moduleC_mintWithBalanceAndRefundTo((address,address,uint24,int24,int24,uint160,address))",
        1,
    ),
    ("0x6807b478", "moduleC_partialWithdrawTo(address,uint128,uint160,uint24)", 1),
    ("0x96cbb0db", "moduleC_sendBalanceTo(address)", 1),
]

CONCENTRATED_LIQUIDITY_MODULE_E_ROWS: list[ModuleRow] = [
    ("0x481c6a75", "manager()", 0),
    ("0x93f0899a", "moduleName()", 0),
    ("0x16f0115b", "pool()", 0),
    ("0x09218e91", "position()", 0),
    ("0x97ce1c51", "safelyGetStateOfAMM()", 0),
    ("0x82ccd330", "strategyType()", 0),
    ("0x17d70f7c", "tokenId()", 0),
    ("0xd0c93a7c", "tickSpacing()", 0),
    ("0x3fc8cef3", "weth()", 0),
    ("0xdd56e5d8", "farmingCenter()", 0),
    ("0xde2356d1", "eternalFarming()", 0),
    ("0xd62c6f4f", "moduleE_getRewardInfo()", 0),
    ("0x852bd5a4", "moduleE_burn()", 9),
    ("0xc900024c", "moduleE_collect((uint128,uint128))", 9),
    ("0xbcd8ea75", "moduleE_collectToSelf()", 9),
    ("0xcf563395", "moduleE_decreaseLiquidity((uint128,uint256,uint256,uint256))", 9),
    ("0x5da0b58b", "moduleE_decreaseLiquidityWithSlippage(uint128,uint160,uint24)", 9),
    (
        "0xb1e7af06",
        "moduleE_exactInputSingle(address,(address,address,uint256,uint256,uint256,uint160))",
        9,
    ),
    ("0x8fe338a5", "moduleE_fullWithdrawToSelf(uint160,uint24)", 9),
    (
        "0x7998cc9d",
        "moduleE_increaseLiquidity((uint256,uint256,uint256,uint256,uint256))",
        9,
    ),
    ("0xdaf64baf", "moduleE_increaseLiquidityWithBalance(uint160,uint24)", 9),
    (
        "0x4be66aa2",
        "moduleE_mint((address,address,address,address,int24,int24,uint256,uint256,uint256,uint256,uint256))",
        9,
    ),
    (
        "0xcc6574f5",
        "moduleE_mintWithBalance((address,address,uint24,int24,int24,uint160))",
        9,
    ),
    ("0xbc14830a", "moduleE_partialWithdrawalToSelf(uint128,uint160,uint24)", 9),
    ("0x100a264e", "moduleE_rebalance((address,uint24,uint24,int24,int24,uint160))", 9),
    ("0x02a2fc9d", "moduleE_wrap()", 9),
    ("0xaf8e0c2d", "moduleE_unwrap()", 9),
    ("0x06c0a5af", "moduleE_enterFarming((address,address,uint256))", 9),
    ("0xe2b50502", "moduleE_exitFarming(address)", 9),
    ("0xf186765e", "moduleE_collectTo(address)", 1),
    ("0x7d3d9fbd", "moduleE_fullWithdrawTo(address,uint160,uint24)", 1),
    (
        "0xe5475f28",
        "moduleE_increaseLiquidityWithBalanceAndRefundTo(address,uint160,uint24)",
        1,
    ),
    (
        "0xf2a487f0",
        "moduleE_mintWithBalanceAndRefundTo((address,address,uint24,int24,int24,uint160,address))",
        1,
    ),
    ("0x91b0e9ea", "moduleE_partialWithdrawTo(address,uint128,uint160,uint24)", 1),
    ("0xa2ee5d54", "moduleE_sendBalanceTo(address)", 1),
    ("0xec06085b", "moduleE_claimRewardsTo(address)", 1),
]

MODULE_TABLES: dict[str, list[ModuleRow]] = {
    "DexBalancerModuleA": DEX_BALANCER_MODULE_A_ROWS,
    "DexBalancerModuleG": DEX_BALANCER_MODULE_G_ROWS,
    "LoopooorModuleD": LOOPOOOR_MODULE_D_ROWS,
    "ConcentratedLiquidityModuleC": CONCENTRATED_LIQUIDITY_MODULE_C_ROWS,
    "ConcentratedLiquidityModuleE": CONCENTRATED_LIQUIDITY_MODULE_E_ROWS,
}

MODULE_FUNCTION_PARAMS: dict[str, list[FunctionParams]] = {
    module: [
        FunctionParams(selector=selector, signature=signature, required_role=role)
        for selector, signature, role in rows
    ]
    for module, rows in MODULE_TABLES.items()
}


def get_module_function_params(module: str) -> list[FunctionParams]:
    if module not in MODULE_FUNCTION_PARAMS:
        raise ValueError(f"unknown strategy module '{module}'")
    return MODULE_FUNCTION_PARAMS[module]
