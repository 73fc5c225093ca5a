"""Concentrated-liquidity tick and price helpers.

Price 0 is token1 per token0; price 1 is its inverse (1 WETH = X USDB on the
USDB/WETH pools the strategy agents manage).
"""

from __future__ import annotations

import math

TICK_BASE = 1.0001
DEFAULT_TICK_SPACING = 60
Q192 = 2**192


def round_tick_to_spacing(tick: int, spacing: int) -> int:
    """Round ``tick`` to the nearest multiple of ``spacing`` (halves round up)."""
    if spacing <= 0:
        return tick
    return math.floor(tick / spacing + 0.5) * spacing


def price0_to_tick(price: float, spacing: int = DEFAULT_TICK_SPACING) -> int:
    if price <= 0:
        raise ValueError("price must be positive")
    tick = math.floor(math.log(price) / math.log(TICK_BASE))
    return round_tick_to_spacing(tick, spacing)


def price1_to_tick(price: float, spacing: int = DEFAULT_TICK_SPACING) -> int:
    if price <= 0:
        raise ValueError("price must be positive")
    return price0_to_tick(1 / price, spacing)


def tick_to_price0(tick: int) -> float:
    return TICK_BASE**tick


def tick_to_price1(tick: int) -> float:
    return 1 / tick_to_price0(tick)


def sqrt_price_x96_to_price1(sqrt_price_x96: int) -> int:
    if sqrt_price_x96 <= 0:
        raise ValueError("sqrtPriceX96 must be positive")
    return Q192 // (int(sqrt_price_x96) ** 2)


def get_new_ticks_for_neutral_strategy(
    spot: float, tick_lower: int, tick_upper: int
) -> tuple[int, int]:
    """Recenter a range on ``spot`` while keeping its relative width."""
    pa = tick_to_price1(tick_upper)
    pb = tick_to_price1(tick_lower)
    width = (pb - pa) / (pb + pa)
    return price1_to_tick(spot * (1 + width)), price1_to_tick(spot * (1 - width))


def decimals_to_amount(decimals: int) -> int:
    return 10 ** int(decimals)


def almost_equal(
    actual: int | float, expected: int | float, percentage: float = 0.001
) -> bool:
    epsilon = abs(expected) * percentage
    return expected - epsilon <= actual <= expected + epsilon
