import math

import pytest

from agentfi_ops.core.utils.v3_math import (
    almost_equal,
    decimals_to_amount,
    get_new_ticks_for_neutral_strategy,
    price0_to_tick,
    price1_to_tick,
    round_tick_to_spacing,
    sqrt_price_x96_to_price1,
    tick_to_price0,
    tick_to_price1,
)


class TestTicks:
    @pytest.mark.parametrize(
        "tick,spacing,expected",
        [
            (30, 60, 60),
            (-30, 60, 0),
            (-90, 60, -60),
            (89, 60, 60),
            (91, 60, 120),
            (7, 0, 7),
        ],
    )
    def test_round_tick(self, tick, spacing, expected):
        assert round_tick_to_spacing(tick, spacing) == expected

    def test_price_to_tick(self):
        assert price0_to_tick(1) == 0
        assert price0_to_tick(1.0001**600) == 600
        assert price1_to_tick(1.0001**-600) == 600
        assert price0_to_tick(1.0001**10, spacing=1) in (9, 10)

    def test_price_must_be_positive(self):
        with pytest.raises(ValueError):
            price0_to_tick(0)
        with pytest.raises(ValueError):
            price1_to_tick(-1)

    def test_tick_to_price(self):
        assert tick_to_price0(0) == 1
        assert math.isclose(tick_to_price0(100) * tick_to_price1(100), 1)

    def test_sqrt_price(self):
        assert sqrt_price_x96_to_price1(2**96) == 1
        assert sqrt_price_x96_to_price1(2**95) == 4
        with pytest.raises(ValueError):
            sqrt_price_x96_to_price1(0)

    def test_neutral_strategy_keeps_width(self):
        assert get_new_ticks_for_neutral_strategy(1.0, -600, 600) == (-600, 600)

    def test_neutral_strategy_recenters(self):
        lower, upper = get_new_ticks_for_neutral_strategy(1.0001**-6000, -600, 600)
        assert (lower, upper) == (5400, 6600)


class TestMisc:
    def test_decimals_to_amount(self):
        assert decimals_to_amount(6) == 1_000_000

    def test_almost_equal(self):
        assert almost_equal(100.05, 100)
        assert not almost_equal(100.2, 100)
        assert almost_equal(101, 100, percentage=0.01)
