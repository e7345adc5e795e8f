"""
Tests for the constant-product quoting engine.
"""

import random

import pytest

from miniamm.core.quoting.engine import (
    lp_tokens_for_deposit,
    price_impact,
    required_counterpart_amount,
    swap_output,
    withdraw_amounts,
)


ONE = 10**18


# =============================================================================
# Swap output
# =============================================================================

class TestSwapOutput:
    def test_reference_quote(self):
        assert swap_output(100, 1000, 1000) == 90

    def test_zero_input_gives_zero(self):
        assert swap_output(0, 1000, 1000) == 0

    @pytest.mark.parametrize(
        "amount_in,reserve_in,reserve_out",
        [(-1, 1000, 1000), (100, 0, 1000), (100, 1000, 0), (100, -5, 1000)],
    )
    def test_invalid_inputs_return_zero(self, amount_in, reserve_in, reserve_out):
        assert swap_output(amount_in, reserve_in, reserve_out) == 0

    def test_matches_contract_formula_for_large_values(self):
        amount_in = 3 * ONE
        reserve_in = 1_000 * ONE
        reserve_out = 2_500 * ONE
        with_fee = amount_in * 997
        expected = with_fee * reserve_out // (reserve_in * 1000 + with_fee)
        assert swap_output(amount_in, reserve_in, reserve_out) == expected

    def test_monotone_and_bounded(self):
        rng = random.Random(1234)
        for _ in range(200):
            reserve_in = rng.randint(1, 10**24)
            reserve_out = rng.randint(1, 10**24)
            a = rng.randint(0, 10**24)
            b = a + rng.randint(0, 10**22)
            out_a = swap_output(a, reserve_in, reserve_out)
            out_b = swap_output(b, reserve_in, reserve_out)
            assert out_a <= out_b
            assert out_b < reserve_out


# =============================================================================
# Price impact
# =============================================================================

class TestPriceImpact:
    def test_zero_for_empty_inputs(self):
        assert price_impact(0, 1000, 1000) == 0.0
        assert price_impact(100, 0, 1000) == 0.0

    def test_small_trade_has_small_impact(self):
        assert 0 < price_impact(ONE, 1_000_000 * ONE, 1_000_000 * ONE) < 0.5

    def test_large_trade_has_large_impact(self):
        assert price_impact(500, 1000, 1000) > 5


# =============================================================================
# Liquidity
# =============================================================================

class TestLiquidity:
    def test_first_deposit_mints_smaller_amount(self):
        assert lp_tokens_for_deposit(500, 300, 0, 0, 0) == 300

    def test_proportional_deposit(self):
        assert lp_tokens_for_deposit(100, 200, 1000, 2000, 1000) == 100

    def test_deposit_limited_by_scarcer_side(self):
        assert lp_tokens_for_deposit(100, 100, 1000, 2000, 1000) == 50

    def test_zero_amount_mints_nothing(self):
        assert lp_tokens_for_deposit(0, 100, 1000, 1000, 1000) == 0

    def test_withdraw_proportional(self):
        assert withdraw_amounts(100, 1000, 2000, 1000) == (100, 200)

    def test_withdraw_from_empty_supply(self):
        assert withdraw_amounts(100, 1000, 2000, 0) == (0, 0)

    def test_deposit_then_withdraw_never_profits(self):
        rng = random.Random(99)
        for _ in range(200):
            reserve0 = rng.randint(1, 10**24)
            reserve1 = rng.randint(1, 10**24)
            total_supply = rng.randint(1, 10**24)
            amount0 = rng.randint(1, 10**22)
            amount1 = rng.randint(1, 10**22)

            minted = lp_tokens_for_deposit(amount0, amount1, reserve0, reserve1, total_supply)
            out0, out1 = withdraw_amounts(
                minted,
                reserve0 + amount0,
                reserve1 + amount1,
                total_supply + minted,
            )
            assert out0 <= amount0
            assert out1 <= amount1


class TestCounterpart:
    def test_unbuffered_is_proportional(self):
        assert required_counterpart_amount(100, 1000, 2000, buffered=False) == 200

    def test_buffer_adds_a_tenth_of_a_percent(self):
        assert required_counterpart_amount(1000, 1000, 2000) == 2002

    def test_empty_reserves_give_zero(self):
        assert required_counterpart_amount(100, 0, 2000) == 0
