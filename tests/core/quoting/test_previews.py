"""
Tests for the preview builders.
"""

import pytest

from miniamm.core.quoting.previews import (
    MAX_UINT256,
    SwapDirection,
    counterpart_for_input,
    is_infinite_allowance,
    lp_amount_for_percentage,
    minimum_amount,
    percentage_of_balance,
    pool_ratio,
    position_value,
    preview_deposit,
    preview_swap,
    preview_withdrawal,
    user_pool_share,
)
from miniamm.core.state.models import (
    DEFAULT_METADATA,
    Allowances,
    PoolState,
    StateSnapshot,
    TokenBalances,
    TokenSlot,
)


ONE = 10**18


def make_snapshot(
    pool=PoolState(1000 * ONE, 2000 * ONE, 1000 * ONE),
    balances=TokenBalances(100 * ONE, 100 * ONE, 10 * ONE),
    allowances=Allowances(MAX_UINT256, MAX_UINT256),
):
    return StateSnapshot(
        pool=pool,
        balances=balances,
        allowances=allowances,
        token0=DEFAULT_METADATA[TokenSlot.TOKEN0],
        token1=DEFAULT_METADATA[TokenSlot.TOKEN1],
        lp_token=DEFAULT_METADATA[TokenSlot.LP],
    )


class TestSwapDirection:
    def test_token0_in_uses_x_amount(self):
        assert SwapDirection.TOKEN0_TO_TOKEN1.swap_arguments(5) == (5, 0)
        assert SwapDirection.TOKEN1_TO_TOKEN0.swap_arguments(5) == (0, 5)

    def test_reserves_follow_direction(self):
        pool = PoolState(10, 20, 5)
        assert SwapDirection.TOKEN0_TO_TOKEN1.reserves(pool) == (10, 20)
        assert SwapDirection.TOKEN1_TO_TOKEN0.reserves(pool) == (20, 10)

    def test_flipped(self):
        assert SwapDirection.TOKEN0_TO_TOKEN1.flipped() is SwapDirection.TOKEN1_TO_TOKEN0
        assert SwapDirection.TOKEN1_TO_TOKEN0.input_slot == TokenSlot.TOKEN1


class TestSwapPreview:
    def test_preview_quotes_and_can_submit(self):
        preview = preview_swap(make_snapshot(), SwapDirection.TOKEN0_TO_TOKEN1, ONE)

        assert preview.amount_out > 0
        assert preview.minimum_received == preview.amount_out * 9950 // 10_000
        assert preview.exchange_rate == pytest.approx(2.0, rel=0.01)
        assert preview.impact_level == "normal"
        assert preview.can_submit

    def test_insufficient_balance_blocks_submit(self):
        preview = preview_swap(make_snapshot(), SwapDirection.TOKEN0_TO_TOKEN1, 500 * ONE)

        assert preview.insufficient_balance
        assert preview.high_price_impact
        assert not preview.can_submit

    def test_missing_allowance_needs_approval(self):
        snapshot = make_snapshot(allowances=Allowances(0, 0))
        preview = preview_swap(snapshot, SwapDirection.TOKEN1_TO_TOKEN0, ONE)

        assert preview.needs_approval
        assert not preview.can_submit

    def test_empty_pool(self):
        snapshot = make_snapshot(pool=PoolState())
        preview = preview_swap(snapshot, SwapDirection.TOKEN0_TO_TOKEN1, ONE)

        assert preview.pool_empty
        assert preview.amount_out == 0
        assert preview.exchange_rate == 0.0
        assert not preview.can_submit

    def test_spot_rate_without_amount(self):
        preview = preview_swap(make_snapshot(), SwapDirection.TOKEN1_TO_TOKEN0, 0)
        assert preview.exchange_rate == pytest.approx(0.5)


class TestDepositPreview:
    def test_first_deposit_takes_full_share(self):
        snapshot = make_snapshot(pool=PoolState())
        preview = preview_deposit(snapshot, 5 * ONE, 3 * ONE)

        assert preview.is_first_deposit
        assert preview.lp_tokens == 3 * ONE
        assert preview.pool_share_after == 100.0
        assert preview.can_submit

    def test_share_after_deposit(self):
        preview = preview_deposit(make_snapshot(), 10 * ONE, 20 * ONE)

        assert preview.lp_tokens == 10 * ONE
        assert preview.pool_share_after == pytest.approx(10 * 100 / 1010)

    def test_needs_approval_per_token(self):
        snapshot = make_snapshot(allowances=Allowances(MAX_UINT256, 0))
        preview = preview_deposit(snapshot, ONE, ONE)

        assert not preview.needs_token0_approval
        assert preview.needs_token1_approval
        assert not preview.can_submit

    def test_counterpart_for_input(self):
        snapshot = make_snapshot()
        assert counterpart_for_input(snapshot, TokenSlot.TOKEN0, 10 * ONE) == 20 * ONE * 1001 // 1000
        assert counterpart_for_input(snapshot, TokenSlot.TOKEN1, 20 * ONE) == 10 * ONE * 1001 // 1000

    def test_counterpart_is_free_on_empty_pool(self):
        assert counterpart_for_input(make_snapshot(pool=PoolState()), TokenSlot.TOKEN0, ONE) == 0

    def test_counterpart_rejects_lp_slot(self):
        with pytest.raises(ValueError):
            counterpart_for_input(make_snapshot(), TokenSlot.LP, ONE)


class TestWithdrawalPreview:
    def test_withdraw_half_of_position(self):
        preview = preview_withdrawal(make_snapshot(), 5 * ONE)

        assert (preview.amount0, preview.amount1) == (5 * ONE, 10 * ONE)
        assert preview.pool_share_before == pytest.approx(1.0)
        assert preview.pool_share_after == pytest.approx(5 * 100 / 995)
        assert preview.can_submit

    def test_more_than_balance(self):
        preview = preview_withdrawal(make_snapshot(), 11 * ONE)
        assert preview.insufficient_balance
        assert not preview.can_submit


class TestHelpers:
    def test_pool_ratio(self):
        assert pool_ratio(PoolState(100, 250, 1)) == 2.5
        assert pool_ratio(PoolState()) == 0.0

    def test_user_share_and_position(self):
        pool = PoolState(1000, 2000, 100)
        assert user_pool_share(pool, 25) == 25.0
        assert position_value(pool, 25) == (250, 500)

    def test_minimum_amount_clamps_slippage(self):
        assert minimum_amount(10_000, 1.0) == 9_900
        assert minimum_amount(10_000, 200) == 0
        assert minimum_amount(10_000, -1) == 10_000

    def test_infinite_allowance_threshold(self):
        assert is_infinite_allowance(MAX_UINT256)
        assert is_infinite_allowance(MAX_UINT256 // 2)
        assert not is_infinite_allowance(10**30)

    def test_percentages(self):
        assert lp_amount_for_percentage(1000, 25) == 250
        assert lp_amount_for_percentage(1000, 150) == 1000
        assert percentage_of_balance(250, 1000) == 25
        assert percentage_of_balance(5, 0) == 0
