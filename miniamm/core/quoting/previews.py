"""
Preview builders.

Pure functions that combine a ``StateSnapshot`` with the quoting engine to
produce what a presentation layer shows before the user submits anything.
They take the snapshot explicitly; nothing here reads shared state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..state.models import PoolState, StateSnapshot, TokenSlot
from .engine import (
    lp_tokens_for_deposit,
    price_impact,
    required_counterpart_amount,
    swap_output,
    withdraw_amounts,
)

MAX_UINT256 = 2**256 - 1

# Allowances at or above this are displayed as unlimited
INFINITE_ALLOWANCE_THRESHOLD = MAX_UINT256 // 2

DEFAULT_SLIPPAGE_PERCENT = 0.5

# Price impact levels used for warnings (percent)
HIGH_PRICE_IMPACT = 5.0
ELEVATED_PRICE_IMPACT = 2.0


class SwapDirection(str, Enum):
    """Which pool token is sold."""
    TOKEN0_TO_TOKEN1 = "token0_to_token1"
    TOKEN1_TO_TOKEN0 = "token1_to_token0"

    @property
    def input_slot(self) -> TokenSlot:
        return TokenSlot.TOKEN0 if self == SwapDirection.TOKEN0_TO_TOKEN1 else TokenSlot.TOKEN1

    @property
    def output_slot(self) -> TokenSlot:
        return TokenSlot.TOKEN1 if self == SwapDirection.TOKEN0_TO_TOKEN1 else TokenSlot.TOKEN0

    def flipped(self) -> "SwapDirection":
        if self == SwapDirection.TOKEN0_TO_TOKEN1:
            return SwapDirection.TOKEN1_TO_TOKEN0
        return SwapDirection.TOKEN0_TO_TOKEN1

    def reserves(self, pool: PoolState) -> Tuple[int, int]:
        """(reserve_in, reserve_out) for this direction."""
        if self == SwapDirection.TOKEN0_TO_TOKEN1:
            return pool.reserve0, pool.reserve1
        return pool.reserve1, pool.reserve0

    def swap_arguments(self, amount_in: int) -> Tuple[int, int]:
        """(x_amount_in, y_amount_in) as the pair's ``swap`` expects them."""
        if self == SwapDirection.TOKEN0_TO_TOKEN1:
            return amount_in, 0
        return 0, amount_in


@dataclass(frozen=True)
class SwapPreview:
    direction: SwapDirection
    amount_in: int
    amount_out: int
    price_impact: float
    exchange_rate: float
    minimum_received: int
    pool_empty: bool
    insufficient_balance: bool
    needs_approval: bool

    @property
    def high_price_impact(self) -> bool:
        return self.price_impact > HIGH_PRICE_IMPACT

    @property
    def impact_level(self) -> str:
        if self.price_impact > HIGH_PRICE_IMPACT:
            return "high"
        if self.price_impact > ELEVATED_PRICE_IMPACT:
            return "elevated"
        return "normal"

    @property
    def can_submit(self) -> bool:
        return (
            not self.pool_empty
            and not self.insufficient_balance
            and not self.needs_approval
            and self.amount_in > 0
            and self.amount_out > 0
        )


@dataclass(frozen=True)
class DepositPreview:
    amount0: int
    amount1: int
    lp_tokens: int
    pool_share_after: float
    is_first_deposit: bool
    needs_token0_approval: bool
    needs_token1_approval: bool
    insufficient_balance: bool

    @property
    def needs_approval(self) -> bool:
        return self.needs_token0_approval or self.needs_token1_approval

    @property
    def can_submit(self) -> bool:
        return (
            self.amount0 > 0
            and self.amount1 > 0
            and not self.insufficient_balance
            and not self.needs_approval
        )


@dataclass(frozen=True)
class WithdrawalPreview:
    lp_amount: int
    amount0: int
    amount1: int
    pool_share_before: float
    pool_share_after: float
    insufficient_balance: bool

    @property
    def can_submit(self) -> bool:
        return self.lp_amount > 0 and not self.insufficient_balance and self.amount0 + self.amount1 > 0


def pool_ratio(pool: PoolState) -> float:
    """Price of token0 in token1 (0 for an empty pool)."""
    if pool.is_empty:
        return 0.0
    return pool.reserve1 / pool.reserve0


def user_pool_share(pool: PoolState, lp_balance: int) -> float:
    """Percentage of the LP supply held by the account."""
    if pool.total_supply <= 0:
        return 0.0
    return lp_balance * 100 / pool.total_supply


def position_value(pool: PoolState, lp_balance: int) -> Tuple[int, int]:
    """Underlying token amounts the account's LP balance currently redeems for."""
    return withdraw_amounts(lp_balance, pool.reserve0, pool.reserve1, pool.total_supply)


def minimum_amount(amount: int, slippage_percent: float = DEFAULT_SLIPPAGE_PERCENT) -> int:
    """Lower bound on ``amount`` after ``slippage_percent`` tolerance."""
    slippage_bps = int(slippage_percent * 100)
    slippage_bps = min(max(slippage_bps, 0), 10_000)
    return amount * (10_000 - slippage_bps) // 10_000


def is_infinite_allowance(allowance: int) -> bool:
    return allowance >= INFINITE_ALLOWANCE_THRESHOLD


def lp_amount_for_percentage(lp_balance: int, percentage: int) -> int:
    percentage = min(max(percentage, 0), 100)
    return lp_balance * percentage // 100


def percentage_of_balance(amount: int, balance: int) -> int:
    """Whole percentage of ``balance`` that ``amount`` represents, clamped to 0..100."""
    if balance <= 0:
        return 0
    return min(100, max(0, amount * 100 // balance))


def _exchange_rate(amount_in: int, amount_out: int, decimals_in: int, decimals_out: int) -> float:
    if amount_in <= 0 or amount_out <= 0:
        return 0.0
    return (amount_out / 10**decimals_out) / (amount_in / 10**decimals_in)


def preview_swap(
    snapshot: StateSnapshot,
    direction: SwapDirection,
    amount_in: int,
    slippage_percent: float = DEFAULT_SLIPPAGE_PERCENT,
) -> SwapPreview:
    reserve_in, reserve_out = direction.reserves(snapshot.pool)
    token_in = snapshot.metadata(direction.input_slot)
    token_out = snapshot.metadata(direction.output_slot)

    amount_out = swap_output(amount_in, reserve_in, reserve_out)

    if amount_in > 0 and amount_out > 0:
        rate = _exchange_rate(amount_in, amount_out, token_in.decimals, token_out.decimals)
    else:
        # Spot rate when there is no trade to price
        rate = _exchange_rate(reserve_in, reserve_out, token_in.decimals, token_out.decimals)

    return SwapPreview(
        direction=direction,
        amount_in=amount_in,
        amount_out=amount_out,
        price_impact=price_impact(amount_in, reserve_in, reserve_out),
        exchange_rate=rate,
        minimum_received=minimum_amount(amount_out, slippage_percent),
        pool_empty=snapshot.pool.is_empty,
        insufficient_balance=amount_in > snapshot.balances.for_slot(direction.input_slot),
        needs_approval=amount_in > snapshot.allowances.for_slot(direction.input_slot),
    )


def counterpart_for_input(
    snapshot: StateSnapshot,
    changed_slot: TokenSlot,
    changed_amount: int,
) -> int:
    """
    Buffered amount of the other pool token to pair with ``changed_amount``.

    Returns 0 for an empty pool: the first deposit sets the ratio, so both
    inputs are free.
    """
    pool = snapshot.pool
    if pool.is_empty or changed_amount <= 0:
        return 0
    if changed_slot == TokenSlot.TOKEN0:
        return required_counterpart_amount(changed_amount, pool.reserve0, pool.reserve1)
    if changed_slot == TokenSlot.TOKEN1:
        return required_counterpart_amount(changed_amount, pool.reserve1, pool.reserve0)
    raise ValueError("Counterpart amounts are only defined for pool tokens")


def preview_deposit(snapshot: StateSnapshot, amount0: int, amount1: int) -> DepositPreview:
    pool = snapshot.pool
    lp_tokens = lp_tokens_for_deposit(
        amount0, amount1, pool.reserve0, pool.reserve1, pool.total_supply
    )

    if pool.total_supply > 0:
        share_after = lp_tokens * 100 / (pool.total_supply + lp_tokens)
    else:
        share_after = 100.0

    balances = snapshot.balances
    allowances = snapshot.allowances
    return DepositPreview(
        amount0=amount0,
        amount1=amount1,
        lp_tokens=lp_tokens,
        pool_share_after=share_after,
        is_first_deposit=pool.total_supply == 0,
        needs_token0_approval=amount0 > 0 and allowances.token0 < amount0,
        needs_token1_approval=amount1 > 0 and allowances.token1 < amount1,
        insufficient_balance=amount0 > balances.token0 or amount1 > balances.token1,
    )


def preview_withdrawal(snapshot: StateSnapshot, lp_amount: int) -> WithdrawalPreview:
    pool = snapshot.pool
    lp_balance = snapshot.balances.lp_token
    amount0, amount1 = withdraw_amounts(lp_amount, pool.reserve0, pool.reserve1, pool.total_supply)

    remaining = lp_balance - lp_amount
    supply_after = pool.total_supply - lp_amount
    if supply_after > 0 and remaining > 0:
        share_after = remaining * 100 / supply_after
    else:
        share_after = 0.0

    return WithdrawalPreview(
        lp_amount=lp_amount,
        amount0=amount0,
        amount1=amount1,
        pool_share_before=user_pool_share(pool, lp_balance),
        pool_share_after=share_after,
        insufficient_balance=lp_amount > lp_balance,
    )
