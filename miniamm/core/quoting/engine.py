"""
Constant-product quoting engine.

Client-side mirror of the MiniAMM pair contract's integer math. Every
function here must agree bit-for-bit with on-chain execution, so all
settlement values are computed with Python integers and floor division,
exactly as the contract truncates.

Invalid input (zero or negative amounts, empty reserves) never raises: these
functions sit on the keystroke path and return 0 instead.
"""

from typing import Tuple

# 0.3% fee applied by scaling the input by 997/1000
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000

# Upward buffer on a ratio-matched counterpart amount (0.1%)
COUNTERPART_BUFFER_NUMERATOR = 1001
COUNTERPART_BUFFER_DENOMINATOR = 1000


def swap_output(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """
    Output amount for an exact-input swap.

        amount_in_with_fee = amount_in * 997
        amount_out = amount_in_with_fee * reserve_out
                     // (reserve_in * 1000 + amount_in_with_fee)
    """
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = amount_in * FEE_NUMERATOR
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def price_impact(amount_in: int, reserve_in: int, reserve_out: int) -> float:
    """
    Percentage drop of the output/input price caused by the trade.

    Display only; never feed this back into settlement math.
    """
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0.0

    current_price = reserve_out / reserve_in

    amount_out = swap_output(amount_in, reserve_in, reserve_out)
    new_price = (reserve_out - amount_out) / (reserve_in + amount_in)

    return (current_price - new_price) / current_price * 100


def lp_tokens_for_deposit(
    amount0: int,
    amount1: int,
    reserve0: int,
    reserve1: int,
    total_supply: int,
) -> int:
    """
    LP tokens minted for a deposit of ``amount0``/``amount1``.

    The first deposit mints ``min(amount0, amount1)``; this matches the
    deployed contract rather than the usual ``sqrt(amount0 * amount1)``.
    Later deposits mint against the side that is scarcer relative to the
    pool ratio.
    """
    if amount0 <= 0 or amount1 <= 0:
        return 0

    if total_supply <= 0:
        return min(amount0, amount1)

    if reserve0 <= 0 or reserve1 <= 0:
        return 0

    lp_from_token0 = amount0 * total_supply // reserve0
    lp_from_token1 = amount1 * total_supply // reserve1
    return min(lp_from_token0, lp_from_token1)


def withdraw_amounts(
    lp_amount: int,
    reserve0: int,
    reserve1: int,
    total_supply: int,
) -> Tuple[int, int]:
    """Token amounts returned for burning ``lp_amount`` LP tokens."""
    if lp_amount <= 0 or total_supply <= 0:
        return 0, 0

    amount0 = lp_amount * reserve0 // total_supply
    amount1 = lp_amount * reserve1 // total_supply
    return amount0, amount1


def required_counterpart_amount(
    changed_amount: int,
    changed_reserve: int,
    other_reserve: int,
    buffered: bool = True,
) -> int:
    """
    Amount of the other token needed to keep the pool ratio.

    With ``buffered`` (the default) the proportional amount is raised by
    0.1% so that reserve drift between quote and submission does not leave
    the deposit short on the counterpart side.
    """
    if changed_amount <= 0 or changed_reserve <= 0 or other_reserve <= 0:
        return 0

    required = changed_amount * other_reserve // changed_reserve
    if not buffered:
        return required
    return required * COUNTERPART_BUFFER_NUMERATOR // COUNTERPART_BUFFER_DENOMINATOR
