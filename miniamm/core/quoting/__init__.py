"""
Quoting

Exact-integer swap and liquidity math mirrored from the pair contract, plus
the preview builders that combine it with cached state.
"""

from .engine import (
    swap_output,
    price_impact,
    lp_tokens_for_deposit,
    withdraw_amounts,
    required_counterpart_amount,
)
from .previews import (
    MAX_UINT256,
    SwapDirection,
    SwapPreview,
    DepositPreview,
    WithdrawalPreview,
    pool_ratio,
    user_pool_share,
    position_value,
    minimum_amount,
    is_infinite_allowance,
    lp_amount_for_percentage,
    percentage_of_balance,
    preview_swap,
    counterpart_for_input,
    preview_deposit,
    preview_withdrawal,
)

__all__ = [
    # Engine
    "swap_output",
    "price_impact",
    "lp_tokens_for_deposit",
    "withdraw_amounts",
    "required_counterpart_amount",
    # Previews
    "MAX_UINT256",
    "SwapDirection",
    "SwapPreview",
    "DepositPreview",
    "WithdrawalPreview",
    "pool_ratio",
    "user_pool_share",
    "position_value",
    "minimum_amount",
    "is_infinite_allowance",
    "lp_amount_for_percentage",
    "percentage_of_balance",
    "preview_swap",
    "counterpart_for_input",
    "preview_deposit",
    "preview_withdrawal",
]
