"""
State

Cached view of the pair, the connected account's balances and allowances,
and token metadata.
"""

from .models import (
    TokenSlot,
    PoolState,
    TokenBalances,
    Allowances,
    TokenMetadata,
    DEFAULT_METADATA,
    StateSnapshot,
)
from .cache import StateCache

__all__ = [
    # Models
    "TokenSlot",
    "PoolState",
    "TokenBalances",
    "Allowances",
    "TokenMetadata",
    "DEFAULT_METADATA",
    "StateSnapshot",
    # Cache
    "StateCache",
]
