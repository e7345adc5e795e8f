"""
Cached ledger state models.

All amounts are integers in token base units.
"""

from dataclasses import dataclass
from enum import Enum


class TokenSlot(str, Enum):
    """The three tokens the client tracks for one pair."""
    TOKEN0 = "token0"
    TOKEN1 = "token1"
    LP = "lp"


@dataclass(frozen=True)
class PoolState:
    """Pair reserves and LP supply as last read from the ledger."""
    reserve0: int = 0
    reserve1: int = 0
    total_supply: int = 0

    @property
    def is_empty(self) -> bool:
        return self.reserve0 == 0 or self.reserve1 == 0

    @property
    def is_initialized(self) -> bool:
        return self.total_supply > 0


@dataclass(frozen=True)
class TokenBalances:
    """Connected account's wallet balances."""
    token0: int = 0
    token1: int = 0
    lp_token: int = 0

    def for_slot(self, slot: TokenSlot) -> int:
        if slot == TokenSlot.TOKEN0:
            return self.token0
        if slot == TokenSlot.TOKEN1:
            return self.token1
        return self.lp_token


@dataclass(frozen=True)
class Allowances:
    """What the pair contract may spend on behalf of the connected account."""
    token0: int = 0
    token1: int = 0

    def for_slot(self, slot: TokenSlot) -> int:
        if slot == TokenSlot.TOKEN0:
            return self.token0
        if slot == TokenSlot.TOKEN1:
            return self.token1
        raise ValueError(f"No allowance is tracked for {slot.value}")


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int = 18


DEFAULT_METADATA = {
    TokenSlot.TOKEN0: TokenMetadata(name="Token A", symbol="TKA", decimals=18),
    TokenSlot.TOKEN1: TokenMetadata(name="Token B", symbol="TKB", decimals=18),
    TokenSlot.LP: TokenMetadata(name="MiniAMM LP Token", symbol="MINI-LP", decimals=18),
}


@dataclass(frozen=True)
class StateSnapshot:
    """Everything the previews need, read at one instant."""
    pool: PoolState
    balances: TokenBalances
    allowances: Allowances
    token0: TokenMetadata
    token1: TokenMetadata
    lp_token: TokenMetadata

    def metadata(self, slot: TokenSlot) -> TokenMetadata:
        if slot == TokenSlot.TOKEN0:
            return self.token0
        if slot == TokenSlot.TOKEN1:
            return self.token1
        return self.lp_token
