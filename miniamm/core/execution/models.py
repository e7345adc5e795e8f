"""
Transaction lifecycle models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from ...providers.base import Receipt, TransactionHandle


class TransactionKind(str, Enum):
    """Mutating operations; each gets its own controller and state."""
    MINT = "mint"
    APPROVE = "approve"
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


class TransactionPhase(str, Enum):
    """Where a kind currently is in its lifecycle."""
    IDLE = "idle"                # Nothing in flight
    SUBMITTING = "submitting"    # Waiting for the ledger to accept
    PENDING = "pending"          # Accepted, hash known, awaiting confirmation
    FAILED = "failed"            # Terminal failure, reported then idle


@dataclass
class TransactionState:
    """Per-kind state read by the presentation layer."""
    is_loading: bool = False
    hash: Optional[str] = None
    error: Optional[str] = None
    phase: TransactionPhase = TransactionPhase.IDLE
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def idle(cls, error: Optional[str] = None) -> "TransactionState":
        return cls(is_loading=False, error=error, phase=TransactionPhase.IDLE)

    @classmethod
    def submitting(cls) -> "TransactionState":
        return cls(is_loading=True, phase=TransactionPhase.SUBMITTING)

    @classmethod
    def pending(cls, tx_hash: str) -> "TransactionState":
        return cls(is_loading=True, hash=tx_hash, phase=TransactionPhase.PENDING)

    @classmethod
    def failed(cls, error: str, tx_hash: Optional[str] = None) -> "TransactionState":
        return cls(is_loading=False, hash=tx_hash, error=error, phase=TransactionPhase.FAILED)


SuccessCallback = Callable[[Receipt], Union[None, Awaitable[None]]]
Operation = Callable[[], Awaitable[TransactionHandle]]


@dataclass
class TransactionOptions:
    """What to do once a transaction is confirmed."""
    success_message: str = "Transaction successful!"
    refetch_balances: bool = True
    refetch_pool: bool = False
    on_success: Optional[SuccessCallback] = None
    metadata: dict[str, Any] = field(default_factory=dict)
