"""
Transaction Execution Layer

Runs mutating operations through a submit -> confirm -> reconcile lifecycle:
- TransactionController: per-kind state machine with a confirmation timeout
- AmmOperations: approve, mint, swap, add and remove liquidity
- classify_error: maps raw wallet/node errors onto user-facing messages

Usage:
    from miniamm.core.execution import AmmOperations, TransactionError

    try:
        receipt = await operations.swap(SwapDirection.TOKEN0_TO_TOKEN1, "1.0")
    except TransactionError as exc:
        # Already reported on the notification channel
        print(exc.context.category)
"""

from .models import (
    TransactionKind,
    TransactionPhase,
    TransactionState,
    TransactionOptions,
)
from .errors import (
    ErrorCategory,
    ErrorContext,
    TransactionError,
    UserRejectedError,
    InsufficientFundsError,
    GasEstimationError,
    NetworkError,
    TransactionRevertedError,
    ConfirmationTimeoutError,
    UnknownAccountError,
    ValidationError,
    InsufficientBalanceError,
    InsufficientAllowanceError,
    classify_error,
    is_user_rejection,
)
from .controller import TransactionController
from .operations import AmmOperations

__all__ = [
    # Models
    "TransactionKind",
    "TransactionPhase",
    "TransactionState",
    "TransactionOptions",
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "TransactionError",
    "UserRejectedError",
    "InsufficientFundsError",
    "GasEstimationError",
    "NetworkError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
    "UnknownAccountError",
    "ValidationError",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    "classify_error",
    "is_user_rejection",
    # Controller
    "TransactionController",
    "AmmOperations",
]
