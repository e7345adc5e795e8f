"""
Error Classification

Defines the error taxonomy for the transaction lifecycle. Wallets, nodes
and the RPC adapter raise whatever they raise; ``classify_error`` maps those
raw errors onto a category with a user-facing message and the notification
behaviour for it. Nothing is retried automatically.
"""

import asyncio
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from ..notifications import NotificationType


MAX_MESSAGE_LENGTH = 150

USER_REJECTED_MESSAGE = "Transaction rejected by user"
REVERTED_MESSAGE = "Transaction failed - reverted"
WOULD_FAIL_MESSAGE = "Transaction would fail. Please check your inputs and try again."
NETWORK_MESSAGE = "Network error. Please check your connection and try again."
TIMEOUT_MESSAGE = "Transaction timeout. Please try again."
TIMEOUT_NOTICE = (
    "Transaction is taking longer than expected. It may still be processing. "
    "Check the block explorer."
)


class ErrorCategory(str, Enum):
    """Categories of transaction errors."""

    USER_CANCELLED = "user_cancelled"         # Rejected in the wallet
    INSUFFICIENT_FUNDS = "insufficient_funds"  # Not enough balance or gas money
    GAS_ESTIMATION = "gas_estimation"         # Pre-flight probe says it would fail
    NETWORK = "network"                       # Connectivity / node errors
    TRANSACTION_REVERTED = "transaction_reverted"  # Included with status 0
    TIMEOUT = "timeout"                       # Confirmation wait exceeded
    UNKNOWN_ACCOUNT = "unknown_account"       # Wallet not connected properly
    NONCE = "nonce"                           # Nonce too low / gap
    REPLACEMENT_UNDERPRICED = "replacement_underpriced"
    CONTRACT = "contract"                     # Revert reason from the contract
    VALIDATION = "validation"                 # Rejected before submission
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """How one failure should be reported."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    message: str = "Transaction failed"
    notification: Optional[NotificationType] = NotificationType.ERROR
    suggested_action: Optional[str] = None
    tx_hash: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_user_cancelled(self) -> bool:
        return self.category == ErrorCategory.USER_CANCELLED

    @property
    def is_timeout(self) -> bool:
        return self.category == ErrorCategory.TIMEOUT


class TransactionError(Exception):
    """
    Base class for classified lifecycle errors.

    Raised by the controller (chained to the raw error) after the failure
    has been reported, and by lower layers when they already know the kind.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    notification: Optional[NotificationType] = NotificationType.ERROR

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        suggested_action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tx_hash = tx_hash
        self.context = ErrorContext(
            category=self.category,
            message=message,
            notification=self.notification,
            suggested_action=suggested_action,
            tx_hash=tx_hash,
            details=details or {},
        )

    @classmethod
    def from_context(cls, context: ErrorContext) -> "TransactionError":
        error_cls = _ERRORS_BY_CATEGORY.get(context.category, TransactionError)
        error = error_cls(
            context.message,
            tx_hash=context.tx_hash,
            suggested_action=context.suggested_action,
            details=context.details,
        )
        error.context = context
        return error


class UserRejectedError(TransactionError):
    """User cancelled in the wallet; not reported as an error."""

    category = ErrorCategory.USER_CANCELLED
    notification = None

    def __init__(self, message: str = USER_REJECTED_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class InsufficientFundsError(TransactionError):
    category = ErrorCategory.INSUFFICIENT_FUNDS

    def __init__(self, message: str = "Insufficient funds for transaction", **kwargs: Any):
        super().__init__(message, **kwargs)


class GasEstimationError(TransactionError):
    """Pre-flight estimate failed; the transaction was never submitted."""

    category = ErrorCategory.GAS_ESTIMATION

    def __init__(self, message: str = WOULD_FAIL_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class NetworkError(TransactionError):
    category = ErrorCategory.NETWORK

    def __init__(self, message: str = NETWORK_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class TransactionRevertedError(TransactionError):
    """Included on-chain with a failure status."""

    category = ErrorCategory.TRANSACTION_REVERTED

    def __init__(self, message: str = REVERTED_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class ConfirmationTimeoutError(TransactionError):
    """
    Confirmation did not arrive in time.

    The transaction may still land; callers should point the user at the
    explorer instead of resubmitting.
    """

    category = ErrorCategory.TIMEOUT
    notification = NotificationType.WARNING

    def __init__(self, message: str = TIMEOUT_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class UnknownAccountError(TransactionError):
    category = ErrorCategory.UNKNOWN_ACCOUNT

    def __init__(
        self,
        message: str = "Wallet not properly connected. Please reconnect your wallet.",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


class ValidationError(TransactionError):
    """Operation refused before anything was submitted."""

    category = ErrorCategory.VALIDATION


class InsufficientBalanceError(ValidationError):
    category = ErrorCategory.INSUFFICIENT_FUNDS


class InsufficientAllowanceError(ValidationError):
    pass


_ERRORS_BY_CATEGORY = {
    ErrorCategory.USER_CANCELLED: UserRejectedError,
    ErrorCategory.INSUFFICIENT_FUNDS: InsufficientFundsError,
    ErrorCategory.GAS_ESTIMATION: GasEstimationError,
    ErrorCategory.NETWORK: NetworkError,
    ErrorCategory.TRANSACTION_REVERTED: TransactionRevertedError,
    ErrorCategory.TIMEOUT: ConfirmationTimeoutError,
    ErrorCategory.UNKNOWN_ACCOUNT: UnknownAccountError,
    ErrorCategory.VALIDATION: ValidationError,
}


_REJECTION_CODES = {4001, "4001", "ACTION_REJECTED"}
_REJECTION_MESSAGES = (
    "user rejected",
    "User rejected the request",
    "User denied request signature",
)
_REVERT_REASON = re.compile(r"reverted with reason string '(.+)'")


def _error_code(error: BaseException) -> Any:
    code = getattr(error, "code", None)
    return code if isinstance(code, (int, str)) else None


def _error_name(error: BaseException) -> str:
    return getattr(error, "name", None) or type(error).__name__


def is_user_rejection(error: BaseException) -> bool:
    """True when the wallet reports that the user declined the request."""
    if isinstance(error, UserRejectedError):
        return True
    if _error_code(error) in _REJECTION_CODES:
        return True
    if _error_name(error) == "UserRejectedRequestError":
        return True
    message = str(error)
    return any(pattern in message for pattern in _REJECTION_MESSAGES)


def _decode_revert_data(data: str) -> Optional[str]:
    """Best-effort UTF-8 view of hex revert data."""
    hex_data = data[2:] if data.startswith("0x") else data
    if not hex_data:
        return None
    try:
        decoded = bytes.fromhex(hex_data).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None
    decoded = decoded.replace("\x00", "").strip()
    if not decoded or not decoded.isprintable():
        return None
    return decoded


def _truncate(message: str) -> str:
    if len(message) > MAX_MESSAGE_LENGTH:
        return message[:MAX_MESSAGE_LENGTH] + "..."
    return message


def classify_error(error: BaseException) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Checks structured fields (``code``, ``name``, ``reason``, ``data``)
    before falling back to message patterns.
    """
    if isinstance(error, TransactionError):
        return error.context

    if is_user_rejection(error):
        return ErrorContext(
            category=ErrorCategory.USER_CANCELLED,
            message=USER_REJECTED_MESSAGE,
            notification=None,
        )

    code = _error_code(error)
    message = str(error)
    lowered = message.lower()

    if code == "INSUFFICIENT_FUNDS" or (code == -32000 and "insufficient" in lowered):
        return ErrorContext(
            category=ErrorCategory.INSUFFICIENT_FUNDS,
            message="Insufficient funds for transaction",
            suggested_action="Add funds to wallet or reduce the amount",
        )

    if code in ("NETWORK_ERROR", "SERVER_ERROR") or isinstance(
        error, (httpx.TransportError, httpx.HTTPStatusError)
    ):
        return ErrorContext(
            category=ErrorCategory.NETWORK,
            message=NETWORK_MESSAGE,
            suggested_action="Check network connectivity and try again",
        )

    if code == "TIMEOUT" or isinstance(error, asyncio.TimeoutError):
        return ErrorContext(
            category=ErrorCategory.TIMEOUT,
            message=TIMEOUT_MESSAGE,
            notification=NotificationType.WARNING,
        )

    if "unknown account" in lowered:
        return ErrorContext(
            category=ErrorCategory.UNKNOWN_ACCOUNT,
            message="Wallet not properly connected. Please reconnect your wallet.",
        )

    if "failed to fetch" in lowered:
        return ErrorContext(category=ErrorCategory.NETWORK, message=NETWORK_MESSAGE)

    if "cannot estimate gas" in lowered:
        return ErrorContext(category=ErrorCategory.GAS_ESTIMATION, message=WOULD_FAIL_MESSAGE)

    if "nonce" in lowered:
        return ErrorContext(
            category=ErrorCategory.NONCE,
            message="Transaction nonce error. Please try again.",
        )

    reason = getattr(error, "reason", None)
    if isinstance(reason, str) and reason:
        return ErrorContext(category=ErrorCategory.CONTRACT, message=reason)

    data = getattr(error, "data", None)
    if isinstance(data, str):
        decoded = _decode_revert_data(data)
        if decoded:
            return ErrorContext(
                category=ErrorCategory.CONTRACT,
                message=f"Contract error: {decoded}",
                details={"data": data},
            )

    match = _REVERT_REASON.search(message)
    if match:
        return ErrorContext(category=ErrorCategory.CONTRACT, message=match.group(1))

    if "insufficient funds" in lowered:
        return ErrorContext(category=ErrorCategory.INSUFFICIENT_FUNDS, message="Insufficient funds")

    if "timeout" in lowered:
        return ErrorContext(
            category=ErrorCategory.TIMEOUT,
            message=TIMEOUT_MESSAGE,
            notification=NotificationType.WARNING,
        )

    if "replacement fee too low" in lowered:
        return ErrorContext(
            category=ErrorCategory.REPLACEMENT_UNDERPRICED,
            message="Transaction replacement fee too low. Please try again.",
        )

    if message:
        return ErrorContext(category=ErrorCategory.UNKNOWN, message=_truncate(message))

    return ErrorContext(category=ErrorCategory.UNKNOWN, message="Transaction failed")
