"""
Transaction lifecycle controller.

Drives one operation kind through submit -> confirm -> reconcile:

- submit the write and record its hash;
- wait for the receipt, bounded by the confirmation timeout;
- on success notify, refresh the cache and run the caller's callback;
- on failure classify, report once and re-raise the classified error.

There is no automatic retry. A timed-out transaction may still land, so the
timeout is reported as a warning pointing at the block explorer.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Set

from ...config import settings
from ...logging_config import bind_transaction_context, clear_transaction_context
from ...providers.base import Receipt, TransactionHandle
from ..notifications import NotificationChannel, NotificationType
from .errors import (
    TIMEOUT_NOTICE,
    ConfirmationTimeoutError,
    ErrorContext,
    TransactionError,
    TransactionRevertedError,
    classify_error,
)
from .models import Operation, TransactionKind, TransactionOptions, TransactionState


logger = logging.getLogger(__name__)

Refresher = Callable[[], Any]
StateListener = Callable[[TransactionKind, TransactionState], None]

PENDING_MESSAGE = "Transaction pending..."


class TransactionController:
    """
    Per-kind lifecycle state machine.

    Calls are not guarded against re-entry: starting a second ``execute``
    while one is pending overwrites the state of the first.
    """

    def __init__(
        self,
        kind: TransactionKind,
        notifications: NotificationChannel,
        refresh_balances: Optional[Refresher] = None,
        refresh_pool: Optional[Refresher] = None,
        *,
        confirmation_timeout_seconds: Optional[float] = None,
        status_log_interval_seconds: Optional[float] = None,
        timeout_dismiss_seconds: Optional[float] = None,
    ):
        self.kind = kind
        self.notifications = notifications
        self._refresh_balances = refresh_balances
        self._refresh_pool = refresh_pool
        self.confirmation_timeout = (
            confirmation_timeout_seconds or settings.confirmation_timeout_seconds
        )
        self.status_log_interval = (
            status_log_interval_seconds or settings.status_log_interval_seconds
        )
        self.timeout_dismiss = (
            timeout_dismiss_seconds or settings.notification_timeout_dismiss_seconds
        )
        self._state = TransactionState.idle()
        self._listeners: List[StateListener] = []
        self._refresh_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def execute(
        self,
        operation: Operation,
        options: Optional[TransactionOptions] = None,
    ) -> Receipt:
        """
        Run ``operation`` through the lifecycle and return its receipt.

        Raises:
            TransactionError: the classified failure, chained to the raw
                error, after it has been reported.
        """
        options = options or TransactionOptions()
        tx_hash: Optional[str] = None

        self._set_state(TransactionState.submitting())
        bind_transaction_context(self.kind.value)
        try:
            handle = await operation()
            tx_hash = handle.hash
            bind_transaction_context(self.kind.value, tx_hash)

            self._set_state(TransactionState.pending(tx_hash))
            self.notifications.info(PENDING_MESSAGE, tx_hash=tx_hash)
            logger.info("%s transaction submitted: %s", self.kind.value, tx_hash)

            receipt = await self._wait_for_receipt(handle)
            if not receipt.succeeded:
                raise TransactionRevertedError(tx_hash=tx_hash)

        except asyncio.CancelledError:
            logger.info("%s transaction wait cancelled", self.kind.value)
            self._set_state(TransactionState.idle())
            raise
        except Exception as exc:
            error = self._report_failure(exc, tx_hash, options)
            if error is exc:
                raise
            raise error from exc
        finally:
            clear_transaction_context()

        await self._on_confirmed(receipt, options)
        return receipt

    async def _wait_for_receipt(self, handle: TransactionHandle) -> Receipt:
        heartbeat = asyncio.create_task(self._log_while_pending(handle.hash))
        try:
            return await asyncio.wait_for(handle.wait(), timeout=self.confirmation_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Transaction %s not confirmed after %ss, verify manually: %s",
                handle.hash,
                self.confirmation_timeout,
                settings.explorer_tx_url(handle.hash),
            )
            raise ConfirmationTimeoutError(tx_hash=handle.hash) from exc
        finally:
            heartbeat.cancel()
            await asyncio.gather(heartbeat, return_exceptions=True)

    async def _log_while_pending(self, tx_hash: str) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        while True:
            await asyncio.sleep(self.status_log_interval)
            logger.info(
                "Still waiting for %s (%ds elapsed)",
                tx_hash,
                int(loop.time() - started),
            )

    async def _on_confirmed(self, receipt: Receipt, options: TransactionOptions) -> None:
        logger.info(
            "%s transaction confirmed in block %s %s",
            self.kind.value,
            receipt.block_number,
            options.metadata,
        )
        self._set_state(TransactionState.idle())
        self.notifications.success(options.success_message, tx_hash=receipt.transaction_hash)

        if options.refetch_balances:
            self._trigger_refresh(self._refresh_balances, "balances")
        if options.refetch_pool:
            self._trigger_refresh(self._refresh_pool, "pool")

        if options.on_success is not None:
            try:
                result = options.on_success(receipt)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                logger.warning("on_success callback failed: %s", exc, exc_info=True)

    def _trigger_refresh(self, refresher: Optional[Refresher], label: str) -> None:
        if refresher is None:
            return
        try:
            result = refresher()
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._refresh_tasks.add(task)
                task.add_done_callback(self._refresh_done)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Post-confirmation %s refresh failed: %s", label, exc)

    def _refresh_done(self, task: asyncio.Task) -> None:
        self._refresh_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Post-confirmation refresh failed: %s", exc)

    def _report_failure(
        self,
        exc: BaseException,
        tx_hash: Optional[str],
        options: TransactionOptions,
    ) -> TransactionError:
        context = classify_error(exc)
        if context.tx_hash is None:
            context.tx_hash = tx_hash

        if context.is_user_cancelled:
            logger.info("%s transaction rejected by user", self.kind.value)
            self._set_state(TransactionState.idle(error=context.message))
            return self._as_transaction_error(exc, context)

        logger.error(
            "%s transaction failed (%s): %s %s",
            self.kind.value,
            context.category.value,
            exc,
            options.metadata,
        )
        self._set_state(TransactionState.failed(context.message, tx_hash=context.tx_hash))

        if context.is_timeout or context.notification == NotificationType.WARNING:
            self.notifications.warning(
                TIMEOUT_NOTICE,
                tx_hash=context.tx_hash,
                dismiss_after=self.timeout_dismiss,
            )
        elif context.notification is not None:
            self.notifications.error(context.message, tx_hash=context.tx_hash)

        self._set_state(TransactionState.idle(error=context.message))
        return self._as_transaction_error(exc, context)

    @staticmethod
    def _as_transaction_error(exc: BaseException, context: ErrorContext) -> TransactionError:
        if isinstance(exc, TransactionError):
            return exc
        return TransactionError.from_context(context)

    def _set_state(self, state: TransactionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(self.kind, state)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Transaction state listener failed: %s", exc, exc_info=True)
