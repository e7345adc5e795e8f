"""
Notification channel.

Holds the single user-facing message. Every lifecycle event overwrites it;
there is no queue. Each set schedules an auto-clear, and a newer message
cancels the clear pending for the older one so a stale timer can never wipe
a fresh message.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from ..config import settings


logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


Listener = Callable[[Optional["Notification"]], None]


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    message: str
    tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    dismiss_after: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


class NotificationChannel:
    """Single-slot, last-write-wins notification holder with auto-dismiss."""

    def __init__(
        self,
        default_dismiss_seconds: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.default_dismiss_seconds = (
            default_dismiss_seconds
            if default_dismiss_seconds is not None
            else settings.notification_dismiss_seconds
        )
        self._loop = loop
        self._current: Optional[Notification] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Listener] = []

    @property
    def current(self) -> Optional[Notification]:
        return self._current

    @property
    def has_pending_clear(self) -> bool:
        return self._clear_handle is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(
        self,
        type: NotificationType,
        message: str,
        tx_hash: Optional[str] = None,
        dismiss_after: Optional[float] = None,
    ) -> Notification:
        """
        Show ``message``, replacing whatever is current.

        ``dismiss_after`` of ``None`` uses the channel default; ``0`` keeps
        the message until it is replaced or cleared.
        """
        delay = self.default_dismiss_seconds if dismiss_after is None else dismiss_after
        notification = Notification(
            type=type,
            message=message,
            tx_hash=tx_hash,
            explorer_url=settings.explorer_tx_url(tx_hash) if tx_hash else None,
            dismiss_after=delay or None,
        )

        self._cancel_pending_clear()
        self._current = notification
        if delay and delay > 0:
            self._clear_handle = self._get_loop().call_later(delay, self._expire, notification)

        logger.debug("Notification set: %s %s", type.value, message)
        self._emit()
        return notification

    def success(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        dismiss_after: Optional[float] = None,
    ) -> Notification:
        return self.notify(NotificationType.SUCCESS, message, tx_hash=tx_hash, dismiss_after=dismiss_after)

    def error(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        dismiss_after: Optional[float] = None,
    ) -> Notification:
        return self.notify(NotificationType.ERROR, message, tx_hash=tx_hash, dismiss_after=dismiss_after)

    def info(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        dismiss_after: Optional[float] = None,
    ) -> Notification:
        return self.notify(NotificationType.INFO, message, tx_hash=tx_hash, dismiss_after=dismiss_after)

    def warning(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        dismiss_after: Optional[float] = None,
    ) -> Notification:
        return self.notify(NotificationType.WARNING, message, tx_hash=tx_hash, dismiss_after=dismiss_after)

    def clear(self) -> None:
        self._cancel_pending_clear()
        if self._current is None:
            return
        self._current = None
        self._emit()

    def close(self) -> None:
        """Cancel the pending auto-clear; the current message is kept."""
        self._cancel_pending_clear()

    def _expire(self, notification: Notification) -> None:
        self._clear_handle = None
        if self._current is notification:
            self._current = None
            self._emit()

    def _cancel_pending_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Notification listener failed: %s", exc, exc_info=True)
