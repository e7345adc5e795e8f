"""
AMM session.

Composition root: owns the state cache, the notification channel, one
transaction controller per operation kind and the operations facade, and
ties their lifetimes together.

Usage:
    async with AmmSession(account="0x...") as session:
        preview = preview_swap(session.snapshot(), SwapDirection.TOKEN0_TO_TOKEN1, amount)
        await session.operations.swap(SwapDirection.TOKEN0_TO_TOKEN1, "1.5")
"""

import logging
from typing import Dict, Optional

from .config import Settings, settings as default_settings
from .core.execution.controller import TransactionController
from .core.execution.models import TransactionKind, TransactionState
from .core.execution.operations import AmmOperations
from .core.notifications import NotificationChannel
from .core.state.cache import StateCache
from .core.state.models import StateSnapshot
from .providers.base import LedgerReader, LedgerWriter
from .providers.rpc import JsonRpcLedger


logger = logging.getLogger(__name__)


class AmmSession:
    """
    One connected client of the pair.

    ``start()`` begins polling and the metadata fetch; ``stop()`` cancels
    every timer the session owns. Without an explicit ledger a
    ``JsonRpcLedger`` is built from settings and closed on stop.
    """

    def __init__(
        self,
        ledger: Optional[LedgerReader] = None,
        writer: Optional[LedgerWriter] = None,
        account: Optional[str] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        account = account or self.config.account_address or None

        self._owns_ledger = ledger is None
        if ledger is None:
            ledger = JsonRpcLedger(
                self.config.rpc_url,
                account,
                amm_address=self.config.amm_address,
                token0_address=self.config.token0_address,
                token1_address=self.config.token1_address,
                timeout_seconds=self.config.request_timeout_seconds,
                poll_interval_seconds=self.config.confirmation_poll_interval_seconds,
            )
        if writer is None and isinstance(ledger, LedgerWriter):
            writer = ledger

        self.ledger = ledger
        self.writer = writer
        self.notifications = NotificationChannel(self.config.notification_dismiss_seconds)
        self.cache = StateCache(
            ledger,
            account,
            poll_interval_seconds=self.config.poll_interval_seconds,
            metadata_delay_seconds=self.config.metadata_delay_seconds,
        )
        self.controllers: Dict[TransactionKind, TransactionController] = {
            kind: TransactionController(
                kind,
                self.notifications,
                refresh_balances=self._refresh_balances,
                refresh_pool=self._refresh_pool,
                confirmation_timeout_seconds=self.config.confirmation_timeout_seconds,
                status_log_interval_seconds=self.config.status_log_interval_seconds,
                timeout_dismiss_seconds=self.config.notification_timeout_dismiss_seconds,
            )
            for kind in TransactionKind
        }
        self.operations = AmmOperations(writer, self.cache, self.controllers, config=self.config)

    def _refresh_balances(self) -> None:
        self.cache.request_refresh(balances=True, pool=False)

    def _refresh_pool(self) -> None:
        self.cache.request_refresh(balances=False, pool=True)

    @property
    def account(self) -> Optional[str]:
        return self.cache.account

    def snapshot(self) -> StateSnapshot:
        return self.cache.snapshot()

    def transaction_state(self, kind: TransactionKind) -> TransactionState:
        return self.controllers[kind].state

    async def set_account(self, account: Optional[str]) -> None:
        """Switch the connected account for both reads and writes."""
        if isinstance(self.writer, JsonRpcLedger):
            self.writer.set_account(account)
        await self.cache.set_account(account)

    async def start(self) -> None:
        logger.info("Starting AMM session (account=%s)", self.account or "none")
        await self.cache.start()

    async def stop(self) -> None:
        await self.cache.stop()
        self.notifications.close()
        if self._owns_ledger and isinstance(self.ledger, JsonRpcLedger):
            await self.ledger.close()
        logger.info("AMM session stopped")

    async def __aenter__(self) -> "AmmSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
