"""
State cache.

Holds the last-known pool reserves and supply, the connected account's
balances and allowances, and token metadata. Two independent refresh
cycles keep it current:

- a one-shot metadata fetch when a reader becomes available, with per-field
  fallbacks so a flaky token contract never blocks the rest of the cache;
- balance/pool polling on a fixed interval, plus immediate refreshes when
  the reader or account changes and after confirmed transactions.

Refresh requests are never queued and never block the requester. Each
refresh takes a sequence number when it is issued and a field group is only
written if no later-issued refresh has already written it, so a slow
response cannot overwrite a fresher one.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ...config import settings
from ...providers.base import LedgerReader
from .models import (
    DEFAULT_METADATA,
    Allowances,
    PoolState,
    StateSnapshot,
    TokenBalances,
    TokenMetadata,
    TokenSlot,
)


Listener = Callable[[str], None]

POOL = "pool"
BALANCES = "balances"
ALLOWANCES = "allowances"
METADATA = "metadata"


class StateCache:
    """
    Polled mirror of the ledger state the client displays and quotes against.

    The cache is the only writer of its fields; readers take values (or a
    ``snapshot()``) and never mutate them.
    """

    def __init__(
        self,
        reader: Optional[LedgerReader] = None,
        account: Optional[str] = None,
        *,
        poll_interval_seconds: Optional[float] = None,
        metadata_delay_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._reader = reader
        self._account = account or None
        self._poll_interval = poll_interval_seconds or settings.poll_interval_seconds
        self._metadata_delay = (
            metadata_delay_seconds
            if metadata_delay_seconds is not None
            else settings.metadata_delay_seconds
        )

        self._pool = PoolState()
        self._balances = TokenBalances()
        self._allowances = Allowances()
        self._metadata: Dict[TokenSlot, TokenMetadata] = dict(DEFAULT_METADATA)
        self._metadata_loaded = False

        self._sequence = 0
        self._applied: Dict[str, int] = {POOL: 0, BALANCES: 0, ALLOWANCES: 0}

        self._listeners: List[Listener] = []
        self._poll_task: Optional[asyncio.Task] = None
        self._metadata_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._running = False

    # ---------------------------
    # Read access
    # ---------------------------
    @property
    def reader(self) -> Optional[LedgerReader]:
        return self._reader

    @property
    def account(self) -> Optional[str]:
        return self._account

    @property
    def pool(self) -> PoolState:
        return self._pool

    @property
    def balances(self) -> TokenBalances:
        return self._balances

    @property
    def allowances(self) -> Allowances:
        return self._allowances

    @property
    def metadata_loaded(self) -> bool:
        return self._metadata_loaded

    def metadata(self, slot: TokenSlot) -> TokenMetadata:
        return self._metadata[slot]

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            pool=self._pool,
            balances=self._balances,
            allowances=self._allowances,
            token0=self._metadata[TokenSlot.TOKEN0],
            token1=self._metadata[TokenSlot.TOKEN1],
            lp_token=self._metadata[TokenSlot.LP],
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(group)`` after each applied write; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------
    # Lifecycle
    # ---------------------------
    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule_metadata_fetch()
        self._poll_task = asyncio.create_task(self._poll_loop(), name="state-cache-poll")
        self.logger.info("State cache polling every %ss", self._poll_interval)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        tasks = [t for t in (self._poll_task, self._metadata_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._metadata_task = None

        # In-flight reads are allowed to finish; their writes still go
        # through the sequence guard.
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        self.logger.info("State cache stopped")

    async def set_reader(self, reader: Optional[LedgerReader]) -> None:
        """Swap the ledger reader (e.g. after a network change) and refresh."""
        if reader is self._reader:
            return
        self._reader = reader
        if reader is None:
            return
        if self._running:
            self._schedule_metadata_fetch()
            self.request_refresh()

    async def set_account(self, account: Optional[str]) -> None:
        """Switch the connected account; account-scoped fields reset until refreshed."""
        account = account or None
        if account == self._account:
            return
        self._account = account
        self._sequence += 1
        self._balances = TokenBalances()
        self._allowances = Allowances()
        self._applied[BALANCES] = self._sequence
        self._applied[ALLOWANCES] = self._sequence
        self._emit(BALANCES)
        self._emit(ALLOWANCES)
        if self._running and account:
            self.request_refresh(pool=False)

    async def _poll_loop(self) -> None:
        try:
            while self._running:
                await self.refresh()
                await asyncio.sleep(self._poll_interval)
        except asyncio.CancelledError:
            return

    # ---------------------------
    # Refresh
    # ---------------------------
    def request_refresh(self, balances: bool = True, pool: bool = True) -> Optional[asyncio.Task]:
        """
        Start a refresh without waiting for it.

        Never blocks on refreshes already in flight; whichever refresh was
        issued last wins each field group.
        """
        if self._reader is None or not (balances or pool):
            return None
        task = asyncio.create_task(self.refresh(balances=balances, pool=pool))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for refreshes started by ``request_refresh`` to land."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def refresh(self, balances: bool = True, pool: bool = True) -> None:
        """
        Read balances, pool state and allowances concurrently, then write.

        Every read of the cycle completes (or fails on its own) before any
        group is written, so a snapshot never mixes two cycles.
        """
        reader = self._reader
        if reader is None:
            return

        self._sequence += 1
        sequence = self._sequence
        account = self._account

        groups: List[Tuple[str, str]] = []
        jobs: List[Awaitable[Any]] = []
        if pool:
            groups.append((POOL, "_pool"))
            jobs.append(self._read_pool(reader))
        if balances and account:
            groups.append((BALANCES, "_balances"))
            jobs.append(self._read_balances(reader, account))
            groups.append((ALLOWANCES, "_allowances"))
            jobs.append(self._read_allowances(reader, account))

        if not jobs:
            return
        results = await asyncio.gather(*jobs)

        for (group, attribute), value in zip(groups, results):
            if value is None:
                continue
            if group != POOL and account != self._account:
                continue
            self._apply(group, sequence, attribute, value)

    async def refresh_balances(self) -> None:
        await self.refresh(balances=True, pool=False)

    async def refresh_pool(self) -> None:
        await self.refresh(balances=False, pool=True)

    async def _read_pool(self, reader: LedgerReader) -> PoolState:
        reserve0, reserve1, total_supply = await asyncio.gather(
            reader.reserve0(),
            reader.reserve1(),
            reader.total_supply(),
            return_exceptions=True,
        )
        values = []
        for field_name, value in (
            ("reserve0", reserve0),
            ("reserve1", reserve1),
            ("total_supply", total_supply),
        ):
            if isinstance(value, BaseException):
                # Degrade to zero for display rather than fail the refresh
                self.logger.warning("Pool %s read failed: %s", field_name, value)
                values.append(0)
            else:
                values.append(int(value))

        return PoolState(*values)

    async def _read_balances(self, reader: LedgerReader, account: str) -> Optional[TokenBalances]:
        try:
            token0, token1, lp_token = await asyncio.gather(
                reader.balance_of(TokenSlot.TOKEN0, account),
                reader.balance_of(TokenSlot.TOKEN1, account),
                reader.balance_of(TokenSlot.LP, account),
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Balance refresh failed, keeping cached values: %s", exc)
            return None
        return TokenBalances(token0=int(token0), token1=int(token1), lp_token=int(lp_token))

    async def _read_allowances(self, reader: LedgerReader, account: str) -> Optional[Allowances]:
        spender = reader.spender
        try:
            token0, token1 = await asyncio.gather(
                reader.allowance(TokenSlot.TOKEN0, account, spender),
                reader.allowance(TokenSlot.TOKEN1, account, spender),
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Allowance refresh failed, keeping cached values: %s", exc)
            return None
        return Allowances(token0=int(token0), token1=int(token1))

    def _apply(self, group: str, sequence: int, attribute: str, value: Any) -> bool:
        if sequence < self._applied[group]:
            self.logger.debug(
                "Discarding stale %s refresh #%d (already at #%d)",
                group,
                sequence,
                self._applied[group],
            )
            return False
        self._applied[group] = sequence
        setattr(self, attribute, value)
        self._emit(group)
        return True

    # ---------------------------
    # Metadata
    # ---------------------------
    def _schedule_metadata_fetch(self) -> None:
        if self._metadata_loaded or self._reader is None:
            return
        if self._metadata_task is not None and not self._metadata_task.done():
            return
        self._metadata_task = asyncio.create_task(
            self._delayed_metadata_fetch(),
            name="state-cache-metadata",
        )

    async def _delayed_metadata_fetch(self) -> None:
        try:
            if self._metadata_delay > 0:
                await asyncio.sleep(self._metadata_delay)
            await self.fetch_metadata()
        except asyncio.CancelledError:
            return

    async def fetch_metadata(self) -> None:
        """
        Fetch name/symbol/decimals for both tokens and the LP token.

        Runs at most once successfully per cache; failed fields keep their
        defaults and never raise.
        """
        reader = self._reader
        if reader is None or self._metadata_loaded:
            return

        self.logger.info("Fetching token metadata")
        results = await asyncio.gather(
            *(self._fetch_token_metadata(reader, slot) for slot in TokenSlot)
        )

        if self._metadata_loaded:
            return
        for slot, metadata in zip(TokenSlot, results):
            self._metadata[slot] = metadata
            self.logger.info(
                "%s: %s (%s) - %d decimals",
                slot.value,
                metadata.name,
                metadata.symbol,
                metadata.decimals,
            )
        self._metadata_loaded = True
        self._emit(METADATA)

    async def _fetch_token_metadata(self, reader: LedgerReader, slot: TokenSlot) -> TokenMetadata:
        default = DEFAULT_METADATA[slot]
        name, symbol, decimals = await asyncio.gather(
            reader.token_name(slot),
            reader.token_symbol(slot),
            reader.token_decimals(slot),
            return_exceptions=True,
        )

        if isinstance(name, BaseException):
            self.logger.error("Failed to fetch %s name: %s", slot.value, name)
            name = default.name
        if isinstance(symbol, BaseException):
            self.logger.error("Failed to fetch %s symbol: %s", slot.value, symbol)
            symbol = default.symbol
        if isinstance(decimals, BaseException):
            self.logger.error("Failed to fetch %s decimals: %s", slot.value, decimals)
            decimals = default.decimals

        return TokenMetadata(name=str(name), symbol=str(symbol), decimals=int(decimals))

    def _emit(self, group: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(group)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("State listener failed: %s", exc, exc_info=True)
