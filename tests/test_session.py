"""
Tests for the AmmSession composition root.
"""

import asyncio

import pytest

from miniamm.config import Settings
from miniamm.core.execution.models import TransactionKind
from miniamm.core.quoting.previews import MAX_UINT256, SwapDirection, preview_swap
from miniamm.core.state.models import TokenSlot
from miniamm.providers.rpc import JsonRpcLedger
from miniamm.session import AmmSession


ONE = 10**18


def fast_settings(**overrides):
    values = dict(
        poll_interval_seconds=0.02,
        metadata_delay_seconds=0,
        confirmation_timeout_seconds=1,
        notification_dismiss_seconds=0.05,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.mark.asyncio
async def test_session_polls_and_quotes(ledger, account):
    async with AmmSession(ledger, account=account, config=fast_settings()) as session:
        await asyncio.sleep(0.05)
        snapshot = session.snapshot()

        assert snapshot.pool.reserve0 == 1000 * ONE
        assert snapshot.balances.token0 == 100 * ONE
        assert snapshot.token1.symbol == "TKB"

        preview = preview_swap(snapshot, SwapDirection.TOKEN0_TO_TOKEN1, ONE)
        assert preview.needs_approval

    assert not session.cache.is_running


@pytest.mark.asyncio
async def test_confirmed_swap_refreshes_cache(ledger, account):
    ledger.allowances = {TokenSlot.TOKEN0: MAX_UINT256, TokenSlot.TOKEN1: MAX_UINT256}
    config = fast_settings(poll_interval_seconds=60)

    async with AmmSession(ledger, account=account, config=config) as session:
        await asyncio.sleep(0.01)
        ledger.balances[TokenSlot.TOKEN0] = 99 * ONE
        ledger.reserves = [1001 * ONE, 1998 * ONE]

        await session.operations.swap(SwapDirection.TOKEN0_TO_TOKEN1, "1")
        await session.cache.wait_idle()

        assert session.snapshot().balances.token0 == 99 * ONE
        assert session.snapshot().pool.reserve0 == 1001 * ONE
        assert session.transaction_state(TransactionKind.SWAP).is_loading is False


@pytest.mark.asyncio
async def test_stop_cancels_notification_timer(ledger, account):
    session = AmmSession(ledger, account=account, config=fast_settings(notification_dismiss_seconds=30))
    await session.start()
    session.notifications.info("hello")
    assert session.notifications.has_pending_clear

    await session.stop()

    assert not session.notifications.has_pending_clear


@pytest.mark.asyncio
async def test_set_account_switches_reads(ledger):
    async with AmmSession(ledger, config=fast_settings(poll_interval_seconds=60)) as session:
        await asyncio.sleep(0.01)
        assert session.account is None
        assert session.snapshot().balances.token0 == 0

        await session.set_account("0x3333333333333333333333333333333333333333")
        await session.cache.wait_idle()

        assert session.snapshot().balances.token0 == 100 * ONE


@pytest.mark.asyncio
async def test_default_ledger_is_json_rpc():
    session = AmmSession(config=fast_settings(account_address=""))

    assert isinstance(session.ledger, JsonRpcLedger)
    assert session.writer is session.ledger
    assert session.operations.spender == session.ledger.spender

    await session.stop()
