"""
Tests for the notification channel.
"""

import asyncio

import pytest

from miniamm.config import settings
from miniamm.core.notifications import NotificationChannel, NotificationType


@pytest.mark.asyncio
async def test_notification_auto_dismisses():
    channel = NotificationChannel(default_dismiss_seconds=0.05)

    notification = channel.success("Done", tx_hash="0xabc")
    assert channel.current is notification
    assert notification.explorer_url == settings.explorer_tx_url("0xabc")
    assert channel.has_pending_clear

    await asyncio.sleep(0.1)

    assert channel.current is None
    assert not channel.has_pending_clear


@pytest.mark.asyncio
async def test_new_notification_cancels_previous_clear():
    channel = NotificationChannel(default_dismiss_seconds=0.05)

    channel.info("Transaction pending...")
    await asyncio.sleep(0.03)
    latest = channel.warning("Still going", dismiss_after=0.2)

    # The first message's timer would have fired by now
    await asyncio.sleep(0.05)
    assert channel.current is latest
    assert channel.current.type == NotificationType.WARNING


@pytest.mark.asyncio
async def test_zero_dismiss_keeps_message():
    channel = NotificationChannel(default_dismiss_seconds=0.01)

    channel.error("Sticky", dismiss_after=0)
    await asyncio.sleep(0.03)

    assert channel.current is not None
    assert channel.current.dismiss_after is None


@pytest.mark.asyncio
async def test_close_cancels_pending_clear():
    channel = NotificationChannel(default_dismiss_seconds=0.02)

    channel.error("Failed")
    channel.close()
    await asyncio.sleep(0.04)

    assert channel.current is not None
    assert not channel.has_pending_clear


@pytest.mark.asyncio
async def test_subscribers_see_every_change():
    channel = NotificationChannel(default_dismiss_seconds=0.02)
    seen = []
    unsubscribe = channel.subscribe(lambda n: seen.append(n.message if n else None))

    channel.info("one")
    channel.success("two")
    await asyncio.sleep(0.04)
    unsubscribe()
    channel.info("three")

    assert seen == ["one", "two", None]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_channel():
    channel = NotificationChannel(default_dismiss_seconds=1)

    def broken(_):
        raise RuntimeError("listener bug")

    channel.subscribe(broken)
    notification = channel.info("still delivered")

    assert channel.current is notification
    channel.clear()
    assert channel.current is None
