"""Tests for PeriodicPoller: start/stop and overlap skipping."""

from __future__ import annotations

import asyncio

import pytest

from vitalwatch.core.polling.poller import PeriodicPoller


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestPeriodicPoller:
    def test_rejects_non_positive_interval(self):
        async def poll():
            return None

        with pytest.raises(ValueError):
            PeriodicPoller(0, poll)

    def test_polls_immediately_then_periodically(self):
        calls = []

        async def poll():
            calls.append(1)

        async def _check():
            poller = PeriodicPoller(0.01, poll, name="test")
            poller.start()
            assert poller.running
            await asyncio.sleep(0.055)
            await poller.stop()
            assert not poller.running
            return poller

        poller = _run(_check())
        assert len(calls) >= 2
        assert poller.completed_polls == len(calls)

    def test_start_is_idempotent(self):
        calls = []

        async def poll():
            calls.append(1)

        async def _check():
            poller = PeriodicPoller(10, poll)
            poller.start()
            poller.start()
            await asyncio.sleep(0.01)
            await poller.stop()

        _run(_check())
        assert len(calls) == 1

    def test_overlapping_poll_is_skipped(self):
        release = None

        async def slow_poll():
            await release.wait()

        async def _check():
            nonlocal release
            release = asyncio.Event()
            poller = PeriodicPoller(10, slow_poll)
            first = asyncio.ensure_future(poller.poll_once())
            await asyncio.sleep(0)
            assert await poller.poll_once() is False
            release.set()
            assert await first is True
            return poller

        poller = _run(_check())
        assert poller.skipped_polls == 1
        assert poller.completed_polls == 1

    def test_failed_poll_keeps_loop_alive(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            raise RuntimeError("service down")

        async def _check():
            poller = PeriodicPoller(0.01, flaky)
            poller.start()
            await asyncio.sleep(0.035)
            still_running = poller.running
            await poller.stop()
            return still_running

        assert _run(_check()) is True
        assert len(attempts) >= 2

    def test_stop_without_start(self):
        async def poll():
            return None

        _run(PeriodicPoller(1, poll).stop())
