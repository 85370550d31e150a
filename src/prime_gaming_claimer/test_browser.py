"""
Unit tests for the racing and watcher helpers.

Run with: pytest -m unit_build
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from prime_gaming_claimer.browser import Watchers, capture_evidence, race, suspended_timeout
from prime_gaming_claimer.config import Config


async def _after(delay: float, value=None, error: Exception | None = None):
    await asyncio.sleep(delay)
    if error:
        raise error
    return value


async def _forever():
    await asyncio.Event().wait()


@pytest.mark.unit_build
class TestRace:
    @pytest.mark.asyncio
    async def test_first_to_resolve_wins(self) -> None:
        index, value = await race(_after(0.05, "slow"), _after(0, "fast"))
        assert (index, value) == (1, "fast")

    @pytest.mark.asyncio
    async def test_failures_are_ignored_while_another_can_win(self) -> None:
        index, value = await race(_after(0, error=PlaywrightError("gone")), _after(0.01, "ok"))
        assert (index, value) == (1, "ok")

    @pytest.mark.asyncio
    async def test_raises_first_error_when_all_fail(self) -> None:
        with pytest.raises(PlaywrightError, match="first"):
            await race(_after(0, error=PlaywrightError("first")), _after(0.01, error=PlaywrightError("second")))

    @pytest.mark.asyncio
    async def test_losers_are_cancelled(self) -> None:
        loser = asyncio.ensure_future(_forever())
        await race(_after(0, "won"), loser)
        assert loser.cancelled()

    @pytest.mark.asyncio
    async def test_needs_an_awaitable(self) -> None:
        with pytest.raises(ValueError):
            await race()


@pytest.mark.unit_build
class TestWatchers:
    @pytest.mark.asyncio
    async def test_errors_do_not_propagate(self) -> None:
        async with Watchers() as watchers:
            task = watchers.spawn(_after(0, error=PlaywrightError("never showed up")), "failing")
            await asyncio.sleep(0.01)
        assert task.done()
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_cancel_abandons_pending_watchers(self) -> None:
        side_effect = AsyncMock()

        async def watcher():
            await _forever()
            await side_effect()

        watchers = Watchers()
        watchers.spawn(watcher(), "pending")
        await asyncio.sleep(0)
        assert watchers.pending == 1

        await watchers.cancel()

        assert watchers.pending == 0
        side_effect.assert_not_called()


@pytest.mark.unit_build
class TestSuspendedTimeout:
    def test_timeout_disabled_then_restored(self) -> None:
        context = MagicMock()
        config = Config(timeout=30)

        with suspended_timeout(context, config):
            context.set_default_timeout.assert_called_once_with(0)
        context.set_default_timeout.assert_called_with(30000)

    def test_timeout_restored_on_error(self) -> None:
        context = MagicMock()
        with pytest.raises(RuntimeError):
            with suspended_timeout(context, Config(timeout=5)):
                raise RuntimeError("boom")
        context.set_default_timeout.assert_called_with(5000)

    def test_debug_mode_leaves_timeout_alone(self) -> None:
        context = MagicMock()
        with suspended_timeout(context, Config(debug=True)):
            pass
        context.set_default_timeout.assert_not_called()


@pytest.mark.unit_build
class TestCaptureEvidence:
    @pytest.mark.asyncio
    async def test_saves_screenshot(self, tmp_path) -> None:
        target = AsyncMock()
        path = tmp_path / "shots" / "game.png"

        assert await capture_evidence(target, path, full_page=True) is True
        target.screenshot.assert_awaited_once_with(path=str(path), full_page=True)
        assert path.parent.is_dir()

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, tmp_path) -> None:
        target = AsyncMock()
        target.screenshot.side_effect = PlaywrightError("element detached")

        assert await capture_evidence(target, tmp_path / "game.png") is False
