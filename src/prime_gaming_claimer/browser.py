import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Awaitable, Iterator

from playwright.async_api import BrowserContext, Error as PlaywrightError, Playwright

from .config import Config
from .errors import EvidenceCaptureFailure

logger = logging.getLogger(__name__)


async def launch_context(playwright: Playwright, config: Config) -> BrowserContext:
    """
    Start Firefox with the persistent profile in `config.browser_dir`.

    The profile keeps cookies between runs, so signing in is only needed when Amazon drops the session.
    """
    config.browser_dir.mkdir(parents=True, exist_ok=True)
    context = await playwright.firefox.launch_persistent_context(
        str(config.browser_dir),
        headless=config.headless,
        viewport={"width": config.width, "height": config.height},
        # English UI regardless of OS locale, the selectors match on English text
        locale="en-US",
    )
    if not config.debug:
        context.set_default_timeout(config.timeout_ms)
    return context


@contextmanager
def suspended_timeout(context: BrowserContext, config: Config) -> Iterator[None]:
    """Disable the operation timeout while a human may be typing, then restore it."""
    if config.debug:
        yield
        return
    context.set_default_timeout(0)
    try:
        yield
    finally:
        context.set_default_timeout(config.timeout_ms)


async def race(*awaitables: Awaitable[Any]) -> tuple[int, Any]:
    """
    Wait for the first awaitable that succeeds and return `(index, result)`.

    Failed alternatives are ignored as long as another one may still succeed; if all
    fail, the error of the first one is raised. Everything still pending is cancelled.
    """
    if not awaitables:
        raise ValueError("race() needs at least one awaitable")
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            # several can finish in the same tick, prefer the earlier argument
            for index, task in enumerate(tasks):
                if task in done and not task.cancelled() and task.exception() is None:
                    return index, task.result()
        raise next(task.exception() for task in tasks if not task.cancelled())
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class Watchers:
    """
    Background observers that may or may not ever fire.

    Errors inside a watcher are logged and never reach the code that spawned it.
    `cancel()` abandons whatever is still waiting.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._guard(coro, name))
        self._tasks.add(task)
        return task

    @staticmethod
    async def _guard(coro: Awaitable[Any], name: str) -> None:
        try:
            await coro
        except PlaywrightError as e:
            logger.debug(f"Watcher '{name}' stopped: {e}")
        except Exception:
            logger.warning(f"Watcher '{name}' failed", exc_info=True)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def cancel(self) -> None:
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def __aenter__(self) -> "Watchers":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.cancel()


async def save_screenshot(target: Any, path: Path, **kwargs: Any) -> None:
    """Screenshot a page, locator or element handle to `path`."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        await target.screenshot(path=str(path), **kwargs)
    except (PlaywrightError, OSError) as e:
        raise EvidenceCaptureFailure(f"Could not save screenshot {path}: {e}") from e


async def capture_evidence(target: Any, path: Path, **kwargs: Any) -> bool:
    """Best-effort `save_screenshot`: failures are logged and reported as False."""
    try:
        await save_screenshot(target, path, **kwargs)
    except EvidenceCaptureFailure as e:
        logger.warning(str(e))
        return False
    logger.debug(f"Saved screenshot {path}")
    return True
