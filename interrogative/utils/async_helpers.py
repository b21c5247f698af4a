# interrogative/utils/async_helpers.py
"""
Async utilities for the stores' background snapshot saves and for
collaborator calls that must not hang the caller.
"""

import asyncio
import logging
from typing import Any, Coroutine, Iterable, MutableSet, Optional

logger = logging.getLogger(__name__)


def has_running_loop() -> bool:
    """Return True when called from inside a running event loop."""
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: Optional[str] = None,
    track: Optional[MutableSet[asyncio.Task]] = None,
) -> asyncio.Task:
    """
    Schedule `coro` on the running loop and log, rather than lose, its failure.

    When `track` is given the task is added to it and removed again once it
    finishes, so a store can later wait for its outstanding saves.

    Example:
        create_safe_task(self._save(snapshot), name="save_scan-store", track=self._pending_saves)
    """
    task = asyncio.create_task(coro, name=name)
    if track is not None:
        track.add(task)
        task.add_done_callback(track.discard)

    def _report(t: asyncio.Task) -> None:
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.error(f"[AsyncTask:{name or t.get_name()}] Unhandled exception: {exc}", exc_info=exc)

    task.add_done_callback(_report)
    return task


async def drain_tasks(tasks: Iterable[asyncio.Task]) -> None:
    """
    Wait for a batch of background tasks, ignoring their individual failures.

    Failures were already logged by create_safe_task's done callback.
    """
    pending = [t for t in tasks if not t.done()]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def run_with_timeout(
    coro: Coroutine[Any, Any, Any],
    timeout: float,
    default: Any = None,
    name: Optional[str] = None,
) -> Any:
    """
    Await `coro` for at most `timeout` seconds.

    Returns `default` on timeout. Any other exception propagates so the
    caller can record it (see AdminDirectory.test_api_connection).
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[AsyncTask:{name or 'unknown'}] Timed out after {timeout}s")
        return default
