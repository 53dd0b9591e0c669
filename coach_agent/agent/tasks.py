"""Detached background tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from loguru import logger

_pending: set[asyncio.Task] = set()


def spawn_detached(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    """
    Spawn a background task whose outcome the caller never observes.

    A strong reference is kept until the task finishes. Failures are logged
    and never re-raised. Must be called from inside a running event loop.

    Args:
        coro: Coroutine to run.
        name: Task identifier used in log lines.

    Returns:
        The spawned task (for tests and draining only).
    """
    task = asyncio.create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    logger.debug(f"Detached task spawned: {name}")
    return task


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.debug(f"Detached task cancelled: {task.get_name()}")
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Detached task failed (non-blocking): {task.get_name()}: {exc}")


def pending_tasks() -> list[asyncio.Task]:
    """List detached tasks that have not finished yet."""
    return [t for t in _pending if not t.done()]


async def drain_detached(timeout: float | None = 5.0) -> None:
    """Wait for outstanding detached tasks, cancelling any still running at the timeout."""
    tasks = pending_tasks()
    if not tasks:
        return
    _, still_running = await asyncio.wait(tasks, timeout=timeout)
    for task in still_running:
        task.cancel()
        logger.debug(f"Cancelled detached task at drain: {task.get_name()}")
