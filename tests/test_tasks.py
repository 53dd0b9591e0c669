"""Tests for detached background tasks."""

import asyncio

import pytest

from coach_agent.agent.tasks import drain_detached, pending_tasks, spawn_detached


@pytest.mark.asyncio
async def test_detached_task_runs_without_being_awaited():
    done = asyncio.Event()

    async def work():
        done.set()

    spawn_detached(work(), name="work")
    await drain_detached()

    assert done.is_set()
    assert pending_tasks() == []


@pytest.mark.asyncio
async def test_detached_failure_is_not_raised_to_spawner():
    async def fail():
        raise RuntimeError("vector store down")

    task = spawn_detached(fail(), name="fail")
    await drain_detached()

    assert task.done()
    assert isinstance(task.exception(), RuntimeError)


@pytest.mark.asyncio
async def test_drain_cancels_tasks_still_running():
    async def slow():
        await asyncio.sleep(10)

    task = spawn_detached(slow(), name="slow")
    await drain_detached(timeout=0.01)
    await asyncio.gather(task, return_exceptions=True)

    assert task.cancelled()


@pytest.mark.asyncio
async def test_drain_with_nothing_pending():
    await drain_detached()
