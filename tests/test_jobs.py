"""Tests for background job invokers."""

import json
from datetime import date

import httpx
import pytest

from coach_agent.config.schema import JobsConfig
from coach_agent.jobs.invoker import HttpJobInvoker, LocalJobInvoker, create_job_invoker


@pytest.mark.asyncio
async def test_http_invoker_posts_event(tmp_path):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202, headers={"x-invocation-id": "inv-123"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        invoker = HttpJobInvoker("https://jobs.example.com/", token="secret", client=client)
        invocation_id = await invoker.invoke("build-workout", {"user_id": "u1", "workout_date": date(2025, 1, 10)})

    assert invocation_id == "inv-123"
    [request] = seen
    assert str(request.url) == "https://jobs.example.com/jobs/build-workout"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["X-Invocation-Type"] == "Event"
    assert json.loads(request.content) == {"user_id": "u1", "workout_date": "2025-01-10"}


@pytest.mark.asyncio
async def test_http_invoker_raises_on_rejection():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    async with httpx.AsyncClient(transport=transport) as client:
        invoker = HttpJobInvoker("https://jobs.example.com", client=client)
        with pytest.raises(httpx.HTTPStatusError):
            await invoker.invoke("build-workout", {})


@pytest.mark.asyncio
async def test_http_invoker_generates_id_without_header():
    transport = httpx.MockTransport(lambda request: httpx.Response(200))

    async with httpx.AsyncClient(transport=transport) as client:
        invocation_id = await HttpJobInvoker("https://jobs.example.com", client=client).invoke("x", {})

    assert len(invocation_id) == 32


@pytest.mark.asyncio
async def test_local_invoker_queues_jobs(tmp_path):
    invoker = LocalJobInvoker(tmp_path / "jobs")

    first = await invoker.invoke("build-workout", {"n": 1}, description="first")
    await invoker.invoke("build-workout", {"n": 2})

    queued = invoker.queued()
    assert [job["payload"]["n"] for job in queued] == [1, 2]
    assert queued[0]["id"] == first
    assert queued[0]["description"] == "first"


def test_create_job_invoker(tmp_path):
    assert isinstance(create_job_invoker(JobsConfig(), tmp_path), LocalJobInvoker)
    http = create_job_invoker(JobsConfig(api_base="https://jobs.example.com", token="t"), tmp_path)
    assert isinstance(http, HttpJobInvoker)
    assert http.token == "t"
