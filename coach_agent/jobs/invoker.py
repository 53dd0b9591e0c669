"""Fire-and-forget invocation of named background jobs."""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from coach_agent.config.schema import JobsConfig


class BackgroundJobInvoker(ABC):
    """
    Dispatches a named job with a JSON payload without waiting for it to run.

    ``invoke`` returns once the job has been accepted; completion is never
    observed by the caller.
    """

    @abstractmethod
    async def invoke(self, job_name: str, payload: dict[str, Any], description: str = "") -> str:
        """
        Dispatch a job.

        Args:
            job_name: Name of the job handler.
            payload: JSON-serializable job input.
            description: Short label for logs.

        Returns:
            An invocation id.
        """


class HttpJobInvoker(BackgroundJobInvoker):
    """Posts jobs to ``{api_base}/jobs/{job_name}`` and expects a 2xx acceptance."""

    def __init__(
        self,
        api_base: str,
        token: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    async def invoke(self, job_name: str, payload: dict[str, Any], description: str = "") -> str:
        headers = {"Content-Type": "application/json", "X-Invocation-Type": "Event"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        url = f"{self.api_base}/jobs/{job_name}"
        body = json.loads(json.dumps(payload, default=str))
        if self._client is not None:
            resp = await self._client.post(url, headers=headers, json=body)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, headers=headers, json=body)
        resp.raise_for_status()

        invocation_id = resp.headers.get("x-invocation-id") or uuid.uuid4().hex
        logger.info(f"Job dispatched: {job_name} ({description or 'no description'}) id={invocation_id}")
        return invocation_id


class LocalJobInvoker(BackgroundJobInvoker):
    """Appends jobs to a JSONL queue file for a local worker to pick up."""

    def __init__(self, queue_dir: Path) -> None:
        self._dir = queue_dir
        self._dir.mkdir(parents=True, exist_ok=True)
        self._file = self._dir / "queue.jsonl"

    async def invoke(self, job_name: str, payload: dict[str, Any], description: str = "") -> str:
        invocation_id = uuid.uuid4().hex
        record = {
            "id": invocation_id,
            "job": job_name,
            "description": description,
            "payload": payload,
            "queued_at": datetime.now(timezone.utc).isoformat(),
        }
        with open(self._file, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
        logger.info(f"Job queued locally: {job_name} id={invocation_id}")
        return invocation_id

    def queued(self) -> list[dict[str, Any]]:
        """Read back every queued job (oldest first)."""
        if not self._file.exists():
            return []
        return [json.loads(line) for line in self._file.read_text(encoding="utf-8").splitlines() if line.strip()]


def create_job_invoker(config: JobsConfig, data_dir: Path) -> BackgroundJobInvoker:
    """HTTP invoker when an api_base is configured, otherwise the local queue."""
    if config.api_base:
        return HttpJobInvoker(config.api_base, token=config.token, timeout=config.timeout)
    return LocalJobInvoker(data_dir / "jobs")
