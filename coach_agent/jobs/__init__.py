"""Background job dispatch."""

from coach_agent.jobs.invoker import (
    BackgroundJobInvoker,
    HttpJobInvoker,
    LocalJobInvoker,
    create_job_invoker,
)

__all__ = ["BackgroundJobInvoker", "HttpJobInvoker", "LocalJobInvoker", "create_job_invoker"]
