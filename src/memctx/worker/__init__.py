"""Client for the claude-mem background worker."""

from .client import (
    DEFAULT_WORKER_URL,
    RetryableWorkerError,
    WorkerClient,
    WorkerConfig,
    WorkerError,
)

__all__ = [
    "DEFAULT_WORKER_URL",
    "RetryableWorkerError",
    "WorkerClient",
    "WorkerConfig",
    "WorkerError",
]
