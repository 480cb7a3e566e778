"""Exceptions raised by the worker."""

from __future__ import annotations

from typing import Any


class QueueWorkerError(Exception):
    """Base class for worker errors."""


class QueueNotFound(QueueWorkerError, KeyError):
    """Raised when a queue name has no registered queue."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Queue {self.name!r} is not registered"


class JobExecutionFailure(QueueWorkerError):
    """Raised by ``process_queue`` when a job fails.

    The loop never recovers from it: processing of the queue ends and the
    original exception is available as ``__cause__``.
    """

    def __init__(self, job: Any, queue_name: str, processed: int):
        super().__init__(
            f"Job {getattr(job, 'id', None)!r} failed on queue {queue_name!r} "
            f"after {processed} processed job(s)"
        )
        self.job = job
        self.queue_name = queue_name
        self.processed = processed
