"""Single-queue job worker.

A worker pulls jobs from one named queue and executes them until it hits
its run limit or memory ceiling, the queue comes back empty, or a SIGTERM /
SIGINT asks it to stop.  Restarting it is left to a process supervisor.

    python -m queueworker emails --registry myapp.queues:registry
"""

from queueworker.config import WorkerOptions
from queueworker.errors import JobExecutionFailure, QueueNotFound, QueueWorkerError
from queueworker.events import Event, EventManager, SharedEventManager
from queueworker.job import Job
from queueworker.queue import Batch, Empty, InMemoryQueue, QueueInterface, QueueRegistry, Single
from queueworker.signals import SignalBridge
from queueworker.worker import AbstractWorker, StopToken, Worker

__version__ = "0.1.0"

__all__ = [
    "AbstractWorker",
    "Batch",
    "Empty",
    "Event",
    "EventManager",
    "InMemoryQueue",
    "Job",
    "JobExecutionFailure",
    "QueueInterface",
    "QueueNotFound",
    "QueueRegistry",
    "QueueWorkerError",
    "SharedEventManager",
    "SignalBridge",
    "Single",
    "StopToken",
    "Worker",
    "WorkerOptions",
]
