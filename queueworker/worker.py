"""Worker loop — pop jobs from one queue and execute them until told to stop.

Loop
----
``process_queue(name)`` resolves the queue, then repeatedly pops from it.
Every job popped is executed in order and counted.  After *each* job three
stop checks run, in this order:

  1. the count reached ``options.max_runs`` (skipped when ``None``)
  2. process resident memory is above ``options.max_memory``
  3. the stop flag is set (signal, ``stop()``, or a shared StopToken)

The first one that holds ends the call and the count is returned.  Jobs left
in the current batch are not executed; redelivering them is the queue's job.
An empty pop also ends the call.

Failures
--------
There is no retry or recovery here.  Any exception from ``process_job``
is re-raised as :class:`JobExecutionFailure` and the call ends.  Retry and
burying policies belong to the ``process_job`` implementation or to the
supervisor that restarts the worker process.

Events
------
  process_queue.pre   {queue, options}
  process_job.pre     {queue, job}
  process_job.post    {queue, job, result}
  process_queue.post  {queue, count, reason}
  handle_signal       {signo}
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping

from queueworker.config import WorkerOptions
from queueworker.errors import JobExecutionFailure
from queueworker.events import EventManager, normalize_identifiers
from queueworker.job import Job
from queueworker.queue import Empty, QueueInterface, QueueRegistry, fetch_result
from queueworker.signals import SignalBridge, termination_signals
from queueworker.utils.logger import ctx_job_id, ctx_queue
from queueworker.utils.memory import memory_usage
from queueworker.utils.metrics import (
    MetricsCollector,
    metrics,
    record_job_failed,
    record_job_processed,
    record_worker_stop,
)

logger = logging.getLogger("queueworker.worker")

STOP_MAX_RUNS = "max_runs"
STOP_MAX_MEMORY = "max_memory"
STOP_STOPPED = "stopped"
STOP_EMPTY = "empty"


class StopToken:
    """Cancellation flag shared by whoever may ask a worker to stop.

    Once set it stays set.
    """

    def __init__(self):
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


class AbstractWorker(ABC):
    """Drives the pop/execute cycle; subclasses decide how a job is run.

    Subclasses may declare extra event identifiers, as a string or an
    iterable of strings, in ``event_identifier``.
    """

    event_identifier: str | Iterable[str] | None = None

    tracked_signals: tuple[int, ...] = termination_signals()

    def __init__(
        self,
        queues: QueueRegistry,
        options: WorkerOptions | None = None,
        events: EventManager | None = None,
        stop_token: StopToken | None = None,
        signal_bridge: SignalBridge | None = None,
        memory_probe: Callable[[], int] = memory_usage,
        metrics_collector: MetricsCollector = metrics,
    ):
        self.queues = queues
        self.options = options or WorkerOptions()
        self.memory_probe = memory_probe
        self.metrics = metrics_collector
        self._stop = stop_token or StopToken()
        self._extra_identifiers = normalize_identifiers(self.event_identifier)
        self._events: EventManager | None = None
        if events is not None:
            self.events = events

        self.signal_bridge = signal_bridge
        if signal_bridge is not None:
            signal_bridge.install(self.handle_signal)

    # ─────────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────────

    @property
    def events(self) -> EventManager:
        if self._events is None:
            self.events = EventManager()
        return self._events

    @events.setter
    def events(self, events: EventManager) -> None:
        events.set_identifiers(self.event_identifiers())
        self._events = events

    def event_identifiers(self) -> tuple[str, ...]:
        base = f"{AbstractWorker.__module__}.{AbstractWorker.__qualname__}"
        concrete = f"{type(self).__module__}.{type(self).__qualname__}"
        return normalize_identifiers((base, concrete, *self._extra_identifiers))

    # ─────────────────────────────────────────────────────────────────────
    # Loop
    # ─────────────────────────────────────────────────────────────────────

    def process_queue(self, queue_name: str, options: Mapping[str, Any] | None = None) -> int:
        """Process jobs from *queue_name* and return how many were executed.

        Raises QueueNotFound for an unknown queue and JobExecutionFailure
        when a job raises.
        """
        queue = self.queues.get(queue_name)
        pop_options = dict(options or {})

        token = ctx_queue.set(queue_name)
        try:
            logger.info(
                "Processing queue %s (max_runs=%s, max_memory=%d)",
                queue_name, self.options.max_runs, self.options.max_memory,
            )
            self.events.trigger("process_queue.pre", self, {"queue": queue_name, "options": pop_options})
            count, reason = self._consume(queue, pop_options)
        finally:
            ctx_queue.reset(token)

        record_worker_stop(reason, self.metrics)
        logger.info("Stopped processing queue %s after %d job(s): %s", queue_name, count, reason)
        self.events.trigger(
            "process_queue.post", self, {"queue": queue_name, "count": count, "reason": reason}
        )
        return count

    def _consume(self, queue: QueueInterface, pop_options: dict[str, Any]) -> tuple[int, str]:
        count = 0
        while True:
            fetched = fetch_result(queue.pop(pop_options))
            if isinstance(fetched, Empty):
                return count, STOP_EMPTY

            for job in fetched.jobs:
                self._execute(job, queue, count)
                count += 1

                reason = self._stop_reason(count)
                if reason is not None:
                    return count, reason

            if fetched.final:
                return count, STOP_EMPTY

    def _execute(self, job: Job, queue: QueueInterface, processed: int) -> None:
        token = ctx_job_id.set(job.id)
        try:
            self.events.trigger("process_job.pre", self, {"queue": queue.name, "job": job})
            logger.debug("Executing job %s", job.id)
            started = time.monotonic()
            try:
                result = self.process_job(job, queue)
            except JobExecutionFailure:
                record_job_failed(queue.name, self.metrics)
                raise
            except Exception as exc:
                record_job_failed(queue.name, self.metrics)
                raise JobExecutionFailure(job, queue.name, processed) from exc

            record_job_processed(queue.name, time.monotonic() - started, self.metrics)
            self.events.trigger(
                "process_job.post", self, {"queue": queue.name, "job": job, "result": result}
            )
        finally:
            ctx_job_id.reset(token)

    def _stop_reason(self, count: int) -> str | None:
        if self.options.max_runs is not None and count >= self.options.max_runs:
            return STOP_MAX_RUNS
        if self.memory_probe() > self.options.max_memory:
            return STOP_MAX_MEMORY
        if self.is_stopped():
            return STOP_STOPPED
        return None

    @abstractmethod
    def process_job(self, job: Job, queue: QueueInterface) -> Any:
        """Execute *job* popped from *queue*."""

    # ─────────────────────────────────────────────────────────────────────
    # Stopping
    # ─────────────────────────────────────────────────────────────────────

    def is_stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask the loop to return after the job in progress."""
        self._stop.set()

    def handle_signal(self, signo: int) -> None:
        """Stop on SIGTERM/SIGINT; any other signal number is ignored."""
        if signo not in self.tracked_signals:
            return
        logger.info("Received signal %d; stopping after the current job", signo)
        self.events.trigger("handle_signal", self, {"signo": signo})
        self._stop.set()

    def close(self) -> None:
        """Restore the signal handlers replaced by the bridge, if any."""
        if self.signal_bridge is not None:
            self.signal_bridge.uninstall()


class Worker(AbstractWorker):
    """Runs ``job.execute()`` and deletes the job from its queue."""

    def process_job(self, job: Job, queue: QueueInterface) -> Any:
        result = job.execute()
        queue.delete(job)
        return result
