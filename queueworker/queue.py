"""Queue contract, fetch results and the name → queue registry.

A queue's ``pop()`` may hand back nothing (timeout, drained queue), a single
job, or a list of jobs.  :func:`fetch_result` turns that raw value into one of
three tagged outcomes so the worker loop can branch on the shape explicitly:

  Empty            — nothing to process; the loop returns its count.
  Single(job)      — exactly one job.
  Batch(jobs, final)
                   — jobs in pop order.  ``final`` is set when the raw list
                     contained a non-job value: everything from that value on
                     is dropped and the loop returns after the leading jobs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Union

from queueworker.errors import QueueNotFound
from queueworker.job import Job

logger = logging.getLogger("queueworker.queue")


# ─────────────────────────────────────────────────────────────────────────────
# Fetch results
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Single:
    job: Job

    @property
    def jobs(self) -> tuple[Job, ...]:
        return (self.job,)

    @property
    def final(self) -> bool:
        return False


@dataclass(frozen=True)
class Batch:
    jobs: tuple[Job, ...]
    final: bool = False


FetchResult = Union[Empty, Single, Batch]

EMPTY = Empty()


def fetch_result(raw: Any) -> FetchResult:
    """Normalise a raw ``pop()`` return value."""
    if isinstance(raw, Empty):
        return raw
    if isinstance(raw, Single):
        return raw if isinstance(raw.job, Job) else EMPTY
    if isinstance(raw, Batch):
        checked = fetch_result(list(raw.jobs))
        if isinstance(checked, Batch) and raw.final and not checked.final:
            return Batch(checked.jobs, final=True)
        return checked
    if isinstance(raw, Job):
        return Single(raw)
    if isinstance(raw, (list, tuple)):
        jobs: list[Job] = []
        for item in raw:
            if not isinstance(item, Job):
                logger.debug(
                    "Non-job value %r in fetched batch; dropping %d trailing item(s)",
                    item, len(raw) - len(jobs),
                )
                return Batch(tuple(jobs), final=True) if jobs else EMPTY
            jobs.append(item)
        return Batch(tuple(jobs)) if jobs else EMPTY
    if raw is not None:
        logger.debug("Unrecognised fetch result %r treated as empty", raw)
    return EMPTY


# ─────────────────────────────────────────────────────────────────────────────
# Queues
# ─────────────────────────────────────────────────────────────────────────────


class QueueInterface(ABC):
    """What the worker needs from a queue."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def push(self, job: Job, **options: Any) -> None:
        """Add *job* to the queue."""

    @abstractmethod
    def pop(self, options: Mapping[str, Any] | None = None) -> Any:
        """Block until work is available (or the queue gives up).

        Returns ``None``, a :class:`Job`, a list of jobs, or a
        :data:`FetchResult`.
        """

    @abstractmethod
    def delete(self, job: Job) -> None:
        """Acknowledge *job* once it has been executed."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class InMemoryQueue(QueueInterface):
    """Process-local FIFO queue.

    ``pop()`` never blocks: an empty queue yields ``None``.  Pass
    ``{"batch_size": n}`` to receive up to *n* jobs as a list.
    """

    def __init__(self, name: str):
        super().__init__(name)
        self._jobs: deque[Job] = deque()
        self._next_id = 1
        self.deleted: list[Job] = []

    def push(self, job: Job, **options: Any) -> None:
        if job.id is None:
            job.id = self._next_id
            self._next_id += 1
        self._jobs.append(job)

    def pop(self, options: Mapping[str, Any] | None = None) -> Any:
        batch_size = int((options or {}).get("batch_size", 1))
        if not self._jobs:
            return None
        if batch_size <= 1:
            return self._jobs.popleft()
        return [self._jobs.popleft() for _ in range(min(batch_size, len(self._jobs)))]

    def delete(self, job: Job) -> None:
        self.deleted.append(job)

    def __len__(self) -> int:
        return len(self._jobs)


# ─────────────────────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────────────────────


class QueueRegistry:
    """Maps queue names to queue instances.

    A factory may be registered instead of an instance; it is called once
    with the queue name on first lookup.
    """

    def __init__(self, queues: Mapping[str, QueueInterface] | None = None):
        self._queues: dict[str, QueueInterface] = dict(queues or {})
        self._factories: dict[str, Callable[[str], QueueInterface]] = {}

    def register(self, name: str, queue: QueueInterface) -> None:
        self._queues[name] = queue
        logger.debug("Registered queue %s (%s)", name, type(queue).__name__)

    def register_factory(self, name: str, factory: Callable[[str], QueueInterface]) -> None:
        self._factories[name] = factory

    def get(self, name: str) -> QueueInterface:
        queue = self._queues.get(name)
        if queue is not None:
            return queue
        factory = self._factories.get(name)
        if factory is None:
            raise QueueNotFound(name)
        # a failing factory stays registered so the lookup can be retried
        queue = self._queues[name] = factory(name)
        del self._factories[name]
        return queue

    def names(self) -> list[str]:
        return sorted(set(self._queues) | set(self._factories))

    def __contains__(self, name: object) -> bool:
        return name in self._queues or name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
