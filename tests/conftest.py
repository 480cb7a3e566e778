"""Shared fixtures for worker tests."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import pytest

from queueworker.config import WorkerOptions
from queueworker.job import Job
from queueworker.queue import QueueInterface, QueueRegistry
from queueworker.utils.metrics import MetricsCollector


class RecordingJob(Job):
    """Job that appends its name to a shared log when executed."""

    def __init__(self, name: str, log: list[str], fail: bool = False, on_execute=None):
        super().__init__(content={"name": name})
        self.id = name
        self.name = name
        self.log = log
        self.fail = fail
        self.on_execute = on_execute

    def execute(self):
        self.log.append(self.name)
        if self.on_execute is not None:
            self.on_execute(self)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        return self.name


class ScriptedQueue(QueueInterface):
    """Queue whose pop() returns pre-scripted raw results, then None."""

    def __init__(self, name: str, results: list[Any]):
        super().__init__(name)
        self.results = list(results)
        self.pop_calls: list[dict] = []
        self.deleted: list[Job] = []

    def push(self, job: Job, **options: Any) -> None:
        self.results.append(job)

    def pop(self, options: Mapping[str, Any] | None = None) -> Any:
        self.pop_calls.append(dict(options or {}))
        if not self.results:
            return None
        return self.results.pop(0)

    def delete(self, job: Job) -> None:
        self.deleted.append(job)


@pytest.fixture
def log() -> list[str]:
    return []


@pytest.fixture
def make_jobs(log):
    def _make(*names: str) -> list[RecordingJob]:
        return [RecordingJob(n, log) for n in names]
    return _make


@pytest.fixture
def registry() -> QueueRegistry:
    return QueueRegistry()


@pytest.fixture
def collector() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def unbounded() -> WorkerOptions:
    """No run limit and a memory ceiling no test process reaches."""
    return WorkerOptions(max_runs=None, max_memory=2**62)


@pytest.fixture
def restore_root_logger():
    """setup_logger() replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
