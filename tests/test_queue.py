"""Tests for fetch-result normalisation, InMemoryQueue and QueueRegistry."""

from __future__ import annotations

import pytest

from conftest import RecordingJob
from queueworker.errors import QueueNotFound
from queueworker.queue import (
    EMPTY,
    Batch,
    Empty,
    InMemoryQueue,
    QueueRegistry,
    Single,
    fetch_result,
)


@pytest.fixture
def jobs(log):
    return [RecordingJob(n, log) for n in ("a", "b", "c")]


class TestFetchResult:

    def test_none_is_empty(self):
        assert isinstance(fetch_result(None), Empty)

    def test_job_is_single(self, jobs):
        result = fetch_result(jobs[0])
        assert result == Single(jobs[0])
        assert result.jobs == (jobs[0],)
        assert result.final is False

    def test_list_is_batch(self, jobs):
        assert fetch_result(jobs) == Batch(tuple(jobs))

    def test_tuple_is_batch(self, jobs):
        assert fetch_result(tuple(jobs)) == Batch(tuple(jobs))

    def test_empty_list_is_empty(self):
        assert fetch_result([]) is EMPTY

    def test_trailing_sentinel_marks_batch_final(self, jobs):
        result = fetch_result([jobs[0], jobs[1], None, jobs[2]])
        assert result == Batch((jobs[0], jobs[1]), final=True)

    def test_leading_sentinel_is_empty(self, jobs):
        assert fetch_result([None, jobs[0]]) is EMPTY

    @pytest.mark.parametrize("raw", [False, 0, "", "x", {"a": 1}, 3.5])
    def test_other_values_are_empty(self, raw):
        assert isinstance(fetch_result(raw), Empty)

    def test_tagged_values_pass_through(self, jobs):
        batch = Batch((jobs[0],))
        assert fetch_result(batch) is batch


class TestInMemoryQueue:

    def test_fifo_and_ids(self, jobs):
        q = InMemoryQueue("mem")
        for job in jobs:
            q.push(job)
        assert len(q) == 3
        assert q.pop() is jobs[0]
        assert q.pop({"batch_size": 5}) == [jobs[1], jobs[2]]
        assert q.pop() is None

    def test_push_assigns_missing_ids(self, log):
        q = InMemoryQueue("mem")
        job = RecordingJob("x", log)
        job.id = None
        q.push(job)
        assert job.id == 1

    def test_delete_recorded(self, jobs):
        q = InMemoryQueue("mem")
        q.delete(jobs[0])
        assert q.deleted == [jobs[0]]


class TestQueueRegistry:

    def test_register_and_get(self):
        reg = QueueRegistry()
        q = InMemoryQueue("a")
        reg.register("a", q)
        assert reg.get("a") is q
        assert "a" in reg

    def test_unknown_raises(self):
        with pytest.raises(QueueNotFound) as exc_info:
            QueueRegistry().get("nope")
        assert "nope" in str(exc_info.value)

    def test_factory_called_once(self):
        calls = []

        def factory(name):
            calls.append(name)
            return InMemoryQueue(name)

        reg = QueueRegistry()
        reg.register_factory("lazy", factory)
        assert "lazy" in reg
        first = reg.get("lazy")
        assert reg.get("lazy") is first
        assert calls == ["lazy"]

    def test_names(self):
        reg = QueueRegistry({"b": InMemoryQueue("b")})
        reg.register_factory("a", InMemoryQueue)
        assert reg.names() == ["a", "b"]
        assert list(reg) == ["a", "b"]


class TestTaggedResultsChecked:

    def test_batch_with_non_job_items_is_cut(self, jobs):
        result = fetch_result(Batch((jobs[0], "junk", jobs[1])))
        assert result == Batch((jobs[0],), final=True)

    def test_batch_of_only_non_jobs_is_empty(self):
        assert fetch_result(Batch(("junk", None))) is EMPTY

    def test_final_flag_kept(self, jobs):
        assert fetch_result(Batch((jobs[0],), final=True)) == Batch((jobs[0],), final=True)

    def test_single_holding_non_job_is_empty(self):
        assert fetch_result(Single("junk")) is EMPTY


def test_failing_factory_stays_registered():
    attempts = []

    def flaky(name):
        attempts.append(name)
        if len(attempts) == 1:
            raise ConnectionError("broker down")
        return InMemoryQueue(name)

    reg = QueueRegistry()
    reg.register_factory("q", flaky)
    with pytest.raises(ConnectionError):
        reg.get("q")

    assert "q" in reg
    assert reg.names() == ["q"]
    queue = reg.get("q")
    assert queue.name == "q"
    assert reg.get("q") is queue
    assert attempts == ["q", "q"]
