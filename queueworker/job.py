"""Job base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Job(ABC):
    """One unit of work pulled from a queue.

    Queues may stamp an ``id`` on the job and attach transport details to
    ``metadata`` (receipt handles, delivery counts, ...).  The worker only
    ever calls :meth:`execute`.
    """

    def __init__(self, content: Any = None, metadata: dict[str, Any] | None = None):
        self.id: str | int | None = None
        self.content = content
        self.metadata: dict[str, Any] = dict(metadata or {})

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    @abstractmethod
    def execute(self) -> Any:
        """Run the job.  Exceptions propagate to the worker."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
