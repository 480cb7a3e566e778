"""Worker settings — loaded from environment variables."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_MAX_RUNS = 100000
DEFAULT_MAX_MEMORY = 100 * 1024 * 1024


class Settings(BaseSettings):
    # ── Worker ──────────────────────────────────────────────────
    # Queue processed by ``python -m queueworker`` when no name is given.
    WORKER_QUEUE: str = "default"

    # Stop after this many jobs.  Leave empty or set 0 for no limit.
    WORKER_MAX_RUNS: int | None = DEFAULT_MAX_RUNS

    # Stop once the process resident memory exceeds this many bytes.
    WORKER_MAX_MEMORY: int = DEFAULT_MAX_MEMORY

    # Install SIGINT/SIGTERM handlers so the worker can be stopped cleanly.
    WORKER_HANDLE_SIGNALS: bool = True

    # "module:attribute" of the QueueRegistry (or a factory returning one).
    WORKER_REGISTRY: str | None = None

    # ── Logging ─────────────────────────────────────────────────
    LOG_FORMAT: str = "text"  # text | json
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("WORKER_MAX_RUNS", mode="before")
    @classmethod
    def _empty_is_unbounded(cls, value):
        if isinstance(value, str):
            value = value.strip()
        if value in ("", "0", 0):
            return None
        return value


class WorkerOptions(BaseModel):
    """Limits applied by the worker loop.

    ``max_runs=None`` means the loop never stops on the job count alone.
    """

    model_config = ConfigDict(frozen=True)

    max_runs: Annotated[int, Field(ge=1)] | None = DEFAULT_MAX_RUNS
    max_memory: int = Field(default=DEFAULT_MAX_MEMORY, ge=0)

    @classmethod
    def from_settings(cls, s: Settings) -> "WorkerOptions":
        return cls(max_runs=s.WORKER_MAX_RUNS, max_memory=s.WORKER_MAX_MEMORY)


settings = Settings()
