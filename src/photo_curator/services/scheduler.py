"""Bounded-concurrency task scheduler with paired pacing.

Tasks start in pairs. When the second task of a pair finishes, the whole
scheduler stops starting work for a random delay; when the first task of a pair
finishes, only the slot it held waits. The result is a "breathing" request
pattern that keeps strict rate limiters on the collaborators happy.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from photo_curator.domain.errors import DuplicateTaskError
from photo_curator.domain.reports import TaskMetadata, TaskStatus

_logger = logging.getLogger(__name__)

Work = Callable[[], Awaitable[Any]]


@dataclass
class TaskScheduler:
    """Runs named async units of work, at most `concurrency` at a time."""

    concurrency: int = 2
    delay_floor: float = 0.2
    delay_ceiling: float = 0.6
    raise_on_duplicate_name: bool = False
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    rng: random.Random = field(default_factory=random.Random)
    name: str = "scheduler"

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.delay_floor < 0 or self.delay_ceiling < self.delay_floor:
            raise ValueError("delay bounds must satisfy 0 <= floor <= ceiling")
        self._slots = asyncio.Semaphore(self.concurrency)
        self._accepting = asyncio.Event()
        self._accepting.set()
        self._pauses = 0
        self._position = 0
        self._tasks: dict[str, TaskMetadata] = {}
        self._handles: list[asyncio.Task[Any]] = []

    def submit(self, name: str, work: Work) -> "asyncio.Task[Any]":
        """Enqueue `work` under a unique name and return an awaitable handle."""
        if name in self._tasks:
            _logger.warning("%s: task %r already exists", self.name, name)
            if self.raise_on_duplicate_name:
                raise DuplicateTaskError(f"Task with name {name!r} already exists")
        metadata = TaskMetadata(name=name)
        self._tasks[name] = metadata
        handle = asyncio.create_task(self._run(metadata, work), name=name)
        self._handles.append(handle)
        return handle

    async def drain(self, *, raise_errors: bool = False) -> list[TaskMetadata]:
        """Wait until every submitted task is terminal and return the failures."""
        while True:
            pending = [handle for handle in self._handles if not handle.done()]
            if not pending:
                break
            await asyncio.wait(pending)
        for handle in self._handles:
            if not handle.cancelled():
                handle.exception()
        self._handles = []
        self._position = 0
        failures = [
            meta for meta in self._tasks.values() if meta.status is TaskStatus.FAILED
        ]
        _logger.info("%s: idle, %s task(s) failed", self.name, len(failures))
        errors = [meta.error for meta in failures if isinstance(meta.error, Exception)]
        if raise_errors and errors:
            raise ExceptionGroup(
                f"{len(failures)} task(s) failed in {self.name}", errors
            )
        return failures

    def status(self, name: str) -> TaskMetadata | None:
        """Return a copy of one task's status row."""
        metadata = self._tasks.get(name)
        return replace(metadata) if metadata else None

    def statuses(self) -> dict[str, TaskMetadata]:
        """Return a snapshot of the status table."""
        return {name: replace(meta) for name, meta in self._tasks.items()}

    def summary(self) -> dict[str, int]:
        """Return task counts per status."""
        counts = {str(status): 0 for status in TaskStatus}
        for meta in self._tasks.values():
            counts[str(meta.status)] += 1
        return counts

    async def _run(self, metadata: TaskMetadata, work: Work) -> Any:
        try:
            return await self._run_in_slot(metadata, work)
        except asyncio.CancelledError as exc:
            if not metadata.status.is_terminal:
                metadata.status = TaskStatus.FAILED
                metadata.error = exc
                metadata.ended_at = datetime.now(tz=UTC)
                _logger.warning("%s: task cancelled %s", self.name, metadata.name)
            raise

    async def _run_in_slot(self, metadata: TaskMetadata, work: Work) -> Any:
        async with self._slots:
            await self._accepting.wait()
            self._position += 1
            position = self._position
            if position % 2 == 1:
                _logger.debug("%s: batch start at task %s", self.name, metadata.name)
            metadata.status = TaskStatus.RUNNING
            metadata.started_at = datetime.now(tz=UTC)
            _logger.info("%s: task start %s", self.name, metadata.name)
            cancelled = False
            try:
                result = await work()
            except asyncio.CancelledError:
                cancelled = True
                raise
            except Exception as exc:
                metadata.status = TaskStatus.FAILED
                metadata.error = exc
                metadata.ended_at = datetime.now(tz=UTC)
                _logger.error(
                    "%s: task failed %s: %r", self.name, metadata.name, exc
                )
                raise
            else:
                metadata.status = TaskStatus.COMPLETED
                metadata.ended_at = datetime.now(tz=UTC)
                _logger.info(
                    "%s: task complete %s in %.2fs",
                    self.name,
                    metadata.name,
                    (metadata.ended_at - metadata.started_at).total_seconds(),
                )
                return result
            finally:
                if not cancelled:
                    await self._pace(position)

    async def _pace(self, position: int) -> None:
        delay = self.rng.uniform(self.delay_floor, self.delay_ceiling)
        if position % 2 == 1:
            await self.sleep(delay)
            return
        self._pauses += 1
        self._accepting.clear()
        try:
            await self.sleep(delay)
        finally:
            self._pauses -= 1
            if self._pauses == 0:
                self._accepting.set()
