"""Background curation runs started from the admin API."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

from photo_curator.domain.reports import RunReport, TaskStatus
from photo_curator.services.pipeline import PipelineDriver, dates_in_range

_logger = logging.getLogger(__name__)


@dataclass
class RunRecord:
    """Status of one run over a date range."""

    id: UUID
    start: date
    end: date
    status: TaskStatus = TaskStatus.PENDING
    started_at: datetime | None = None
    ended_at: datetime | None = None
    report: RunReport | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, object]:
        """Serialize the run for the admin API."""
        return {
            "id": str(self.id),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": str(self.status),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "report": self.report.as_dict() if self.report else None,
            "error": self.error,
        }


@dataclass
class RunService:
    """Starts pipeline runs as background tasks and tracks their outcome."""

    driver: PipelineDriver
    runs: dict[UUID, RunRecord] = field(default_factory=dict)
    _tasks: dict[UUID, "asyncio.Task[None]"] = field(default_factory=dict)

    def start_run(self, start: date, end: date) -> RunRecord:
        """Schedule a run on the running event loop and return its record."""
        dates_in_range(start, end)
        record = RunRecord(id=uuid4(), start=start, end=end)
        self.runs[record.id] = record
        self._tasks[record.id] = asyncio.create_task(
            self._execute(record), name=f"run:{record.id}"
        )
        _logger.info("Started run %s for %s..%s", record.id, start, end)
        return record

    def get_run(self, run_id: UUID) -> RunRecord | None:
        """Return a run by id."""
        return self.runs.get(run_id)

    def task_statuses(self) -> dict[str, object]:
        """Return the scheduler status tables of the driver."""
        return self.driver.task_statuses()

    async def wait(self, run_id: UUID) -> RunRecord:
        """Wait for a run to finish and return its record."""
        task = self._tasks.get(run_id)
        if task is not None:
            await task
        return self.runs[run_id]

    async def shutdown(self) -> int:
        """Cancel unfinished runs, mark them failed and return how many."""
        tasks = list(self._tasks.items())
        for _, task in tasks:
            task.cancel()
        await asyncio.gather(*(task for _, task in tasks), return_exceptions=True)
        for run_id, _ in tasks:
            record = self.runs[run_id]
            if not record.status.is_terminal:
                record.status = TaskStatus.FAILED
                record.error = "CancelledError: shut down before completion"
                record.ended_at = datetime.now(tz=UTC)
        self._tasks.clear()
        return len(tasks)

    async def _execute(self, record: RunRecord) -> None:
        record.status = TaskStatus.RUNNING
        record.started_at = datetime.now(tz=UTC)
        try:
            record.report = await self.driver.run(
                record.start, record.end, run_key=str(record.id)
            )
        except Exception as exc:
            _logger.exception("Run %s failed", record.id)
            record.status = TaskStatus.FAILED
            record.error = f"{type(exc).__name__}: {exc}"
        else:
            record.status = TaskStatus.COMPLETED
        finally:
            record.ended_at = datetime.now(tz=UTC)
            self._tasks.pop(record.id, None)
