"""Domain models for scheduler status and run reports."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum


class TaskStatus(StrEnum):
    """Lifecycle of a scheduled task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True for completed or failed."""
        return self in {TaskStatus.COMPLETED, TaskStatus.FAILED}


@dataclass
class TaskMetadata:
    """Status row for one scheduled task."""

    name: str
    status: TaskStatus = TaskStatus.PENDING
    started_at: datetime | None = None
    ended_at: datetime | None = None
    error: BaseException | None = None

    def as_dict(self) -> dict[str, object]:
        """Serialize the row for the admin API."""
        return {
            "name": self.name,
            "status": str(self.status),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "error": repr(self.error) if self.error else None,
        }


@dataclass(frozen=True)
class BatchReport:
    """Outcome of one intake batch."""

    batch: str
    fetched: int = 0
    processed: int = 0
    rejected: int = 0
    lesser_duplicates: int = 0
    lesser_in_event: int = 0
    failed: int = 0
    uploaded: int = 0


@dataclass
class RunReport:
    """Aggregated outcome of a run over several batches."""

    batches: list[BatchReport] = field(default_factory=list)
    failed_batches: list[str] = field(default_factory=list)

    def add(self, report: BatchReport) -> None:
        """Add one batch outcome."""
        self.batches.append(report)

    def totals(self) -> dict[str, int]:
        """Return summed counters across batches."""
        keys = (
            "fetched",
            "processed",
            "rejected",
            "lesser_duplicates",
            "lesser_in_event",
            "failed",
            "uploaded",
        )
        return {key: sum(getattr(batch, key) for batch in self.batches) for key in keys}

    def as_dict(self) -> dict[str, object]:
        """Serialize the report for the admin API."""
        return {
            "totals": self.totals(),
            "failed_batches": list(self.failed_batches),
            "batches": [asdict(batch) for batch in self.batches],
        }
