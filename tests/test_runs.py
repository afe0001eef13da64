"""Tests for background run tracking."""

import asyncio
from datetime import date

import pytest

from photo_curator.domain.errors import TransientRemoteError
from photo_curator.domain.reports import TaskStatus
from photo_curator.services.runs import RunService
from tests.conftest import PipelineHarness


def test_run_service_completes_and_keeps_report(harness: PipelineHarness) -> None:
    service = RunService(harness.driver)

    async def scenario():  # type: ignore[no-untyped-def]
        record = service.start_run(date(2024, 5, 1), date(2024, 5, 1))
        return await service.wait(record.id)

    record = asyncio.run(scenario())

    assert record.status is TaskStatus.COMPLETED
    assert record.report is not None
    assert record.as_dict()["report"]["totals"]["fetched"] == 0  # type: ignore[index]
    assert record.ended_at is not None
    statuses = service.task_statuses()
    assert statuses["running"] == {}
    assert "photos:2024-05-01" in statuses["last_finished"]  # type: ignore[operator]


def test_run_service_records_failed_run(harness: PipelineHarness) -> None:
    service = RunService(harness.driver)
    harness.repository.list_processed_file_names = _boom  # type: ignore[method-assign]

    async def scenario():  # type: ignore[no-untyped-def]
        record = service.start_run(date(2024, 5, 1), date(2024, 5, 1))
        return await service.wait(record.id)

    record = asyncio.run(scenario())

    assert record.status is TaskStatus.FAILED
    assert record.error == "TransientRemoteError: database unavailable"
    assert service.get_run(record.id) is record


def test_run_service_rejects_reversed_range(harness: PipelineHarness) -> None:
    service = RunService(harness.driver)

    with pytest.raises(ValueError):
        service.start_run(date(2024, 5, 2), date(2024, 5, 1))
    assert service.runs == {}


def _boom() -> set[str]:
    raise TransientRemoteError("database unavailable")


def test_shutdown_cancels_unfinished_runs(harness: PipelineHarness) -> None:
    service = RunService(harness.driver)

    async def never_finishes(start: date, end: date, **_: object) -> None:
        await asyncio.Event().wait()

    harness.driver.run = never_finishes  # type: ignore[method-assign]

    async def scenario():  # type: ignore[no-untyped-def]
        record = service.start_run(date(2024, 5, 1), date(2024, 5, 3))
        await asyncio.sleep(0)
        return record, await service.shutdown()

    record, cancelled = asyncio.run(scenario())

    assert cancelled == 1
    assert record.status is TaskStatus.FAILED
    assert record.error is not None
    assert record.error.startswith("CancelledError")
    assert record.ended_at is not None
