"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

if TYPE_CHECKING:
    from photo_curator.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


class RunRequest(BaseModel):
    """Date range for a curation run."""

    start: date
    end: date


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post(
    "/runs",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_run(payload: RunRequest, request: Request) -> dict[str, object]:
    """Start a curation run over a date range in the background."""
    container: AppContainer = request.app.state.container
    try:
        record = container.run_service.start_run(payload.start, payload.end)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)
        ) from exc
    return record.as_dict()


@router.get("/runs/{run_id}", dependencies=[Depends(require_admin)])
async def run_detail(run_id: UUID, request: Request) -> dict[str, object]:
    """Return a run's status and report."""
    container: AppContainer = request.app.state.container
    record = container.run_service.get_run(run_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return record.as_dict()


@router.get("/tasks", dependencies=[Depends(require_admin)])
async def list_tasks(request: Request) -> dict[str, object]:
    """Return scheduler status tables."""
    container: AppContainer = request.app.state.container
    return {"schedulers": container.run_service.task_statuses()}
