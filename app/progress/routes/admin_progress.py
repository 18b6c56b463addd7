"""Admin routes for inspecting and repairing learner progress."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.auth.dependencies import require_admin
from app.auth.schemas import AuthenticatedUser
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.exceptions import NotFoundError
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.progress.schemas import (
    GlobalProgressStatsResponse,
    IntegrityIssueResponse,
    IntegrityReportResponse,
    ProgressListResponse,
    ProgressSnapshotResponse,
    ProgressSummaryResponse,
    RecomputeCompletionResponse,
    ResetProgressResponse,
    snapshot_response,
)
from app.progress.services.progress_service import ProgressService

router = APIRouter(prefix="/admin/progress", tags=["admin-progress"])


@router.get("", response_model=ProgressListResponse)
async def list_progress(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    completed: bool | None = Query(
        default=None, description="Only finished (true) or unfinished (false) paths"
    ),
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> ProgressListResponse:
    items, total = ProgressService(db).list_progress(skip=skip, limit=limit, completed=completed)

    return ProgressListResponse(
        total=total,
        items=[
            ProgressSummaryResponse(
                user_id=p.user_id,
                current_position=p.current_position,
                completed_videos=len(p.completed_videos),
                last_activity_at=p.last_activity_at,
                completed_at=p.completed_at,
            )
            for p in items
        ],
    )


@router.get("/stats", response_model=GlobalProgressStatsResponse)
async def get_global_stats(
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> GlobalProgressStatsResponse:
    return GlobalProgressStatsResponse.model_validate(ProgressService(db).get_global_stats())


@router.get("/integrity", response_model=IntegrityReportResponse)
@limiter.limit("10/minute")
async def get_integrity_report(
    request: Request,
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> IntegrityReportResponse:
    """Report progress records that break the engine's invariants.

    Read-only: nothing is deduplicated, deleted or rewritten.
    """
    report = ProgressService(db).find_integrity_issues()
    return IntegrityReportResponse(
        checked_records=report.checked_records,
        is_clean=report.is_clean,
        counts=report.counts(),
        issues=[IntegrityIssueResponse.model_validate(issue) for issue in report.issues],
    )


@router.post("/recompute-completion", response_model=RecomputeCompletionResponse)
@limiter.limit("2/minute")
async def recompute_completion(
    request: Request,
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> RecomputeCompletionResponse:
    """Re-derive ``completed_at`` after publishing or unpublishing videos."""
    changed = ProgressService(db).recompute_completion_for_all()
    return RecomputeCompletionResponse(changed=changed)


@router.get("/{user_id}", response_model=ProgressSnapshotResponse)
async def get_user_progress(
    user_id: UUID,
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> ProgressSnapshotResponse:
    progress = ProgressService(db).get_synced_progress(user_id)
    if not progress:
        raise NotFoundError("Progress not found", resource="progress")
    return snapshot_response(user_id, progress)


@router.delete("/{user_id}", response_model=ResetProgressResponse)
async def reset_user_progress(
    user_id: UUID,
    db: Session = Depends(get_db),
    _admin: AuthenticatedUser = Depends(require_admin),
) -> ResetProgressResponse:
    """Reset a learner to the start of the path. Safe to repeat."""
    existed = ProgressService(db).reset_progress(user_id)
    return ResetProgressResponse(user_id=user_id, existed=existed)
