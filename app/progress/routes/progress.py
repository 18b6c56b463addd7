from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.schemas import AuthenticatedUser
from app.catalog.schemas import video_response
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.progress.schemas import (
    LearningPathEntryResponse,
    NextVideoResponse,
    ProgressSnapshotResponse,
    ProgressStatsResponse,
    QuizAttemptResponse,
    VideoAccessResponse,
    VideoWatchStatsResponse,
    WatchSessionRequest,
    WatchTimeResponse,
    snapshot_response,
)
from app.progress.services.access_resolver import VideoAccessStatus, has_access
from app.progress.services.progress_service import ProgressService
from app.progress.services.watch_tracker import WatchSession

router = APIRouter()


@router.get("/progress", response_model=ProgressSnapshotResponse)
async def get_my_progress(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ProgressSnapshotResponse:
    """Current learner's progress. Reading never creates a record."""
    progress = ProgressService(db).get_synced_progress(current_user.id)
    return snapshot_response(current_user.id, progress)


@router.get("/progress/access", response_model=dict[str, VideoAccessStatus])
async def get_access_map(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, VideoAccessStatus]:
    """Status of every published video, keyed by video id."""
    statuses = ProgressService(db).resolve_access(current_user.id)
    return {str(video_id): status for video_id, status in statuses.items()}


@router.get("/progress/videos", response_model=list[LearningPathEntryResponse])
async def get_learning_path(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> list[LearningPathEntryResponse]:
    """The learning path with status, watch progress and quiz state per video."""
    entries = ProgressService(db).get_learning_path(current_user.id)

    return [
        LearningPathEntryResponse(
            video=video_response(entry.video, entry.position),
            status=entry.status,
            completion_percentage=entry.watch_time.completion_percentage if entry.watch_time else 0,
            total_watch_time_seconds=(
                entry.watch_time.total_watch_time_seconds if entry.watch_time else 0
            ),
            last_watched_position=entry.watch_time.last_watched_position if entry.watch_time else 0,
            quiz_offerable=entry.quiz_offerable,
            quiz_passed=entry.quiz_passed,
        )
        for entry in entries
    ]


@router.get("/progress/videos/{video_id}/access", response_model=VideoAccessResponse)
async def get_video_access(
    video_id: UUID,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> VideoAccessResponse:
    status = ProgressService(db).get_video_access(current_user.id, video_id)
    return VideoAccessResponse(video_id=video_id, status=status, has_access=has_access(status))


@router.get("/progress/videos/{video_id}/stats", response_model=VideoWatchStatsResponse)
async def get_video_watch_stats(
    video_id: UUID,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> VideoWatchStatsResponse:
    """Watch statistics for one video; 404 until the learner has watched it."""
    entry = ProgressService(db).get_video_watch_stats(current_user.id, video_id)
    return VideoWatchStatsResponse.model_validate(entry)


@router.get("/progress/next-video", response_model=NextVideoResponse)
async def get_next_video(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> NextVideoResponse:
    """The single unlocked video, if any."""
    service = ProgressService(db)
    video = service.get_next_video(current_user.id)
    if video is None:
        return NextVideoResponse(video=None, path_completed=True)

    catalog = service.catalog.list_published_videos()
    position = next(i for i, v in enumerate(catalog, start=1) if v.id == video.id)
    return NextVideoResponse(video=video_response(video, position), path_completed=False)


@router.get("/progress/stats", response_model=ProgressStatsResponse)
async def get_my_stats(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ProgressStatsResponse:
    stats = ProgressService(db).get_stats(current_user.id)
    return ProgressStatsResponse.model_validate(stats)


@router.get("/progress/quiz-history", response_model=list[QuizAttemptResponse])
async def get_quiz_history(
    quiz_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> list[QuizAttemptResponse]:
    """All quiz attempts, oldest first, optionally for one quiz."""
    attempts = ProgressService(db).get_quiz_history(current_user.id, quiz_id)
    return [QuizAttemptResponse.model_validate(a) for a in attempts]


@router.post("/progress/watch-sessions", response_model=WatchTimeResponse)
@limiter.limit(settings.WATCH_SESSION_RATE_LIMIT)
async def record_watch_session(
    request: Request,
    payload: WatchSessionRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchTimeResponse:
    """Fold one playback interval into the learner's watch statistics."""
    update = ProgressService(db).record_watch_session(
        current_user.id,
        WatchSession(
            video_id=payload.video_id,
            start_position=payload.start_position,
            end_position=payload.end_position,
            observed_duration_seconds=payload.observed_duration_seconds,
        ),
    )
    return WatchTimeResponse.model_validate(update)
