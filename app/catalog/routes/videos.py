from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.schemas import AuthenticatedUser
from app.catalog.schemas import LearnerQuizResponse, VideoResponse, video_response
from app.catalog.services.catalog_service import CatalogService
from app.db.session import get_db

router = APIRouter()


@router.get("/videos", response_model=list[VideoResponse])
async def list_videos(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> list[VideoResponse]:
    """Published videos in learning-path order."""
    videos = CatalogService(db).list_published_videos()
    return [video_response(video, position) for position, video in enumerate(videos, start=1)]


@router.get("/videos/{video_id}/quiz", response_model=LearnerQuizResponse)
async def get_video_quiz(
    video_id: UUID,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> LearnerQuizResponse:
    """Quiz gating a video, without its answer key."""
    service = CatalogService(db)
    return service.to_learner_quiz(service.get_quiz_for_video(video_id))
