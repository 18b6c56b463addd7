from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.catalog.models import QuestionType, Video
from app.core.datetime_utils import UTCDatetime


class VideoResponse(BaseModel):
    id: UUID
    title: str
    description: str | None
    duration_seconds: int
    sort_order: int
    position: int
    quiz_id: UUID | None
    published_at: UTCDatetime | None

    model_config = ConfigDict(from_attributes=True)


class LearnerOptionResponse(BaseModel):
    """Answer option without ``is_correct``."""

    id: UUID
    text: str

    model_config = ConfigDict(from_attributes=True)


class LearnerQuestionResponse(BaseModel):
    """Question without its answer key."""

    id: UUID
    text: str
    question_type: QuestionType
    points: int
    time_limit_seconds: int
    options: list[LearnerOptionResponse]

    model_config = ConfigDict(from_attributes=True)


class LearnerQuizResponse(BaseModel):
    id: UUID
    video_id: UUID
    title: str
    description: str | None
    passing_score_percent: int
    time_limit_seconds: int
    allow_retake: bool
    max_attempts: int
    total_points: int
    questions: list[LearnerQuestionResponse]

    model_config = ConfigDict(from_attributes=True)


def video_response(video: Video, position: int) -> VideoResponse:
    """Build a ``VideoResponse`` for a video at a 1-based path position."""
    return VideoResponse(
        id=video.id,
        title=video.title,
        description=video.description,
        duration_seconds=video.duration_seconds,
        sort_order=video.sort_order,
        position=position,
        quiz_id=video.quiz_id,
        published_at=video.published_at,
    )
