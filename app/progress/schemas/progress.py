from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.catalog.models import QuestionType
from app.catalog.schemas import VideoResponse
from app.core.constants import INITIAL_POSITION
from app.core.datetime_utils import UTCDatetime
from app.progress.models import UserProgress
from app.progress.services.access_resolver import VideoAccessStatus

# One option id, several option ids, or free text
AnswerValue = str | list[str]


class WatchSessionRequest(BaseModel):
    video_id: UUID
    start_position: int = Field(..., ge=0)
    end_position: int = Field(..., ge=0)
    observed_duration_seconds: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_interval(self) -> "WatchSessionRequest":
        if self.end_position < self.start_position:
            raise ValueError("end_position must not be before start_position")
        return self


class WatchTimeResponse(BaseModel):
    video_id: UUID
    total_watch_time_seconds: int
    last_watched_position: int
    completion_percentage: int
    session_count: int
    last_watched_at: UTCDatetime | None = None
    quiz_offerable: bool

    model_config = ConfigDict(from_attributes=True)


class QuizSubmissionRequest(BaseModel):
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    time_spent_seconds: int = Field(default=0, ge=0)


class QuestionResultResponse(BaseModel):
    question_id: str
    question_type: QuestionType
    is_correct: bool
    points_earned: int
    points_possible: int
    skipped: bool
    submitted: AnswerValue | None = None
    # Only filled when the quiz reveals its answers
    correct_option_ids: list[str] | None = None
    correct_answer: str | None = None
    explanation: str | None = None


class QuizAttemptResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    video_id: UUID
    attempt_number: int
    answers: dict[str, Any]
    score: int
    total_points: int
    percentage: int
    passed: bool
    timed_out: bool
    time_spent_seconds: int
    started_at: UTCDatetime
    completed_at: UTCDatetime

    model_config = ConfigDict(from_attributes=True)


class CompletedVideoResponse(BaseModel):
    video_id: UUID
    completed_at: UTCDatetime

    model_config = ConfigDict(from_attributes=True)


class VideoWatchTimeResponse(BaseModel):
    total_watch_time_seconds: int
    last_watched_position: int
    completion_percentage: int
    session_count: int
    last_watched_at: UTCDatetime | None = None

    model_config = ConfigDict(from_attributes=True)


class VideoWatchStatsResponse(VideoWatchTimeResponse):
    video_id: UUID


class ProgressSnapshotResponse(BaseModel):
    user_id: UUID
    current_position: int
    completed_videos: list[CompletedVideoResponse] = []
    video_watch_times: dict[str, VideoWatchTimeResponse] = {}
    quiz_attempts: list[QuizAttemptResponse] = []
    started_at: UTCDatetime | None = None
    last_activity_at: UTCDatetime | None = None
    completed_at: UTCDatetime | None = None


class QuizEvaluationResponse(BaseModel):
    quiz_id: UUID
    video_id: UUID
    score: int
    total_points: int
    percentage: int
    passed: bool
    timed_out: bool
    passing_score_percent: int
    attempt_number: int
    question_results: list[QuestionResultResponse]
    progress: ProgressSnapshotResponse


class VideoAccessResponse(BaseModel):
    video_id: UUID
    status: VideoAccessStatus
    has_access: bool


class LearningPathEntryResponse(BaseModel):
    video: VideoResponse
    status: VideoAccessStatus
    completion_percentage: int = 0
    total_watch_time_seconds: int = 0
    last_watched_position: int = 0
    quiz_offerable: bool = False
    quiz_passed: bool = False


class NextVideoResponse(BaseModel):
    video: VideoResponse | None = None
    path_completed: bool


class ProgressStatsResponse(BaseModel):
    current_position: int
    completed_videos: int
    total_videos: int
    completion_percentage: int
    total_watch_time_seconds: int
    quiz_attempts: int
    quizzes_passed: int
    average_quiz_percentage: int
    started_at: UTCDatetime | None = None
    last_activity_at: UTCDatetime | None = None
    completed_at: UTCDatetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProgressSummaryResponse(BaseModel):
    """One row of the admin listing."""

    user_id: UUID
    current_position: int
    completed_videos: int
    last_activity_at: UTCDatetime | None = None
    completed_at: UTCDatetime | None = None


class ProgressListResponse(BaseModel):
    total: int
    items: list[ProgressSummaryResponse]


class GlobalProgressStatsResponse(BaseModel):
    total_learners: int
    completed_learners: int
    in_progress_learners: int
    published_videos: int
    average_completion_percentage: int
    total_quiz_attempts: int
    quiz_pass_rate: int
    total_watch_time_seconds: int

    model_config = ConfigDict(from_attributes=True)


class IntegrityIssueResponse(BaseModel):
    kind: str
    message: str
    user_id: UUID | None = None
    video_id: UUID | None = None

    model_config = ConfigDict(from_attributes=True)


class IntegrityReportResponse(BaseModel):
    checked_records: int
    is_clean: bool
    counts: dict[str, int]
    issues: list[IntegrityIssueResponse]


class RecomputeCompletionResponse(BaseModel):
    changed: int


class ResetProgressResponse(BaseModel):
    user_id: UUID
    existed: bool


def snapshot_response(user_id: UUID, progress: UserProgress | None) -> ProgressSnapshotResponse:
    """Snapshot of a learner's record; an empty one if none exists yet."""
    if progress is None:
        return ProgressSnapshotResponse(user_id=user_id, current_position=INITIAL_POSITION)

    attempts = sorted(progress.quiz_attempts, key=lambda a: (a.completed_at, a.attempt_number))
    return ProgressSnapshotResponse(
        user_id=progress.user_id,
        current_position=progress.current_position,
        completed_videos=[
            CompletedVideoResponse.model_validate(c) for c in progress.completed_videos
        ],
        video_watch_times={
            str(w.video_id): VideoWatchTimeResponse.model_validate(w)
            for w in progress.watch_times
        },
        quiz_attempts=[QuizAttemptResponse.model_validate(a) for a in attempts],
        started_at=progress.started_at,
        last_activity_at=progress.last_activity_at,
        completed_at=progress.completed_at,
    )
