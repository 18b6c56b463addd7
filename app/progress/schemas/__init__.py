from app.progress.schemas.progress import (
    CompletedVideoResponse,
    GlobalProgressStatsResponse,
    IntegrityIssueResponse,
    IntegrityReportResponse,
    LearningPathEntryResponse,
    NextVideoResponse,
    ProgressListResponse,
    ProgressSnapshotResponse,
    ProgressStatsResponse,
    ProgressSummaryResponse,
    QuestionResultResponse,
    QuizAttemptResponse,
    QuizEvaluationResponse,
    QuizSubmissionRequest,
    RecomputeCompletionResponse,
    ResetProgressResponse,
    VideoAccessResponse,
    VideoWatchStatsResponse,
    VideoWatchTimeResponse,
    WatchSessionRequest,
    WatchTimeResponse,
    snapshot_response,
)

__all__ = [
    "CompletedVideoResponse",
    "GlobalProgressStatsResponse",
    "IntegrityIssueResponse",
    "IntegrityReportResponse",
    "LearningPathEntryResponse",
    "NextVideoResponse",
    "ProgressListResponse",
    "ProgressSnapshotResponse",
    "ProgressStatsResponse",
    "ProgressSummaryResponse",
    "QuestionResultResponse",
    "QuizAttemptResponse",
    "QuizEvaluationResponse",
    "QuizSubmissionRequest",
    "RecomputeCompletionResponse",
    "ResetProgressResponse",
    "VideoAccessResponse",
    "VideoWatchStatsResponse",
    "VideoWatchTimeResponse",
    "WatchSessionRequest",
    "WatchTimeResponse",
    "snapshot_response",
]
