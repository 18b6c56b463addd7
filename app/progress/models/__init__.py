"""Progress models."""

from app.progress.models.progress import (
    CompletedVideo,
    QuizAttempt,
    UserProgress,
    VideoWatchTime,
)

__all__ = [
    "UserProgress",
    "CompletedVideo",
    "VideoWatchTime",
    "QuizAttempt",
]
