from app.catalog.schemas.catalog import (
    LearnerOptionResponse,
    LearnerQuestionResponse,
    LearnerQuizResponse,
    VideoResponse,
    video_response,
)

__all__ = [
    "LearnerOptionResponse",
    "LearnerQuestionResponse",
    "LearnerQuizResponse",
    "VideoResponse",
    "video_response",
]
