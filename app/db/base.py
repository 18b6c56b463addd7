"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with Alembic for automatic migration generation. While the imports appear
unused, they are essential for the migration system to work properly.
"""

from app.catalog.models import Question, QuestionOption, Quiz, Video
from app.db.session import Base
from app.progress.models import CompletedVideo, QuizAttempt, UserProgress, VideoWatchTime

# Export all models for Alembic
__all__ = [
    "Base",
    "Video",
    "Quiz",
    "Question",
    "QuestionOption",
    "UserProgress",
    "CompletedVideo",
    "VideoWatchTime",
    "QuizAttempt",
]
