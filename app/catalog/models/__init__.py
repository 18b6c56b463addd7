"""Catalog models."""

from app.catalog.models.quiz import Question, QuestionOption, QuestionType, Quiz
from app.catalog.models.video import Video

__all__ = [
    "Video",
    "Quiz",
    "Question",
    "QuestionOption",
    "QuestionType",
]
