import random
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from app.catalog.models import Question, Quiz, Video
from app.catalog.schemas import (
    LearnerOptionResponse,
    LearnerQuestionResponse,
    LearnerQuizResponse,
)
from app.core.exceptions import NotFoundError
from app.core.repository import BaseRepository
from app.progress.services.access_resolver import order_catalog


class VideoRepository(BaseRepository[Video]):
    def __init__(self, db: Session):
        super().__init__(db, Video)

    def list_published(self) -> list[Video]:
        return (  # type: ignore[no-any-return]
            self.db.query(Video)
            .options(selectinload(Video.quiz))
            .filter(Video.is_published == True)  # noqa: E712
            .order_by(Video.sort_order)
            .all()
        )

    def get_published(self, video_id: UUID) -> Video | None:
        video = self.get_by_id(video_id)
        return video if video is not None and video.is_published else None


class QuizRepository(BaseRepository[Quiz]):
    def __init__(self, db: Session):
        super().__init__(db, Quiz)

    def get_with_questions(self, quiz_id: UUID) -> Quiz | None:
        return (  # type: ignore[no-any-return]
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions).selectinload(Question.options))
            .filter(Quiz.id == quiz_id)
            .first()
        )

    def get_for_video(self, video_id: UUID) -> Quiz | None:
        return (  # type: ignore[no-any-return]
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions).selectinload(Question.options))
            .filter(Quiz.video_id == video_id)
            .first()
        )


class CatalogService:
    """Read side of the catalog. The engine never writes videos or quizzes."""

    def __init__(self, db: Session):
        self.db = db
        self.videos = VideoRepository(db)
        self.quizzes = QuizRepository(db)

    def list_published_videos(self) -> list[Video]:
        """Published videos in path order. Raises on duplicate orders."""
        return order_catalog(self.videos.list_published())

    def get_published_video(self, video_id: UUID) -> Video:
        video = self.videos.get_published(video_id)
        if not video:
            raise NotFoundError("Video not found", resource="video")
        return video

    def get_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = self.quizzes.get_with_questions(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found", resource="quiz")
        return quiz

    def get_quiz_for_video(self, video_id: UUID) -> Quiz:
        self.get_published_video(video_id)
        quiz = self.quizzes.get_for_video(video_id)
        if not quiz:
            raise NotFoundError("This video has no quiz", resource="quiz")
        return quiz

    @staticmethod
    def to_learner_quiz(quiz: Quiz) -> LearnerQuizResponse:
        """Project a quiz for learners: no correct flags, no free-text answers."""
        questions = [
            LearnerQuestionResponse(
                id=q.id,
                text=q.text,
                question_type=q.question_type,
                points=q.points,
                time_limit_seconds=q.time_limit_seconds,
                options=[LearnerOptionResponse(id=o.id, text=o.text) for o in q.options],
            )
            for q in quiz.questions
        ]
        if quiz.is_randomized:
            random.shuffle(questions)

        return LearnerQuizResponse(
            id=quiz.id,
            video_id=quiz.video_id,
            title=quiz.title,
            description=quiz.description,
            passing_score_percent=quiz.passing_score_percent,
            time_limit_seconds=quiz.time_limit_seconds,
            allow_retake=quiz.allow_retake,
            max_attempts=quiz.max_attempts,
            total_points=quiz.total_points,
            questions=questions,
        )
