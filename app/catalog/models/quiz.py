import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE_PERCENT,
    UNLIMITED_TIME,
)
from app.core.datetime_utils import utcnow
from app.db.session import Base


class QuestionType(str, enum.Enum):
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    TRUE_FALSE = "true-false"
    FREE_TEXT = "free-text"


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), unique=True, index=True
    )
    title: Mapped[str] = mapped_column()
    description: Mapped[str | None] = mapped_column(default=None)
    passing_score_percent: Mapped[int] = mapped_column(default=DEFAULT_PASSING_SCORE_PERCENT)
    time_limit_seconds: Mapped[int] = mapped_column(default=UNLIMITED_TIME)
    allow_retake: Mapped[bool] = mapped_column(default=True)
    max_attempts: Mapped[int] = mapped_column(default=DEFAULT_MAX_ATTEMPTS)
    is_active: Mapped[bool] = mapped_column(default=True)
    is_randomized: Mapped[bool] = mapped_column(default=False)
    show_correct_answers: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    video = relationship("Video", back_populates="quiz")
    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.sort_order",
    )

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, title={self.title}, video_id={self.video_id})>"


class Question(Base):
    __tablename__ = "quiz_questions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), index=True
    )
    text: Mapped[str] = mapped_column()
    question_type: Mapped[QuestionType] = mapped_column(
        Enum(
            QuestionType,
            name="question_type",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=QuestionType.SINGLE_CHOICE,
    )
    points: Mapped[int] = mapped_column(default=1)
    # Advisory only; enforced by the client
    time_limit_seconds: Mapped[int] = mapped_column(default=30)
    correct_answer: Mapped[str | None] = mapped_column(default=None)
    explanation: Mapped[str | None] = mapped_column(default=None)
    sort_order: Mapped[int] = mapped_column(default=0)

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.sort_order",
    )

    @property
    def correct_option_ids(self) -> frozenset[str]:
        return frozenset(str(o.id) for o in self.options if o.is_correct)

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, type={self.question_type}, points={self.points})>"


class QuestionOption(Base):
    __tablename__ = "quiz_question_options"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    question_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quiz_questions.id", ondelete="CASCADE"), index=True
    )
    text: Mapped[str] = mapped_column()
    is_correct: Mapped[bool] = mapped_column(default=False)
    sort_order: Mapped[int] = mapped_column(default=0)

    question = relationship("Question", back_populates="options")

    def __repr__(self) -> str:
        return f"<QuestionOption(id={self.id}, is_correct={self.is_correct})>"
