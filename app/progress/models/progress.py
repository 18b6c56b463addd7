import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.constants import INITIAL_POSITION
from app.core.datetime_utils import utcnow
from app.db.session import Base
from app.db.types import JSONDocument


class UserProgress(Base):
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_progress_user"),
        Index("ix_user_progress_last_activity", "last_activity_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    # Identity comes from the auth service; there is no local users table
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    current_position: Mapped[int] = mapped_column(default=INITIAL_POSITION)
    started_at: Mapped[datetime] = mapped_column(default=utcnow)
    last_activity_at: Mapped[datetime] = mapped_column(default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(default=None)
    version: Mapped[int] = mapped_column(nullable=False)

    completed_videos = relationship(
        "CompletedVideo",
        back_populates="progress",
        cascade="all, delete-orphan",
        order_by="CompletedVideo.completed_at",
    )
    watch_times = relationship(
        "VideoWatchTime",
        back_populates="progress",
        cascade="all, delete-orphan",
    )
    quiz_attempts = relationship(
        "QuizAttempt",
        back_populates="progress",
        cascade="all, delete-orphan",
        order_by="QuizAttempt.completed_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def completed_video_ids(self) -> set[uuid.UUID]:
        return {c.video_id for c in self.completed_videos}

    def watch_time_for(self, video_id: uuid.UUID) -> "VideoWatchTime | None":
        return next((w for w in self.watch_times if w.video_id == video_id), None)

    def attempts_for(self, quiz_id: uuid.UUID) -> list["QuizAttempt"]:
        return [a for a in self.quiz_attempts if a.quiz_id == quiz_id]

    def __repr__(self) -> str:
        return f"<UserProgress(id={self.id}, user_id={self.user_id}, position={self.current_position})>"  # noqa: E501


class CompletedVideo(Base):
    __tablename__ = "completed_videos"
    __table_args__ = (
        UniqueConstraint("progress_id", "video_id", name="uq_completed_video_per_progress"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_progress.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    completed_at: Mapped[datetime] = mapped_column(default=utcnow)

    progress = relationship("UserProgress", back_populates="completed_videos")


class VideoWatchTime(Base):
    __tablename__ = "video_watch_times"
    __table_args__ = (
        UniqueConstraint("progress_id", "video_id", name="uq_watch_time_per_progress"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_progress.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    total_watch_time_seconds: Mapped[int] = mapped_column(default=0)
    last_watched_position: Mapped[int] = mapped_column(default=0)
    # Running maximum of reported end positions; drives completion_percentage
    max_observed_position: Mapped[int] = mapped_column(default=0)
    completion_percentage: Mapped[int] = mapped_column(default=0)
    session_count: Mapped[int] = mapped_column(default=0)
    last_watched_at: Mapped[datetime | None] = mapped_column(default=None)

    progress = relationship("UserProgress", back_populates="watch_times")

    def __repr__(self) -> str:
        return f"<VideoWatchTime(video_id={self.video_id}, completion={self.completion_percentage}%)>"  # noqa: E501


class QuizAttempt(Base):
    """One scored submission. Rows are only ever inserted."""

    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint(
            "progress_id", "quiz_id", "attempt_number", name="uq_quiz_attempt_number"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_progress.id", ondelete="CASCADE"), index=True
    )
    quiz_id: Mapped[uuid.UUID] = mapped_column(index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(index=True)
    attempt_number: Mapped[int] = mapped_column()
    answers: Mapped[dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    question_results: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, default=list)
    score: Mapped[int] = mapped_column(default=0)
    total_points: Mapped[int] = mapped_column(default=0)
    percentage: Mapped[int] = mapped_column(default=0)
    passed: Mapped[bool] = mapped_column(default=False)
    timed_out: Mapped[bool] = mapped_column(default=False)
    time_spent_seconds: Mapped[int] = mapped_column(default=0)
    started_at: Mapped[datetime] = mapped_column(default=utcnow)
    completed_at: Mapped[datetime] = mapped_column(default=utcnow)

    progress = relationship("UserProgress", back_populates="quiz_attempts")

    def __repr__(self) -> str:
        return f"<QuizAttempt(quiz_id={self.quiz_id}, attempt={self.attempt_number}, passed={self.passed})>"  # noqa: E501
