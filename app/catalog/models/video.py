import uuid
from datetime import datetime

from sqlalchemy import Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        # No two published videos may share a position in the learning path
        Index(
            "uq_videos_published_sort_order",
            "sort_order",
            unique=True,
            postgresql_where=text("is_published"),
            sqlite_where=text("is_published = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    title: Mapped[str] = mapped_column()
    description: Mapped[str | None] = mapped_column(default=None)
    duration_seconds: Mapped[int] = mapped_column(default=0)
    sort_order: Mapped[int] = mapped_column(index=True)
    is_published: Mapped[bool] = mapped_column(default=False, index=True)
    published_at: Mapped[datetime | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    quiz = relationship("Quiz", back_populates="video", uselist=False)

    @property
    def quiz_id(self) -> uuid.UUID | None:
        return self.quiz.id if self.quiz is not None else None

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, title={self.title}, sort_order={self.sort_order})>"
