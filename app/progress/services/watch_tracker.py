"""Fold reported playback intervals into per-video watch statistics.

The engine has no notion of "currently playing". Clients report intervals
(``start_position`` to ``end_position``) and each one is folded into the
learner's ``VideoWatchTime`` entry for that video.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from app.catalog.models import Video
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.progress.models import VideoWatchTime
from app.progress.utils import percentage


@dataclass(frozen=True)
class WatchSession:
    video_id: UUID
    start_position: int
    end_position: int
    observed_duration_seconds: int | None = None

    @property
    def span_seconds(self) -> int:
        """Wall-clock time to add to the running total."""
        if self.observed_duration_seconds is not None:
            return self.observed_duration_seconds
        return self.end_position - self.start_position


@dataclass(frozen=True)
class WatchTimeUpdate:
    video_id: UUID
    total_watch_time_seconds: int
    last_watched_position: int
    completion_percentage: int
    session_count: int
    last_watched_at: datetime | None
    quiz_offerable: bool


def validate_session(session: WatchSession) -> None:
    if session.start_position < 0:
        raise ValidationError("start_position must not be negative", field="start_position")
    if session.end_position < session.start_position:
        raise ValidationError(
            "end_position must not be before start_position", field="end_position"
        )
    if session.observed_duration_seconds is not None and session.observed_duration_seconds < 0:
        raise ValidationError(
            "observed_duration_seconds must not be negative", field="observed_duration_seconds"
        )


def completion_percentage(max_observed_position: int, duration_seconds: int) -> int:
    return percentage(max_observed_position, duration_seconds)


def is_quiz_offerable(completion: int, threshold: int | None = None) -> bool:
    if threshold is None:
        threshold = settings.QUIZ_OFFER_THRESHOLD_PERCENT
    return completion >= threshold


def fold_session(
    entry: VideoWatchTime, video: Video, session: WatchSession, now: datetime
) -> VideoWatchTime:
    """Apply one session to ``entry`` in place and return it.

    Out-of-order or repeated sessions never lower ``max_observed_position``
    or ``completion_percentage``. The total watch time is not capped.
    """
    validate_session(session)

    max_position = max(entry.max_observed_position or 0, session.end_position)
    completion = completion_percentage(max_position, video.duration_seconds)

    entry.max_observed_position = max_position
    entry.completion_percentage = max(entry.completion_percentage or 0, completion)
    entry.last_watched_position = session.end_position
    entry.total_watch_time_seconds = (entry.total_watch_time_seconds or 0) + session.span_seconds
    entry.session_count = (entry.session_count or 0) + 1
    entry.last_watched_at = now
    return entry


def to_update(entry: VideoWatchTime, threshold: int | None = None) -> WatchTimeUpdate:
    return WatchTimeUpdate(
        video_id=entry.video_id,
        total_watch_time_seconds=entry.total_watch_time_seconds,
        last_watched_position=entry.last_watched_position,
        completion_percentage=entry.completion_percentage,
        session_count=entry.session_count,
        last_watched_at=entry.last_watched_at,
        quiz_offerable=is_quiz_offerable(entry.completion_percentage, threshold),
    )
