"""Write path of the learning engine plus the reads built on top of it.

Every write runs as one transaction per user. The progress row is read
``FOR UPDATE`` where the database supports it, and the ``version`` column
catches lost updates everywhere else. Writes always touch the progress row
itself so the version is bumped even when only child rows change.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.catalog.models import Quiz, Video
from app.catalog.services.catalog_service import CatalogService
from app.core.constants import INITIAL_POSITION
from app.core.datetime_utils import utcnow
from app.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    DataIntegrityError,
    MaxAttemptsExceededError,
    NotFoundError,
    RetakeNotAllowedError,
    ValidationError,
)
from app.progress.models import CompletedVideo, QuizAttempt, UserProgress, VideoWatchTime
from app.progress.services.access_resolver import (
    VideoAccessStatus,
    dense_rank,
    frontier,
    has_access,
    order_catalog,
    resolve_status,
)
from app.progress.services.quiz_evaluator import QuizResult, check_retake_policy, evaluate
from app.progress.services.watch_tracker import (
    WatchSession,
    WatchTimeUpdate,
    fold_session,
    is_quiz_offerable,
    to_update,
    validate_session,
)
from app.progress.utils import percentage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LearningPathEntry:
    video: Video
    position: int
    status: VideoAccessStatus
    watch_time: VideoWatchTime | None
    quiz_offerable: bool
    quiz_passed: bool


@dataclass(frozen=True)
class ProgressStats:
    current_position: int
    completed_videos: int
    total_videos: int
    completion_percentage: int
    total_watch_time_seconds: int
    quiz_attempts: int
    quizzes_passed: int
    average_quiz_percentage: int
    started_at: datetime | None
    last_activity_at: datetime | None
    completed_at: datetime | None


@dataclass(frozen=True)
class GlobalProgressStats:
    total_learners: int
    completed_learners: int
    in_progress_learners: int
    published_videos: int
    average_completion_percentage: int
    total_quiz_attempts: int
    quiz_pass_rate: int
    total_watch_time_seconds: int


@dataclass(frozen=True)
class IntegrityIssue:
    kind: str
    message: str
    user_id: UUID | None = None
    video_id: UUID | None = None


@dataclass
class IntegrityReport:
    checked_records: int = 0
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.issues

    def counts(self) -> dict[str, int]:
        return dict(Counter(issue.kind for issue in self.issues))


class ProgressService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)

    # ─────────────────────────────────────────────────────────────
    # Progress records
    # ─────────────────────────────────────────────────────────────

    def get_progress(self, user_id: UUID, *, for_update: bool = False) -> UserProgress | None:
        """Read the learner's record without creating one."""
        query = (
            self.db.query(UserProgress)
            .options(
                selectinload(UserProgress.completed_videos),
                selectinload(UserProgress.watch_times),
                selectinload(UserProgress.quiz_attempts),
            )
            .filter(UserProgress.user_id == user_id)
        )
        if for_update:
            # Ignored by SQLite; the version column covers it there
            query = query.with_for_update(of=UserProgress)
        return query.first()  # type: ignore[no-any-return]

    def get_or_create_progress(self, user_id: UUID) -> UserProgress:
        """Return the learner's record, inserting an empty one on first use.

        The insert runs in a SAVEPOINT. If a concurrent request created the
        record first, the unique constraint on ``user_id`` rejects ours and
        the winner's row is returned instead.
        """
        progress = self.get_progress(user_id, for_update=True)
        if progress:
            return progress

        try:
            with self.db.begin_nested():
                now = utcnow()
                progress = UserProgress(
                    user_id=user_id,
                    current_position=INITIAL_POSITION,
                    started_at=now,
                    last_activity_at=now,
                )
                self.db.add(progress)
        except IntegrityError:
            progress = self.get_progress(user_id, for_update=True)
            if progress is None:
                raise DataIntegrityError(
                    "Progress record could not be created",
                    details={"user_id": str(user_id)},
                ) from None
            return progress

        logger.info("progress_created", user_id=str(user_id))
        return progress

    def get_synced_progress(self, user_id: UUID) -> UserProgress | None:
        """Read the learner's record with ``completed_at`` matching the current catalog.

        Publishing a video reopens a finished path and unpublishing the last
        missing one closes it. A stale record is corrected on read.
        """
        progress = self.get_progress(user_id)
        if progress is not None:
            self._resync_completion(progress, self.catalog.list_published_videos())
        return progress

    def _resync_completion(self, progress: UserProgress, catalog: Iterable[Video]) -> None:
        if self._sync_completed_at(progress, {v.id for v in catalog}, utcnow()):
            self._commit(progress.user_id)
            logger.info(
                "completion_resynced",
                user_id=str(progress.user_id),
                completed=progress.completed_at is not None,
            )

    def _commit(self, user_id: UUID) -> None:
        try:
            self.db.commit()
        except (StaleDataError, IntegrityError) as exc:
            self.db.rollback()
            logger.warning("progress_update_conflict", user_id=str(user_id), error=str(exc))
            raise ConflictError(
                "Your progress was updated by another request. Please retry.",
                resource="progress",
            ) from exc

    # ─────────────────────────────────────────────────────────────
    # Watch sessions
    # ─────────────────────────────────────────────────────────────

    def record_watch_session(self, user_id: UUID, session: WatchSession) -> WatchTimeUpdate:
        validate_session(session)
        video = self.catalog.get_published_video(session.video_id)
        catalog = self.catalog.list_published_videos()

        progress = self.get_progress(user_id, for_update=True)
        statuses = resolve_status(catalog, progress.completed_video_ids if progress else ())
        if not has_access(statuses.get(video.id)):
            logger.info(
                "watch_session_rejected", user_id=str(user_id), video_id=str(video.id)
            )
            raise AccessDeniedError(str(video.id))

        if progress is None:
            progress = self.get_or_create_progress(user_id)

        entry = progress.watch_time_for(video.id)
        if entry is None:
            entry = VideoWatchTime(video_id=video.id)
            progress.watch_times.append(entry)

        now = utcnow()
        fold_session(entry, video, session, now)
        progress.last_activity_at = now
        self._sync_completed_at(progress, {v.id for v in catalog}, now)
        update = to_update(entry)

        self._commit(user_id)
        logger.info(
            "watch_session_recorded",
            user_id=str(user_id),
            video_id=str(video.id),
            completion_percentage=update.completion_percentage,
            quiz_offerable=update.quiz_offerable,
        )
        return update

    def get_video_watch_stats(self, user_id: UUID, video_id: UUID) -> VideoWatchTime:
        """Watch statistics for one published video. 404 until it has been watched."""
        video = self.catalog.get_published_video(video_id)
        progress = self.get_progress(user_id)
        entry = progress.watch_time_for(video.id) if progress else None
        if entry is None:
            raise NotFoundError("No watch data for this video", resource="watch_time")
        return entry

    # ─────────────────────────────────────────────────────────────
    # Quizzes
    # ─────────────────────────────────────────────────────────────

    def submit_quiz(
        self,
        user_id: UUID,
        quiz_id: UUID,
        answers: Mapping[str, Any],
        time_spent_seconds: int,
    ) -> tuple[QuizResult, UserProgress]:
        """Score a submission and apply it to the learner's progress.

        Every check runs before anything is written: a rejected submission
        leaves no attempt behind and creates no progress record.
        """
        if time_spent_seconds < 0:
            raise ValidationError(
                "time_spent_seconds must not be negative", field="time_spent_seconds"
            )

        quiz = self.catalog.get_quiz(quiz_id)
        if not quiz.is_active:
            raise ValidationError("This quiz is not currently active", field="quiz_id")

        catalog = self.catalog.list_published_videos()
        if quiz.video_id not in {v.id for v in catalog}:
            raise NotFoundError("Video not found", resource="video")

        progress = self.get_progress(user_id, for_update=True)
        statuses = resolve_status(catalog, progress.completed_video_ids if progress else ())
        if not has_access(statuses[quiz.video_id]):
            logger.info(
                "quiz_submission_rejected",
                user_id=str(user_id),
                quiz_id=str(quiz.id),
                reason="ACCESS_DENIED",
            )
            raise AccessDeniedError(str(quiz.video_id))

        try:
            check_retake_policy(quiz, progress.quiz_attempts if progress else [])
        except (RetakeNotAllowedError, MaxAttemptsExceededError) as exc:
            logger.info(
                "quiz_submission_rejected",
                user_id=str(user_id),
                quiz_id=str(quiz.id),
                reason=exc.error_code,
            )
            raise

        result = evaluate(quiz, answers, time_spent_seconds)
        logger.info(
            "quiz_evaluated",
            user_id=str(user_id),
            quiz_id=str(quiz.id),
            score=result.score,
            total_points=result.total_points,
            percentage=result.percentage,
            passed=result.passed,
            timed_out=result.timed_out,
        )

        if progress is None:
            progress = self.get_or_create_progress(user_id)
        self.apply_quiz_result(progress, quiz, result, catalog)

        self._commit(user_id)
        self.db.refresh(progress)
        return result, progress

    def apply_quiz_result(
        self,
        progress: UserProgress,
        quiz: Quiz,
        result: QuizResult,
        catalog: Iterable[Video],
    ) -> UserProgress:
        """Append the attempt and, on a pass, complete the video.

        Completing is a set insert and the position only moves forward, so
        passing the same quiz again only adds history.
        """
        ordered = order_catalog(catalog)
        now = utcnow()

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            video_id=quiz.video_id,
            attempt_number=len(progress.attempts_for(quiz.id)) + 1,
            answers=result.answers,
            question_results=[r.to_record() for r in result.question_results],
            score=result.score,
            total_points=result.total_points,
            percentage=result.percentage,
            passed=result.passed,
            timed_out=result.timed_out,
            time_spent_seconds=result.time_spent_seconds,
            started_at=now - timedelta(seconds=result.time_spent_seconds),
            completed_at=now,
        )
        progress.quiz_attempts.append(attempt)
        progress.last_activity_at = now

        if result.passed:
            rank = dense_rank(ordered, quiz.video_id)
            if rank is None:
                raise DataIntegrityError(
                    "Quiz gates a video outside the published catalog",
                    details={"quiz_id": str(quiz.id), "video_id": str(quiz.video_id)},
                )

            if quiz.video_id not in progress.completed_video_ids:
                progress.completed_videos.append(
                    CompletedVideo(video_id=quiz.video_id, completed_at=now)
                )
                logger.info(
                    "video_completed",
                    user_id=str(progress.user_id),
                    video_id=str(quiz.video_id),
                    position=rank,
                )
            progress.current_position = max(progress.current_position, rank + 1)

        self._sync_completed_at(progress, {v.id for v in ordered}, now)
        return progress

    @staticmethod
    def _sync_completed_at(
        progress: UserProgress, published_ids: set[UUID], now: datetime
    ) -> bool:
        """Set or clear ``completed_at`` against the published set. True if changed."""
        covered = bool(published_ids) and published_ids <= progress.completed_video_ids

        if covered and progress.completed_at is None:
            progress.completed_at = now
            logger.info("learning_path_completed", user_id=str(progress.user_id))
            return True
        if not covered and progress.completed_at is not None:
            progress.completed_at = None
            return True
        return False

    def get_quiz_history(self, user_id: UUID, quiz_id: UUID | None = None) -> list[QuizAttempt]:
        progress = self.get_progress(user_id)
        if not progress:
            return []
        attempts = progress.attempts_for(quiz_id) if quiz_id else list(progress.quiz_attempts)
        return sorted(attempts, key=lambda a: (a.completed_at, a.attempt_number))

    # ─────────────────────────────────────────────────────────────
    # Access
    # ─────────────────────────────────────────────────────────────

    def resolve_access(self, user_id: UUID) -> dict[UUID, VideoAccessStatus]:
        progress = self.get_progress(user_id)
        return resolve_status(
            self.catalog.list_published_videos(),
            progress.completed_video_ids if progress else (),
        )

    def get_video_access(self, user_id: UUID, video_id: UUID) -> VideoAccessStatus:
        video = self.catalog.get_published_video(video_id)
        return self.resolve_access(user_id)[video.id]

    def get_learning_path(self, user_id: UUID) -> list[LearningPathEntry]:
        """Catalog in order with status, watch data and quiz state per video."""
        catalog = self.catalog.list_published_videos()
        progress = self.get_progress(user_id)
        statuses = resolve_status(catalog, progress.completed_video_ids if progress else ())

        entries = []
        for position, video in enumerate(catalog, start=1):
            status = statuses[video.id]
            watch_time = progress.watch_time_for(video.id) if progress else None
            quiz_passed = bool(
                progress
                and video.quiz_id
                and any(a.passed for a in progress.attempts_for(video.quiz_id))
            )
            offerable = (
                video.quiz_id is not None
                and has_access(status)
                and watch_time is not None
                and is_quiz_offerable(watch_time.completion_percentage)
            )
            entries.append(
                LearningPathEntry(
                    video=video,
                    position=position,
                    status=status,
                    watch_time=watch_time,
                    quiz_offerable=offerable,
                    quiz_passed=quiz_passed,
                )
            )
        return entries

    def get_next_video(self, user_id: UUID) -> Video | None:
        """The frontier video, or None once every published video is completed."""
        catalog = self.catalog.list_published_videos()
        progress = self.get_progress(user_id)
        statuses = resolve_status(catalog, progress.completed_video_ids if progress else ())
        next_id = frontier(statuses)
        return next((v for v in catalog if v.id == next_id), None)

    # ─────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────

    def get_stats(self, user_id: UUID) -> ProgressStats:
        catalog = self.catalog.list_published_videos()
        published_ids = {v.id for v in catalog}
        progress = self.get_progress(user_id)

        if not progress:
            return ProgressStats(
                current_position=INITIAL_POSITION,
                completed_videos=0,
                total_videos=len(catalog),
                completion_percentage=0,
                total_watch_time_seconds=0,
                quiz_attempts=0,
                quizzes_passed=0,
                average_quiz_percentage=0,
                started_at=None,
                last_activity_at=None,
                completed_at=None,
            )

        self._resync_completion(progress, catalog)
        completed = len(progress.completed_video_ids & published_ids)
        attempts = progress.quiz_attempts
        return ProgressStats(
            current_position=progress.current_position,
            completed_videos=completed,
            total_videos=len(catalog),
            completion_percentage=percentage(completed, len(catalog)),
            total_watch_time_seconds=sum(w.total_watch_time_seconds for w in progress.watch_times),
            quiz_attempts=len(attempts),
            quizzes_passed=len({a.quiz_id for a in attempts if a.passed}),
            average_quiz_percentage=percentage(
                sum(a.percentage for a in attempts), len(attempts) * 100
            ),
            started_at=progress.started_at,
            last_activity_at=progress.last_activity_at,
            completed_at=progress.completed_at,
        )

    def list_progress(
        self, skip: int = 0, limit: int = 20, completed: bool | None = None
    ) -> tuple[list[UserProgress], int]:
        query = self.db.query(UserProgress)
        if completed is True:
            query = query.filter(UserProgress.completed_at.isnot(None))
        elif completed is False:
            query = query.filter(UserProgress.completed_at.is_(None))

        total = query.count()
        items = (
            query.options(selectinload(UserProgress.completed_videos))
            .order_by(UserProgress.last_activity_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def get_global_stats(self) -> GlobalProgressStats:
        published_ids = {v.id for v in self.catalog.list_published_videos()}

        total_learners = self.db.query(func.count(UserProgress.id)).scalar() or 0
        completed_learners = (
            self.db.query(func.count(UserProgress.id))
            .filter(UserProgress.completed_at.isnot(None))
            .scalar()
            or 0
        )
        total_attempts = self.db.query(func.count(QuizAttempt.id)).scalar() or 0
        passed_attempts = (
            self.db.query(func.count(QuizAttempt.id))
            .filter(QuizAttempt.passed == True)  # noqa: E712
            .scalar()
            or 0
        )
        total_watch_time = (
            self.db.query(func.coalesce(func.sum(VideoWatchTime.total_watch_time_seconds), 0))
            .scalar()
            or 0
        )

        completed_published = 0
        if published_ids:
            completed_published = (
                self.db.query(func.count(CompletedVideo.id))
                .filter(CompletedVideo.video_id.in_(published_ids))
                .scalar()
                or 0
            )

        return GlobalProgressStats(
            total_learners=total_learners,
            completed_learners=completed_learners,
            in_progress_learners=total_learners - completed_learners,
            published_videos=len(published_ids),
            average_completion_percentage=percentage(
                completed_published, total_learners * len(published_ids)
            ),
            total_quiz_attempts=total_attempts,
            quiz_pass_rate=percentage(passed_attempts, total_attempts),
            total_watch_time_seconds=int(total_watch_time),
        )

    # ─────────────────────────────────────────────────────────────
    # Administration
    # ─────────────────────────────────────────────────────────────

    def reset_progress(self, user_id: UUID) -> bool:
        """Return the learner's record to its initial empty state.

        Idempotent: resetting a learner without a record creates nothing.
        Returns whether a record existed.
        """
        progress = self.get_progress(user_id, for_update=True)
        if not progress:
            logger.info("progress_reset", user_id=str(user_id), existed=False)
            return False

        now = utcnow()
        progress.completed_videos.clear()
        progress.watch_times.clear()
        progress.quiz_attempts.clear()
        progress.current_position = INITIAL_POSITION
        progress.completed_at = None
        progress.started_at = now
        progress.last_activity_at = now

        self._commit(user_id)
        logger.info("progress_reset", user_id=str(user_id), existed=True)
        return True

    def recompute_completion_for_all(self) -> int:
        """Re-derive ``completed_at`` for every learner. Returns how many changed.

        Run after publishing or unpublishing videos: a new video reopens a
        finished path, removing the last missing one closes it.
        """
        published_ids = {v.id for v in self.catalog.list_published_videos()}
        now = utcnow()
        changed = 0

        records = (
            self.db.query(UserProgress)
            .options(selectinload(UserProgress.completed_videos))
            .all()
        )
        for progress in records:
            if self._sync_completed_at(progress, published_ids, now):
                changed += 1

        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            raise ConflictError(
                "Progress changed while completion was being recomputed. Please retry.",
                resource="progress",
            ) from exc

        logger.info("completion_recomputed", records=len(records), changed=changed)
        return changed

    def find_integrity_issues(self) -> IntegrityReport:
        """Report stored state that breaks the engine's invariants. Never patches."""
        report = IntegrityReport()

        published = (
            self.db.query(Video)
            .filter(Video.is_published == True)  # noqa: E712
            .order_by(Video.sort_order)
            .all()
        )
        order_counts = Counter(v.sort_order for v in published)
        for video in published:
            if order_counts[video.sort_order] > 1:
                report.issues.append(
                    IntegrityIssue(
                        kind="duplicate_published_order",
                        message=f"Published videos share order {video.sort_order}",
                        video_id=video.id,
                    )
                )

        # Ranks are only meaningful over a tie-free catalog
        ranks = (
            {v.id: i for i, v in enumerate(published, start=1)}
            if len(order_counts) == len(published)
            else {}
        )
        published_ids = {v.id for v in published}
        known_video_ids = {vid for (vid,) in self.db.query(Video.id).all()}
        known_quiz_ids = {qid for (qid,) in self.db.query(Quiz.id).all()}

        records = (
            self.db.query(UserProgress)
            .options(
                selectinload(UserProgress.completed_videos),
                selectinload(UserProgress.quiz_attempts),
            )
            .all()
        )
        report.checked_records = len(records)

        for progress in records:
            completed = progress.completed_video_ids
            for video_id in sorted(completed - known_video_ids, key=str):
                report.issues.append(
                    IntegrityIssue(
                        kind="dangling_completed_video",
                        message="Completed video does not exist",
                        user_id=progress.user_id,
                        video_id=video_id,
                    )
                )
            for video_id in sorted((completed & known_video_ids) - published_ids, key=str):
                report.issues.append(
                    IntegrityIssue(
                        kind="unpublished_completed_video",
                        message="Completed video is not in the published catalog",
                        user_id=progress.user_id,
                        video_id=video_id,
                    )
                )

            completed_ranks = [ranks[v] for v in completed if v in ranks]
            if completed_ranks and progress.current_position < max(completed_ranks):
                report.issues.append(
                    IntegrityIssue(
                        kind="position_behind_completed",
                        message=(
                            f"current_position {progress.current_position} is behind "
                            f"completed position {max(completed_ranks)}"
                        ),
                        user_id=progress.user_id,
                    )
                )

            covered = bool(published_ids) and published_ids <= completed
            if covered != (progress.completed_at is not None):
                report.issues.append(
                    IntegrityIssue(
                        kind="stale_completed_at",
                        message=(
                            "completed_at is unset although every published video is completed"
                            if covered
                            else "completed_at is set although published videos remain"
                        ),
                        user_id=progress.user_id,
                    )
                )

            for attempt in progress.quiz_attempts:
                if attempt.quiz_id not in known_quiz_ids:
                    report.issues.append(
                        IntegrityIssue(
                            kind="dangling_quiz_attempt",
                            message=f"Attempt {attempt.attempt_number} references a missing quiz",
                            user_id=progress.user_id,
                            video_id=attempt.video_id,
                        )
                    )

        if report.issues:
            logger.warning("integrity_issues_found", counts=report.counts())
        return report
