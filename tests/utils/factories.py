"""Factories for catalog and progress objects.

Every object gets an explicit id and explicit column values, so the same
factories serve both pure unit tests (objects never flushed) and database
tests (pass ``db_session``).
"""

import uuid
from datetime import UTC, datetime

from faker import Faker
from sqlalchemy.orm import Session

from app.catalog.models import Question, QuestionOption, QuestionType, Quiz, Video
from app.core.constants import INITIAL_POSITION
from app.progress.models import QuizAttempt, UserProgress

fake = Faker()


def _options(texts_and_flags: list[tuple[str, bool]]) -> list[QuestionOption]:
    return [
        QuestionOption(id=uuid.uuid4(), text=text, is_correct=is_correct, sort_order=index)
        for index, (text, is_correct) in enumerate(texts_and_flags, start=1)
    ]


def single_choice_question(
    points: int = 1, option_count: int = 3, correct_index: int = 0, sort_order: int = 1
) -> Question:
    return Question(
        id=uuid.uuid4(),
        text=fake.sentence(),
        question_type=QuestionType.SINGLE_CHOICE,
        points=points,
        time_limit_seconds=30,
        correct_answer=None,
        explanation="Only one option is right.",
        sort_order=sort_order,
        options=_options(
            [(fake.word(), index == correct_index) for index in range(option_count)]
        ),
    )


def multi_choice_question(
    points: int = 1,
    option_count: int = 4,
    correct_indexes: tuple[int, ...] = (0, 1),
    sort_order: int = 1,
) -> Question:
    return Question(
        id=uuid.uuid4(),
        text=fake.sentence(),
        question_type=QuestionType.MULTI_CHOICE,
        points=points,
        time_limit_seconds=30,
        correct_answer=None,
        explanation=None,
        sort_order=sort_order,
        options=_options(
            [(fake.word(), index in correct_indexes) for index in range(option_count)]
        ),
    )


def true_false_question(points: int = 1, correct: bool = True, sort_order: int = 1) -> Question:
    return Question(
        id=uuid.uuid4(),
        text=fake.sentence(),
        question_type=QuestionType.TRUE_FALSE,
        points=points,
        time_limit_seconds=30,
        correct_answer=None,
        explanation=None,
        sort_order=sort_order,
        options=_options([("True", correct), ("False", not correct)]),
    )


def free_text_question(points: int = 1, answer: str = "Locked", sort_order: int = 1) -> Question:
    return Question(
        id=uuid.uuid4(),
        text=fake.sentence(),
        question_type=QuestionType.FREE_TEXT,
        points=points,
        time_limit_seconds=30,
        correct_answer=answer,
        explanation="The answer is case-insensitive.",
        sort_order=sort_order,
        options=[],
    )


def create_video(
    db_session: Session | None = None,
    sort_order: int = 1,
    duration_seconds: int = 600,
    is_published: bool = True,
    title: str | None = None,
) -> Video:
    now = datetime.now(UTC)
    video = Video(
        id=uuid.uuid4(),
        title=title or fake.sentence(nb_words=4),
        description=fake.paragraph(),
        duration_seconds=duration_seconds,
        sort_order=sort_order,
        is_published=is_published,
        published_at=now if is_published else None,
        created_at=now,
        updated_at=now,
    )
    if db_session is not None:
        db_session.add(video)
        db_session.flush()
    return video


def create_quiz(
    db_session: Session | None = None,
    video: Video | None = None,
    questions: list[Question] | None = None,
    passing_score_percent: int = 60,
    time_limit_seconds: int = 0,
    allow_retake: bool = True,
    max_attempts: int = 3,
    is_active: bool = True,
    is_randomized: bool = False,
    show_correct_answers: bool = True,
) -> Quiz:
    video = video or create_video(db_session)
    if questions is None:
        questions = [single_choice_question(points=1)]
    for index, question in enumerate(questions, start=1):
        question.sort_order = index

    now = datetime.now(UTC)
    quiz = Quiz(
        id=uuid.uuid4(),
        video_id=video.id,
        video=video,
        title=f"Quiz: {video.title}",
        description=None,
        passing_score_percent=passing_score_percent,
        time_limit_seconds=time_limit_seconds,
        allow_retake=allow_retake,
        max_attempts=max_attempts,
        is_active=is_active,
        is_randomized=is_randomized,
        show_correct_answers=show_correct_answers,
        created_at=now,
        updated_at=now,
        questions=questions,
    )
    if db_session is not None:
        db_session.add(quiz)
        db_session.flush()
    return quiz


def create_learning_path(
    db_session: Session | None = None,
    count: int = 3,
    duration_seconds: int = 600,
    **quiz_kwargs,
) -> list[Video]:
    """Published videos ordered 1..count, each gated by a one-question quiz."""
    videos = []
    for order in range(1, count + 1):
        video = create_video(db_session, sort_order=order, duration_seconds=duration_seconds)
        create_quiz(db_session, video=video, **quiz_kwargs)
        videos.append(video)
    if db_session is not None:
        db_session.commit()
    return videos


def create_progress(
    db_session: Session | None = None,
    user_id: uuid.UUID | None = None,
    current_position: int = INITIAL_POSITION,
) -> UserProgress:
    now = datetime.now(UTC)
    progress = UserProgress(
        id=uuid.uuid4(),
        user_id=user_id or uuid.uuid4(),
        current_position=current_position,
        started_at=now,
        last_activity_at=now,
        completed_at=None,
    )
    if db_session is not None:
        db_session.add(progress)
        db_session.commit()
    return progress


def make_attempt(quiz: Quiz, passed: bool, attempt_number: int = 1) -> QuizAttempt:
    """A recorded attempt, for feeding the retake policy."""
    return QuizAttempt(
        id=uuid.uuid4(),
        quiz_id=quiz.id,
        video_id=quiz.video_id,
        attempt_number=attempt_number,
        answers={},
        question_results=[],
        score=0,
        total_points=quiz.total_points,
        percentage=100 if passed else 0,
        passed=passed,
        timed_out=False,
        time_spent_seconds=0,
    )
