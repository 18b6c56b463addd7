"""Score quiz submissions.

Everything here is a pure function of its arguments: the quiz definition,
the submitted answers and, for the retake policy, the learner's previous
attempts. Nothing touches the session.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from app.catalog.models import Question, QuestionType, Quiz
from app.core.constants import UNLIMITED_TIME
from app.core.exceptions import (
    DataIntegrityError,
    InvalidAnswerShapeError,
    MaxAttemptsExceededError,
    RetakeNotAllowedError,
)
from app.progress.models import QuizAttempt
from app.progress.utils import percentage

# A submitted answer: one option id, several option ids, or free text
Answer = str | list[str]


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    question_type: QuestionType
    is_correct: bool
    points_earned: int
    points_possible: int
    skipped: bool
    submitted: Answer | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question_type": self.question_type.value,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
            "points_possible": self.points_possible,
            "skipped": self.skipped,
            "submitted": self.submitted,
        }


@dataclass(frozen=True)
class QuizResult:
    quiz_id: UUID
    video_id: UUID
    score: int
    total_points: int
    percentage: int
    passed: bool
    timed_out: bool
    time_spent_seconds: int
    passing_score_percent: int
    question_results: list[QuestionResult] = field(default_factory=list)

    @property
    def answers(self) -> dict[str, Answer]:
        return {
            r.question_id: r.submitted for r in self.question_results if r.submitted is not None
        }


def validate_quiz_definition(quiz: Quiz) -> list[str]:
    """Return every problem that makes ``quiz`` unscoreable. Empty means valid."""
    errors: list[str] = []

    if not quiz.questions:
        errors.append("quiz has no questions")
    if not 1 <= quiz.passing_score_percent <= 100:
        errors.append("passing score must be between 1 and 100")

    for index, question in enumerate(quiz.questions, start=1):
        correct = question.correct_option_ids
        kind = question.question_type
        if question.points < 1:
            errors.append(f"question {index}: points must be at least 1")

        if kind == QuestionType.SINGLE_CHOICE and len(correct) != 1:
            errors.append(f"question {index}: single-choice needs exactly one correct option")
        elif kind == QuestionType.TRUE_FALSE:
            if len(question.options) != 2:
                errors.append(f"question {index}: true-false needs exactly two options")
            if len(correct) != 1:
                errors.append(f"question {index}: true-false needs exactly one correct option")
        elif kind == QuestionType.MULTI_CHOICE and not correct:
            errors.append(f"question {index}: multi-choice needs a correct option")
        elif kind == QuestionType.FREE_TEXT and not (question.correct_answer or "").strip():
            errors.append(f"question {index}: free-text needs a correct answer")

    return errors


def check_retake_policy(quiz: Quiz, previous_attempts: Sequence[QuizAttempt]) -> None:
    """Raise if the learner may not submit ``quiz`` again.

    Without retakes, a passed quiz is closed for good; failed attempts can be
    repeated until the learner passes. With retakes, ``max_attempts`` caps the
    number of non-passing attempts.
    """
    attempts = [a for a in previous_attempts if a.quiz_id == quiz.id]
    has_passed = any(a.passed for a in attempts)

    if not quiz.allow_retake:
        if has_passed:
            raise RetakeNotAllowedError(str(quiz.id))
        return

    failed = sum(1 for a in attempts if not a.passed)
    if failed >= quiz.max_attempts:
        raise MaxAttemptsExceededError(str(quiz.id), quiz.max_attempts)


def _option_id(question: Question, raw: str, expected: str) -> str:
    # Option ids compare in canonical form, so case and braces do not matter
    try:
        return str(UUID(raw))
    except ValueError:
        raise InvalidAnswerShapeError(str(question.id), expected) from None


def _check_single_choice(question: Question, answer: Any) -> tuple[Answer, bool]:
    if not isinstance(answer, str):
        raise InvalidAnswerShapeError(str(question.id), "a single option id")
    option_id = _option_id(question, answer, "a single option id")
    return option_id, question.correct_option_ids == {option_id}


def _check_multi_choice(question: Question, answer: Any) -> tuple[Answer, bool]:
    if not isinstance(answer, list) or not all(isinstance(a, str) for a in answer):
        raise InvalidAnswerShapeError(str(question.id), "a list of option ids")
    option_ids = [_option_id(question, a, "a list of option ids") for a in answer]
    # All or nothing: a subset or a superset both score zero
    return option_ids, question.correct_option_ids == set(option_ids)


def _check_free_text(question: Question, answer: Any) -> tuple[Answer, bool]:
    if not isinstance(answer, str):
        raise InvalidAnswerShapeError(str(question.id), "a text answer")
    expected = (question.correct_answer or "").strip().casefold()
    return answer, answer.strip().casefold() == expected


_CHECKERS: dict[QuestionType, Callable[[Question, Any], tuple[Answer, bool]]] = {
    QuestionType.SINGLE_CHOICE: _check_single_choice,
    QuestionType.TRUE_FALSE: _check_single_choice,
    QuestionType.MULTI_CHOICE: _check_multi_choice,
    QuestionType.FREE_TEXT: _check_free_text,
}


def score_question(question: Question, answer: Any) -> QuestionResult:
    """Score one question. ``None`` means the question was left unanswered."""
    question_id = str(question.id)

    if answer is None:
        return QuestionResult(
            question_id=question_id,
            question_type=question.question_type,
            is_correct=False,
            points_earned=0,
            points_possible=question.points,
            skipped=True,
        )

    checker = _CHECKERS.get(question.question_type)
    if checker is None:
        raise DataIntegrityError(
            "Unknown question type",
            details={"question_id": question_id, "type": str(question.question_type)},
        )
    submitted, is_correct = checker(question, answer)

    return QuestionResult(
        question_id=question_id,
        question_type=question.question_type,
        is_correct=is_correct,
        points_earned=question.points if is_correct else 0,
        points_possible=question.points,
        skipped=False,
        submitted=submitted,
    )


def evaluate(quiz: Quiz, answers: Mapping[str, Any], time_spent_seconds: int) -> QuizResult:
    """Score a submission against the quiz's answer key.

    Answer shapes are checked before anything is scored, so a malformed
    submission fails as a whole. Running over the time limit is reported via
    ``timed_out`` but never changes the score.
    """
    problems = validate_quiz_definition(quiz)
    if problems:
        raise DataIntegrityError(
            "Quiz definition cannot be scored",
            details={"quiz_id": str(quiz.id), "problems": problems},
        )

    results = [score_question(q, answers.get(str(q.id))) for q in quiz.questions]

    total_points = sum(r.points_possible for r in results)
    score = sum(r.points_earned for r in results)
    pct = percentage(score, total_points)

    return QuizResult(
        quiz_id=quiz.id,
        video_id=quiz.video_id,
        score=score,
        total_points=total_points,
        percentage=pct,
        passed=pct >= quiz.passing_score_percent,
        timed_out=(
            quiz.time_limit_seconds != UNLIMITED_TIME
            and time_spent_seconds > quiz.time_limit_seconds
        ),
        time_spent_seconds=time_spent_seconds,
        passing_score_percent=quiz.passing_score_percent,
        question_results=results,
    )
