from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.schemas import AuthenticatedUser
from app.catalog.models import Quiz
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.progress.schemas import (
    QuestionResultResponse,
    QuizEvaluationResponse,
    QuizSubmissionRequest,
    snapshot_response,
)
from app.progress.services.progress_service import ProgressService
from app.progress.services.quiz_evaluator import QuestionResult

router = APIRouter()


def _question_result_response(quiz: Quiz, result: QuestionResult) -> QuestionResultResponse:
    response = QuestionResultResponse(**result.to_record())
    if not quiz.show_correct_answers:
        return response

    question = next(q for q in quiz.questions if str(q.id) == result.question_id)
    response.correct_option_ids = sorted(question.correct_option_ids) or None
    response.correct_answer = question.correct_answer
    response.explanation = question.explanation
    return response


@router.post("/quizzes/{quiz_id}/evaluate", response_model=QuizEvaluationResponse)
@limiter.limit(settings.QUIZ_SUBMISSION_RATE_LIMIT)
async def evaluate_quiz(
    request: Request,
    quiz_id: UUID,
    submission: QuizSubmissionRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> QuizEvaluationResponse:
    """Score a submission and, if it passes, complete the video it gates."""
    service = ProgressService(db)
    result, progress = service.submit_quiz(
        current_user.id,
        quiz_id,
        submission.answers,
        submission.time_spent_seconds,
    )
    quiz = service.catalog.get_quiz(quiz_id)

    return QuizEvaluationResponse(
        quiz_id=result.quiz_id,
        video_id=result.video_id,
        score=result.score,
        total_points=result.total_points,
        percentage=result.percentage,
        passed=result.passed,
        timed_out=result.timed_out,
        passing_score_percent=result.passing_score_percent,
        attempt_number=len(progress.attempts_for(quiz_id)),
        question_results=[_question_result_response(quiz, r) for r in result.question_results],
        progress=snapshot_response(current_user.id, progress),
    )
