from typing import Any

from app.catalog.models import Question, QuestionType, Quiz


def correct_answer_for(question: Question) -> str | list[str]:
    """The submission that earns full points for ``question``."""
    if question.question_type == QuestionType.FREE_TEXT:
        return question.correct_answer or ""
    if question.question_type == QuestionType.MULTI_CHOICE:
        return sorted(question.correct_option_ids)
    return next(iter(question.correct_option_ids))


def wrong_answer_for(question: Question) -> str | list[str]:
    """A well-formed submission that earns nothing for ``question``."""
    if question.question_type == QuestionType.FREE_TEXT:
        return "definitely not the answer"
    wrong = [str(o.id) for o in question.options if not o.is_correct]
    if question.question_type == QuestionType.MULTI_CHOICE:
        return wrong[:1]
    return wrong[0]


def correct_answers(quiz: Quiz) -> dict[str, Any]:
    return {str(q.id): correct_answer_for(q) for q in quiz.questions}


def wrong_answers(quiz: Quiz) -> dict[str, Any]:
    return {str(q.id): wrong_answer_for(q) for q in quiz.questions}


def assert_error_response(data: dict[str, Any], code: str) -> None:
    assert data["success"] is False
    assert data["error"]["code"] == code
    assert data["error"]["message"]
