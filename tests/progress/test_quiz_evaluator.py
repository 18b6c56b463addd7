"""
Unit tests for quiz scoring and the retake policy.

Everything here runs on transient objects; no database is involved.
"""

import uuid

import pytest

from app.catalog.models import QuestionType
from app.core.exceptions import (
    DataIntegrityError,
    InvalidAnswerShapeError,
    MaxAttemptsExceededError,
    RetakeNotAllowedError,
)
from app.progress.services import quiz_evaluator
from app.progress.services.quiz_evaluator import (
    check_retake_policy,
    evaluate,
    score_question,
    validate_quiz_definition,
)
from tests.utils.factories import (
    create_quiz,
    free_text_question,
    make_attempt,
    multi_choice_question,
    single_choice_question,
    true_false_question,
)
from tests.utils.helpers import correct_answer_for, correct_answers, wrong_answer_for


def _option_ids(question, *indexes):
    return [str(question.options[i].id) for i in indexes]


class TestScenarioA:
    def test_partial_multi_choice_scores_zero_but_quiz_passes(self):
        single = single_choice_question(points=3, option_count=4, correct_index=2)
        multi = multi_choice_question(points=2, option_count=4, correct_indexes=(0, 3))
        quiz = create_quiz(questions=[single, multi], passing_score_percent=60)

        result = evaluate(
            quiz,
            {
                str(single.id): str(single.options[2].id),
                str(multi.id): _option_ids(multi, 0),
            },
            time_spent_seconds=45,
        )

        assert result.score == 3
        assert result.total_points == 5
        assert result.percentage == 60
        assert result.passed is True
        assert [r.points_earned for r in result.question_results] == [3, 0]


class TestMultiChoice:
    @pytest.fixture
    def question(self):
        return multi_choice_question(points=4, option_count=5, correct_indexes=(1, 2, 4))

    def test_exact_set_scores_full_points(self, question):
        result = score_question(question, _option_ids(question, 4, 1, 2))
        assert result.is_correct is True
        assert result.points_earned == 4

    def test_proper_subset_scores_zero(self, question):
        result = score_question(question, _option_ids(question, 1, 2))
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_exact_set_plus_extra_option_scores_zero(self, question):
        result = score_question(question, _option_ids(question, 0, 1, 2, 4))
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_repeated_ids_count_once(self, question):
        result = score_question(question, _option_ids(question, 1, 1, 2, 4))
        assert result.is_correct is True

    def test_option_ids_compare_case_insensitively(self, question):
        upper = [i.upper() for i in _option_ids(question, 1, 2, 4)]
        result = score_question(question, upper)
        assert result.is_correct is True
        assert result.submitted == _option_ids(question, 1, 2, 4)

    def test_empty_selection_is_incorrect_not_skipped(self, question):
        result = score_question(question, [])
        assert result.is_correct is False
        assert result.skipped is False

    def test_single_id_instead_of_list_is_rejected(self, question):
        with pytest.raises(InvalidAnswerShapeError) as exc_info:
            score_question(question, str(question.options[1].id))
        assert exc_info.value.details["question_id"] == str(question.id)


class TestSingleChoiceAndTrueFalse:
    def test_single_choice_correct_and_wrong(self):
        question = single_choice_question(points=2)
        assert score_question(question, correct_answer_for(question)).points_earned == 2
        assert score_question(question, wrong_answer_for(question)).points_earned == 0

    def test_unknown_option_id_is_just_wrong(self):
        question = single_choice_question()
        result = score_question(question, str(uuid.uuid4()))
        assert result.is_correct is False

    def test_option_id_case_is_ignored(self):
        question = single_choice_question()
        upper = correct_answer_for(question).upper()

        result = score_question(question, upper)

        assert result.is_correct is True
        assert result.submitted == correct_answer_for(question)

    def test_malformed_option_id_is_rejected(self):
        question = single_choice_question()
        with pytest.raises(InvalidAnswerShapeError) as exc_info:
            score_question(question, "not-an-option")
        assert exc_info.value.details["question_id"] == str(question.id)

    def test_list_for_single_choice_is_rejected(self):
        question = single_choice_question()
        with pytest.raises(InvalidAnswerShapeError):
            score_question(question, [correct_answer_for(question)])

    def test_true_false(self):
        question = true_false_question(points=1, correct=False)
        false_option = str(question.options[1].id)
        true_option = str(question.options[0].id)
        assert score_question(question, false_option).is_correct is True
        assert score_question(question, true_option).is_correct is False
        assert question.question_type == QuestionType.TRUE_FALSE


class TestFreeText:
    def test_trimmed_case_insensitive_match(self):
        question = free_text_question(answer="Locked")
        assert score_question(question, "  lOCKED \n").is_correct is True

    def test_inner_text_must_match(self):
        question = free_text_question(answer="Locked")
        assert score_question(question, "unlocked").is_correct is False

    def test_list_for_free_text_is_rejected(self):
        question = free_text_question()
        with pytest.raises(InvalidAnswerShapeError):
            score_question(question, ["Locked"])


class TestMissingAnswers:
    def test_unanswered_question_scores_zero_without_error(self):
        first = single_choice_question(points=1)
        second = single_choice_question(points=1)
        quiz = create_quiz(questions=[first, second], passing_score_percent=50)

        result = evaluate(quiz, {str(first.id): correct_answer_for(first)}, 10)

        assert result.score == 1
        assert result.percentage == 50
        assert result.passed is True
        skipped = result.question_results[1]
        assert skipped.skipped is True
        assert skipped.is_correct is False

    def test_empty_submission_fails(self):
        quiz = create_quiz(questions=[single_choice_question()])
        result = evaluate(quiz, {}, 0)
        assert result.score == 0
        assert result.passed is False
        assert result.answers == {}

    def test_answers_for_unknown_questions_are_ignored(self):
        question = single_choice_question()
        quiz = create_quiz(questions=[question])
        answers = correct_answers(quiz) | {"some-other-question": "x"}
        result = evaluate(quiz, answers, 0)
        assert result.passed is True
        assert set(result.answers) == {str(question.id)}


class TestAggregate:
    def test_percentage_rounds_half_up(self):
        # 1 of 8 points = 12.5%
        winner = single_choice_question(points=1)
        loser = single_choice_question(points=7)
        quiz = create_quiz(questions=[winner, loser], passing_score_percent=13)

        result = evaluate(quiz, {str(winner.id): correct_answer_for(winner)}, 0)

        assert result.percentage == 13
        assert result.passed is True

    def test_two_of_three_rounds_to_67(self):
        questions = [single_choice_question() for _ in range(3)]
        quiz = create_quiz(questions=questions, passing_score_percent=70)
        answers = {str(q.id): correct_answer_for(q) for q in questions[:2]}

        result = evaluate(quiz, answers, 0)

        assert result.percentage == 67
        assert result.passed is False

    def test_pass_threshold_is_inclusive(self):
        questions = [single_choice_question() for _ in range(4)]
        quiz = create_quiz(questions=questions, passing_score_percent=75)
        answers = {str(q.id): correct_answer_for(q) for q in questions[:3]}
        assert evaluate(quiz, answers, 0).passed is True

    def test_every_question_type_in_one_quiz(self):
        quiz = create_quiz(
            questions=[
                single_choice_question(points=2),
                multi_choice_question(points=3),
                true_false_question(points=1),
                free_text_question(points=4, answer="frontier"),
            ],
            passing_score_percent=100,
        )
        result = evaluate(quiz, correct_answers(quiz), 0)
        assert result.score == result.total_points == 10
        assert result.passed is True


class TestTimeLimit:
    def test_overtime_is_flagged_but_scored_normally(self):
        quiz = create_quiz(questions=[single_choice_question()], time_limit_seconds=60)
        result = evaluate(quiz, correct_answers(quiz), time_spent_seconds=61)
        assert result.timed_out is True
        assert result.passed is True
        assert result.score == 1

    def test_within_limit_is_not_flagged(self):
        quiz = create_quiz(questions=[single_choice_question()], time_limit_seconds=60)
        assert evaluate(quiz, correct_answers(quiz), 60).timed_out is False

    def test_zero_limit_means_unlimited(self):
        quiz = create_quiz(questions=[single_choice_question()], time_limit_seconds=0)
        assert evaluate(quiz, correct_answers(quiz), 100_000).timed_out is False


class TestQuizDefinition:
    def test_valid_quiz_has_no_problems(self):
        quiz = create_quiz(
            questions=[
                single_choice_question(),
                multi_choice_question(),
                true_false_question(),
                free_text_question(),
            ]
        )
        assert validate_quiz_definition(quiz) == []

    def test_zero_question_quiz_cannot_be_evaluated(self):
        quiz = create_quiz(questions=[])
        assert "quiz has no questions" in validate_quiz_definition(quiz)
        with pytest.raises(DataIntegrityError):
            evaluate(quiz, {}, 0)

    def test_question_type_without_checker_is_a_data_error(self, monkeypatch):
        monkeypatch.delitem(quiz_evaluator._CHECKERS, QuestionType.FREE_TEXT)
        question = free_text_question()

        with pytest.raises(DataIntegrityError) as exc_info:
            score_question(question, "Locked")
        assert exc_info.value.details["question_id"] == str(question.id)

    def test_single_choice_with_two_correct_options_is_invalid(self):
        question = single_choice_question()
        question.options[1].is_correct = True
        quiz = create_quiz(questions=[question])
        problems = validate_quiz_definition(quiz)
        assert any("exactly one correct option" in p for p in problems)

    def test_true_false_needs_two_options(self):
        question = single_choice_question(option_count=3)
        question.question_type = QuestionType.TRUE_FALSE
        quiz = create_quiz(questions=[question])
        assert any("exactly two options" in p for p in validate_quiz_definition(quiz))

    def test_multi_choice_without_correct_option_is_invalid(self):
        question = multi_choice_question(correct_indexes=())
        quiz = create_quiz(questions=[question])
        assert any("multi-choice" in p for p in validate_quiz_definition(quiz))

    def test_free_text_without_answer_is_invalid(self):
        question = free_text_question(answer="   ")
        quiz = create_quiz(questions=[question])
        assert any("free-text" in p for p in validate_quiz_definition(quiz))

    def test_zero_points_is_invalid(self):
        question = single_choice_question(points=0)
        quiz = create_quiz(questions=[question])
        assert any("points" in p for p in validate_quiz_definition(quiz))


class TestRetakePolicy:
    def test_first_attempt_is_always_allowed(self):
        quiz = create_quiz(allow_retake=False)
        check_retake_policy(quiz, [])

    def test_no_retake_after_pass(self):
        quiz = create_quiz(allow_retake=False)
        with pytest.raises(RetakeNotAllowedError):
            check_retake_policy(quiz, [make_attempt(quiz, passed=True)])

    def test_no_retake_still_allows_trying_again_after_failing(self):
        quiz = create_quiz(allow_retake=False, max_attempts=1)
        attempts = [make_attempt(quiz, passed=False, attempt_number=n) for n in (1, 2, 3)]
        check_retake_policy(quiz, attempts)

    def test_max_attempts_counts_failed_attempts(self):
        quiz = create_quiz(allow_retake=True, max_attempts=2)
        attempts = [make_attempt(quiz, passed=False, attempt_number=n) for n in (1, 2)]
        with pytest.raises(MaxAttemptsExceededError) as exc_info:
            check_retake_policy(quiz, attempts)
        assert exc_info.value.details["max_attempts"] == 2

    def test_passing_attempt_is_not_counted(self):
        quiz = create_quiz(allow_retake=True, max_attempts=2)
        attempts = [
            make_attempt(quiz, passed=False, attempt_number=1),
            make_attempt(quiz, passed=True, attempt_number=2),
        ]
        check_retake_policy(quiz, attempts)

    def test_attempts_for_other_quizzes_are_ignored(self):
        quiz = create_quiz(allow_retake=False)
        other = create_quiz()
        check_retake_policy(quiz, [make_attempt(other, passed=True)])
