"""
Unit tests for the pure scoring functions.
"""
from leave_portal.services.scoring import (
    compute_percentage, evaluate_coding_answers, evaluate_mcq_answers,
    generate_feedback, score_submission,
)
from leave_portal.models.test import default_pass_marks

MCQS = [
    {"question": "q0", "options": ["a", "b", "c", "d"], "correct_answer": 2, "marks": 3},
    {"question": "q1", "options": ["a", "b", "c", "d"], "correct_answer": 0, "marks": 2},
]
CODING = [
    {"question": "print 5", "expected_output": "5", "marks": 4},
]


def test_mcq_correct_and_unattempted():
    evaluated, score = evaluate_mcq_answers(MCQS, [{"question_index": 0, "selected_answer": 2}])
    assert score == 3
    assert evaluated[0]["is_correct"] is True
    assert evaluated[0]["marks_awarded"] == 3
    assert evaluated[1]["selected_answer"] is None
    assert evaluated[1]["is_correct"] is False
    assert evaluated[1]["marks_awarded"] == 0


def test_mcq_numeric_string_selection_is_coerced():
    evaluated, score = evaluate_mcq_answers(MCQS, [{"question_index": "0", "selected_answer": "2"}])
    assert score == 3
    assert evaluated[0]["selected_answer"] == 2


def test_mcq_non_finite_selection_is_kept_as_text():
    submitted = [
        {"question_index": 0, "selected_answer": "Infinity"},
        {"question_index": 1, "selected_answer": "nan"},
    ]
    evaluated, score = evaluate_mcq_answers(MCQS, submitted)
    assert score == 0
    assert evaluated[0]["selected_answer"] == "Infinity"
    assert evaluated[1]["selected_answer"] == "nan"
    assert evaluated[0]["is_correct"] is False


def test_mcq_null_selection_scores_zero():
    evaluated, score = evaluate_mcq_answers(MCQS, [{"question_index": 1, "selected_answer": None}])
    assert score == 0
    assert evaluated[1]["is_correct"] is False


def test_mcq_first_matching_answer_wins():
    submitted = [
        {"question_index": 1, "selected_answer": 3},
        {"question_index": 1, "selected_answer": 0},
    ]
    _, score = evaluate_mcq_answers(MCQS, submitted)
    assert score == 0


def test_coding_output_is_trimmed_but_case_sensitive():
    _, score = evaluate_coding_answers(CODING, [{"question_index": 0, "submitted_output": "  5\n"}])
    assert score == 4

    questions = [{"question": "hello", "expected_output": "Hello", "marks": 2}]
    evaluated, score = evaluate_coding_answers(questions, [{"question_index": 0, "submitted_output": "hello"}])
    assert score == 0
    assert evaluated[0]["is_correct"] is False


def test_coding_unattempted_has_empty_output():
    evaluated, score = evaluate_coding_answers(CODING, [])
    assert score == 0
    assert evaluated[0]["submitted_output"] == ""


def test_percentage_with_zero_max_is_zero():
    assert compute_percentage(0, 0) == 0


def test_percentage_rounds_half_up():
    assert compute_percentage(1, 8) == 13      # 12.5
    assert compute_percentage(2, 3) == 67
    assert compute_percentage(1, 3) == 33


def test_pass_boundary_is_inclusive():
    card = score_submission(MCQS, [], [{"question_index": 0, "selected_answer": 2}], [],
                            max_score=5, pass_marks=3)
    assert card["total_score"] == 3
    assert card["passed"] is True

    card = score_submission(MCQS, [], [{"question_index": 1, "selected_answer": 0}], [],
                            max_score=5, pass_marks=3)
    assert card["total_score"] == 2
    assert card["passed"] is False


def test_score_card_totals_add_up():
    card = score_submission(
        MCQS, CODING,
        [{"question_index": 0, "selected_answer": 2}, {"question_index": 1, "selected_answer": 0}],
        [{"question_index": 0, "submitted_output": "5"}],
        max_score=9, pass_marks=6)
    assert card["mcq_score"] == 5
    assert card["coding_score"] == 4
    assert card["total_score"] == card["mcq_score"] + card["coding_score"]
    assert card["percentage"] == 100
    assert card["pass_marks"] == 6


def test_feedback_tiers():
    assert generate_feedback(10, 10, True).startswith("Outstanding")
    assert generate_feedback(8, 10, True).startswith("Excellent")
    assert generate_feedback(6, 10, True).startswith("Good effort")
    assert "below the passing threshold" in generate_feedback(5, 10, False)
    assert "significant improvement" in generate_feedback(1, 10, False)


def test_default_pass_marks_rounds_up():
    assert default_pass_marks(10) == 6
    assert default_pass_marks(7) == 5
    assert default_pass_marks(0) == 0
