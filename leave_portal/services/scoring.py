"""
Scoring Service - marks a submission against a test's answer key.

Scoring rules:
1. MCQ: for question i, take the first submitted answer whose
   question_index is i. The selection is compared numerically with the
   correct option (clients may send "2" instead of 2). Correct -> full
   marks, otherwise 0. No submitted answer -> selected_answer None, 0.
2. Coding: the submitted output and the expected output are both trimmed
   and compared for exact, case-sensitive equality. Nothing is executed.
3. total = mcq + coding; percentage = round(total / max * 100), rounding
   halves up, 0 when max is 0; passed <=> total >= pass_marks.

Everything here is pure: callers decide what to persist.
"""

import math
from typing import Optional


def _as_number(value) -> Optional[float]:
    """Numeric value of an option index, or None if it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # "inf" and "nan" parse as floats but are not option indexes
    return number if math.isfinite(number) else None


def _normalized_selection(value):
    number = _as_number(value)
    if number is None:
        return str(value) if isinstance(value, float) else value
    return int(number) if number.is_integer() else number


def _find_answer(submitted: list, index: int) -> Optional[dict]:
    for answer in submitted or []:
        if _as_number(answer.get("question_index")) == index:
            return answer
    return None


def evaluate_mcq_answers(questions: list, submitted: list) -> tuple:
    """
    Score every MCQ question.

    Returns:
        (evaluated_answers, mcq_score)
    """
    evaluated = []
    score = 0
    for index, question in enumerate(questions or []):
        marks = question.get("marks", 1)
        correct = question.get("correct_answer")
        answer = _find_answer(submitted, index)

        if answer is None:
            evaluated.append({
                "question_index": index,
                "selected_answer": None,
                "correct_answer": correct,
                "is_correct": False,
                "marks_awarded": 0,
            })
            continue

        selected = _as_number(answer.get("selected_answer"))
        is_correct = selected is not None and selected == _as_number(correct)
        awarded = marks if is_correct else 0
        score += awarded
        evaluated.append({
            "question_index": index,
            "selected_answer": _normalized_selection(answer.get("selected_answer")),
            "correct_answer": correct,
            "is_correct": is_correct,
            "marks_awarded": awarded,
        })
    return evaluated, score


def evaluate_coding_answers(questions: list, submitted: list) -> tuple:
    """
    Score every coding-output question by trimmed exact match.

    Returns:
        (evaluated_answers, coding_score)
    """
    evaluated = []
    score = 0
    for index, question in enumerate(questions or []):
        marks = question.get("marks", 1)
        expected = (question.get("expected_output") or "").strip()
        answer = _find_answer(submitted, index)

        if answer is None:
            evaluated.append({
                "question_index": index,
                "submitted_output": "",
                "expected_output": expected,
                "is_correct": False,
                "marks_awarded": 0,
            })
            continue

        output = answer.get("submitted_output")
        output = "" if output is None else str(output)
        is_correct = output.strip() == expected
        awarded = marks if is_correct else 0
        score += awarded
        evaluated.append({
            "question_index": index,
            "submitted_output": output,
            "expected_output": expected,
            "is_correct": is_correct,
            "marks_awarded": awarded,
        })
    return evaluated, score


def compute_percentage(total_score: int, max_score: int) -> int:
    if not max_score:
        return 0
    return int(math.floor(total_score / max_score * 100 + 0.5))


def generate_feedback(total_score: int, max_score: int, passed: bool) -> str:
    """Human-readable feedback for a scored submission."""
    percentage = compute_percentage(total_score, max_score)
    summary = "You scored {}/{} ({}%).".format(total_score, max_score, percentage)

    if passed:
        if percentage >= 90:
            return "Outstanding performance! {} Your leave request has been approved.".format(summary)
        if percentage >= 75:
            return "Excellent work! {} Your leave request has been approved.".format(summary)
        return "Good effort. {} Your leave request has been approved.".format(summary)

    if percentage >= 50:
        return ("{} Your performance was below the passing threshold. "
                "Please review the material and try again.".format(summary))
    return ("{} Your performance needs significant improvement. "
            "Please prepare better before resubmitting.".format(summary))


def score_submission(mcq_questions: list, coding_questions: list,
                     mcq_answers: list, coding_answers: list,
                     max_score: int, pass_marks: int) -> dict:
    """
    Run the full scoring algorithm and return every derived field of a
    test result: evaluated answers, scores, percentage, passed, feedback.
    """
    evaluated_mcq, mcq_score = evaluate_mcq_answers(mcq_questions, mcq_answers)
    evaluated_coding, coding_score = evaluate_coding_answers(coding_questions, coding_answers)

    total_score = mcq_score + coding_score
    passed = total_score >= pass_marks

    return {
        "mcq_answers": evaluated_mcq,
        "coding_answers": evaluated_coding,
        "mcq_score": mcq_score,
        "coding_score": coding_score,
        "total_score": total_score,
        "max_score": max_score,
        "pass_marks": pass_marks,
        "percentage": compute_percentage(total_score, max_score),
        "passed": passed,
        "feedback": generate_feedback(total_score, max_score, passed),
    }
