"""
Evaluation Service - turns a student's submission into a persisted result
and decides the leave.

Submission pipeline:
1. Load the test and its leave; only the leave's student may submit
2. Reject a second submission for the same (test, student)
3. Score MCQ and coding answers (services.scoring)
4. Persist the TestResult and move the leave to approved / rejected
   in the same transaction; approval deducts the leave balance once

The existence check in step 2 gives a friendly error; the unique
constraint on test_results(test_id, student_id) is what actually stops
two concurrent submissions from both being stored.
"""

import math
import time
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_portal.errors import (
    ConflictError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
)
from leave_portal.logging_config import get_logger, log_with_context
from leave_portal.models.leave import STATUS_APPROVED, STATUS_REJECTED, Leave
from leave_portal.models.test import Test
from leave_portal.models.test_result import TestResult
from leave_portal.models.user import User
from leave_portal.services.leaves import transition_status
from leave_portal.services.scoring import score_submission
from leave_portal.services.tests_store import load_test

logger = get_logger("evaluation")

PASS_REMARKS = "Leave approved based on successful test completion"
FAIL_REMARKS = "Leave rejected due to test failure. Please retake the test."
PASS_MESSAGE = "Congratulations! You passed the test. Your leave has been approved."
FAIL_MESSAGE = "Unfortunately, you did not pass the test. Your leave has been rejected."


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def apply_result_to_leave(db: Session, leave: Leave, passed: bool):
    """Automatic decision: approve on pass, reject on fail. Does not commit."""
    if passed:
        transition_status(db, leave, STATUS_APPROVED, remarks=PASS_REMARKS)
    else:
        transition_status(db, leave, STATUS_REJECTED, remarks=FAIL_REMARKS)


def apply_score_card(result: TestResult, card: dict):
    """Copy every scored field onto a result row."""
    result.mcq_answer_list = card["mcq_answers"]
    result.coding_answer_list = card["coding_answers"]
    result.mcq_score = card["mcq_score"]
    result.coding_score = card["coding_score"]
    result.total_score = card["total_score"]
    result.max_score = card["max_score"]
    result.pass_marks = card["pass_marks"]
    result.percentage = card["percentage"]
    result.passed = card["passed"]
    result.feedback = card["feedback"]


def find_submission(db: Session, test_id: str, student_id: str) -> Optional[TestResult]:
    return db.query(TestResult).filter(
        TestResult.test_id == test_id,
        TestResult.student_id == student_id
    ).first()


def submit_test(db: Session, test_id: str, student: User,
                mcq_answers: Optional[list] = None,
                coding_answers: Optional[list] = None,
                time_taken: int = 0,
                tab_switch_count: int = 0) -> tuple:
    """
    Score and store a submission, then decide the leave.

    Returns:
        (TestResult, user-facing message)
    """
    start_time = time.time()

    if time_taken is not None and time_taken < 0:
        raise ValidationError("Time taken cannot be negative")
    if tab_switch_count is not None and tab_switch_count < 0:
        raise ValidationError("Tab switch count cannot be negative")

    test = load_test(db, test_id)
    leave = test.leave
    if leave.student_id != student.id:
        raise ForbiddenError("Unauthorized: This test is not assigned to you")
    if not test.is_active:
        raise InvalidStateError("This test is no longer active")

    if find_submission(db, test.id, student.id):
        raise ConflictError("Test already submitted. Multiple submissions not allowed")

    card = score_submission(
        test.mcq_list, test.coding_list,
        mcq_answers or [], coding_answers or [],
        max_score=test.total_marks, pass_marks=test.pass_marks)

    result = TestResult(
        test_id=test.id,
        student_id=student.id,
        leave_id=leave.id,
        submitted_at=datetime.now(timezone.utc),
        time_taken=time_taken or 0,
        tab_switch_count=tab_switch_count or 0,
    )
    apply_score_card(result, card)

    try:
        db.add(result)
        apply_result_to_leave(db, leave, card["passed"])
        db.commit()
    except IntegrityError:
        db.rollback()
        log_with_context(logger, "WARNING", "Concurrent duplicate submission rejected",
                         context={"test_id": test.id, "student_id": student.id})
        raise ConflictError("Test already submitted. Multiple submissions not allowed")
    except Exception:
        db.rollback()
        raise
    db.refresh(result)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Submission scored: {}/{} ({}%) {}".format(
            result.total_score, result.max_score, result.percentage,
            "PASSED" if result.passed else "FAILED"),
        context={"result_id": result.id, "test_id": test.id,
                 "student_id": student.id, "leave_id": leave.id},
        extra_data={"duration_ms": round(duration_ms, 2),
                    "mcq_score": result.mcq_score, "coding_score": result.coding_score,
                    "tab_switch_count": result.tab_switch_count,
                    "leave_status": leave.status})

    return result, PASS_MESSAGE if result.passed else FAIL_MESSAGE


# ── Result queries ───────────────────────────────────────────


def get_result(db: Session, test_id: str, caller: User) -> TestResult:
    """A student sees their own result; an admin sees the test's result."""
    query = db.query(TestResult).filter(TestResult.test_id == test_id)
    if not caller.is_admin:
        query = query.filter(TestResult.student_id == caller.id)
    result = query.first()
    if not result:
        raise NotFoundError("Test result not found")
    return result


def list_my_results(db: Session, student: User) -> list:
    return (db.query(TestResult)
            .filter(TestResult.student_id == student.id)
            .order_by(TestResult.submitted_at.desc())
            .all())


def list_all_results(db: Session) -> list:
    return db.query(TestResult).order_by(TestResult.submitted_at.desc()).all()


def summarize_results(results: list) -> dict:
    total = len(results)
    passed = len([r for r in results if r.passed])
    average = _round_half_up(sum(r.percentage for r in results) / total) if total else 0
    return {
        "total_tests": total,
        "passed_tests": passed,
        "failed_tests": total - passed,
        "average_percentage": int(average),
    }


def results_by_student(db: Session, student_id: str) -> tuple:
    """Admin view of one student's results with aggregate statistics."""
    student = db.query(User).filter(User.id == student_id).first()
    if not student:
        raise NotFoundError("Student not found")
    results = list_my_results(db, student)
    return results, summarize_results(results)


def student_statistics(db: Session, student: User) -> dict:
    """Dashboard numbers for a student, including assigned-but-unsubmitted tests."""
    assigned = (db.query(Test)
                .join(Leave, Test.leave_id == Leave.id)
                .filter(Leave.student_id == student.id)
                .count())
    results = list_my_results(db, student)

    submitted = len(results)
    passed = len([r for r in results if r.passed])
    average = sum(r.percentage for r in results) / submitted if submitted else 0

    return {
        "assigned_tests": assigned,
        "submitted_tests": submitted,
        "pending_tests": max(assigned - submitted, 0),
        "passed_tests": passed,
        "failed_tests": submitted - passed,
        "average_score": _round_half_up(average, 2),
        "pass_rate": int(_round_half_up(passed / submitted * 100)) if submitted else 0,
        "completion_rate": int(_round_half_up(submitted / assigned * 100)) if assigned else 0,
    }
