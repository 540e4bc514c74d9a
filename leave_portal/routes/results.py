"""
Result API routes - submission, result reads, statistics and remediation.

Provides endpoints for:
- Submitting a test (scores it and decides the leave)
- Reading results and per-student statistics
- Reevaluation and the retest request / approve / delete-result flow
"""

from typing import List, Optional, Union
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from leave_portal.database import get_db
from leave_portal.models.test_result import TestResult
from leave_portal.models.user import ROLE_ADMIN, ROLE_STUDENT, User
from leave_portal.responses import isoformat, success_response
from leave_portal.routes.leaves import serialize_leave, serialize_user
from leave_portal.security import get_current_user, require_role
from leave_portal.services import evaluation, remediation

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class MCQAnswer(BaseModel):
    question_index: int
    selected_answer: Optional[Union[int, str]] = None


class CodingAnswer(BaseModel):
    question_index: int
    submitted_output: Optional[str] = None


class SubmissionRequest(BaseModel):
    """Schema for a test submission."""
    mcq_answers: List[MCQAnswer] = Field(default_factory=list)
    coding_answers: List[CodingAnswer] = Field(default_factory=list)
    time_taken: int = 0
    tab_switch_count: int = 0


def serialize_result(result: TestResult) -> dict:
    """Serialize a TestResult ORM object to a dict for API response."""
    test = result.test
    leave = result.leave
    return {
        "id": result.id,
        "test_id": result.test_id,
        "test": {
            "id": test.id,
            "title": test.title,
            "total_marks": test.total_marks,
            "pass_marks": test.pass_marks,
        } if test else None,
        "student_id": result.student_id,
        "student": serialize_user(result.student),
        "leave_id": result.leave_id,
        "leave": {
            "id": leave.id,
            "start_date": isoformat(leave.start_date),
            "end_date": isoformat(leave.end_date),
            "status": leave.status,
            "retest_requested": leave.retest_requested,
            "retest_approved": leave.retest_approved,
            "retest_used": leave.retest_used,
            "reevaluation_used": leave.reevaluation_used,
        } if leave else None,
        "mcq_answers": result.mcq_answer_list,
        "coding_answers": result.coding_answer_list,
        "mcq_score": result.mcq_score,
        "coding_score": result.coding_score,
        "total_score": result.total_score,
        "max_score": result.max_score,
        "percentage": result.percentage,
        "passed": result.passed,
        "pass_marks": result.pass_marks,
        "feedback": result.feedback,
        "time_taken": result.time_taken,
        "tab_switch_count": result.tab_switch_count,
        "submitted_at": isoformat(result.submitted_at),
        "reevaluated_at": isoformat(result.reevaluated_at),
    }


@router.post("/api/tests/{test_id}/submit", status_code=201)
def submit_test(
    test_id: str,
    body: SubmissionRequest,
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    """Score a submission and approve or reject the leave in one step."""
    result, message = evaluation.submit_test(
        db, test_id, user,
        mcq_answers=[a.model_dump() for a in body.mcq_answers],
        coding_answers=[a.model_dump() for a in body.coding_answers],
        time_taken=body.time_taken,
        tab_switch_count=body.tab_switch_count)
    return success_response({
        "result": serialize_result(result),
        "leave_status": result.leave.status,
    }, message)


@router.get("/api/tests/{test_id}/result")
def get_result(
    test_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = evaluation.get_result(db, test_id, user)
    return success_response(serialize_result(result), "Test result retrieved successfully")


@router.post("/api/tests/{test_id}/reevaluate")
def reevaluate(
    test_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rescore once against the current answer key."""
    result = remediation.reevaluate(db, test_id, user)
    return success_response({
        "result": serialize_result(result),
        "leave_status": result.leave.status,
    }, "Test reevaluated successfully")


@router.post("/api/tests/{test_id}/retest/request")
def request_retest(
    test_id: str,
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    leave = remediation.request_retest(db, test_id, user)
    return success_response(serialize_leave(leave),
                            "Retest requested. Waiting for admin approval.")


@router.post("/api/tests/{test_id}/retest/approve")
def approve_retest(
    test_id: str,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    leave = remediation.approve_retest(db, test_id, user)
    return success_response(serialize_leave(leave),
                            "Retest approved. Student can now delete the result and retake the test.")


@router.get("/api/results/my-results")
def my_results(
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    results = evaluation.list_my_results(db, user)
    return success_response({
        "count": len(results),
        "results": [serialize_result(r) for r in results],
    }, "Test results retrieved successfully")


@router.get("/api/results/my-statistics")
def my_statistics(
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    return success_response(evaluation.student_statistics(db, user),
                            "Statistics retrieved successfully")


@router.get("/api/results")
def list_results(
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    results = evaluation.list_all_results(db)
    return success_response({
        "count": len(results),
        "results": [serialize_result(r) for r in results],
    }, "Test results retrieved successfully")


@router.get("/api/results/student/{student_id}")
def results_by_student(
    student_id: str,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """All results of one student with aggregate statistics."""
    results, stats = evaluation.results_by_student(db, student_id)
    return success_response({
        "results": [serialize_result(r) for r in results],
        "statistics": stats,
    }, "Student results retrieved successfully")


@router.delete("/api/results/{result_id}")
def delete_result(
    result_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Admins may delete any result. A student may delete their own result
    only after a retest was approved; this uses up the retest.
    """
    remediation.delete_result(db, result_id, user)
    message = ("Test result deleted successfully" if user.is_admin
               else "Test result deleted. You can now retake the test.")
    return success_response(None, message)
