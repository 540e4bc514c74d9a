"""
Test API routes - manual and automatic test creation, reading and editing.

Static paths (my-tests, subjects, question-count, leave/{id}) are declared
before /api/tests/{test_id} so they are not captured by it.
Students never receive correct_answer or expected_output.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from leave_portal.database import get_db
from leave_portal.models.test import Test
from leave_portal.models.user import ROLE_ADMIN, ROLE_STUDENT, User
from leave_portal.responses import isoformat, success_response
from leave_portal.security import get_current_user, require_role
from leave_portal.services import tests_store
from leave_portal.services.question_sources import (
    QuestionSource, get_question_source, validate_criteria_names
)
from leave_portal.services.test_generator import generate_test

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class MCQQuestion(BaseModel):
    question: str
    options: List[str]
    correct_answer: int
    marks: int = 1


class CodingQuestion(BaseModel):
    question: str
    expected_output: str
    marks: int = 1


class TestCreateRequest(BaseModel):
    """Schema for manual test creation."""
    leave_id: str
    title: str
    description: Optional[str] = None
    mcq_questions: List[MCQQuestion] = Field(default_factory=list)
    coding_questions: List[CodingQuestion] = Field(default_factory=list)
    pass_marks: Optional[int] = None
    duration: Optional[int] = None


class TestUpdateRequest(BaseModel):
    """Every field optional; omitted fields keep their value."""
    title: Optional[str] = None
    description: Optional[str] = None
    mcq_questions: Optional[List[MCQQuestion]] = None
    coding_questions: Optional[List[CodingQuestion]] = None
    pass_marks: Optional[int] = None
    duration: Optional[int] = None
    is_active: Optional[bool] = None


class AutoGenerateRequest(BaseModel):
    leave_id: str
    subject: str
    difficulty: str
    number_of_questions: int
    total_marks: int
    passing_percentage: float
    duration: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None


def _dump_questions(questions):
    if questions is None:
        return None
    return [q.model_dump() for q in questions]


def serialize_test(test: Test, include_answers: bool = True) -> dict:
    """Serialize a Test; the answer key is only included for admins."""
    mcqs = test.mcq_list
    codings = test.coding_list
    if not include_answers:
        mcqs = [{k: v for k, v in q.items() if k != "correct_answer"} for q in mcqs]
        codings = [{k: v for k, v in q.items() if k != "expected_output"} for q in codings]

    leave = test.leave
    return {
        "id": test.id,
        "leave_id": test.leave_id,
        "leave": {
            "id": leave.id,
            "student_id": leave.student_id,
            "student_name": leave.student.name if leave.student else None,
            "start_date": isoformat(leave.start_date),
            "end_date": isoformat(leave.end_date),
            "status": leave.status,
        } if leave else None,
        "created_by_id": test.created_by_id,
        "title": test.title,
        "description": test.description,
        "mcq_questions": mcqs,
        "coding_questions": codings,
        "total_marks": test.total_marks,
        "pass_marks": test.pass_marks,
        "duration": test.duration,
        "is_active": test.is_active,
        "created_at": isoformat(test.created_at),
        "updated_at": isoformat(test.updated_at),
    }


@router.post("/api/tests", status_code=201)
def create_test(
    body: TestCreateRequest,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """Create a manual test for a leave; the leave becomes test_assigned."""
    test = tests_store.create_test(
        db, user, body.leave_id, body.title,
        description=body.description,
        mcq_questions=_dump_questions(body.mcq_questions),
        coding_questions=_dump_questions(body.coding_questions),
        pass_marks=body.pass_marks,
        duration=body.duration)
    return success_response(serialize_test(test), "Test created successfully")


@router.post("/api/tests/auto-generate", status_code=201)
def auto_generate_test(
    body: AutoGenerateRequest,
    user: User = Depends(require_role([ROLE_ADMIN])),
    source: QuestionSource = Depends(get_question_source),
    db: Session = Depends(get_db)
):
    """Generate an MCQ test from the configured question source."""
    test = generate_test(
        db, user, source,
        leave_id=body.leave_id,
        subject=body.subject,
        difficulty=body.difficulty,
        number_of_questions=body.number_of_questions,
        total_marks=body.total_marks,
        passing_percentage=body.passing_percentage,
        duration=body.duration,
        title=body.title,
        description=body.description)
    return success_response(serialize_test(test), "Test generated successfully")


@router.get("/api/tests")
def list_tests(
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    tests = tests_store.list_tests(db)
    return success_response({
        "count": len(tests),
        "tests": [serialize_test(t) for t in tests],
    }, "Tests retrieved successfully")


@router.get("/api/tests/my-tests")
def my_tests(
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    tests = tests_store.list_my_tests(db, user)
    return success_response({
        "count": len(tests),
        "tests": [serialize_test(t, include_answers=False) for t in tests],
    }, "Tests retrieved successfully")


@router.get("/api/tests/subjects")
def available_subjects(
    user: User = Depends(require_role([ROLE_ADMIN])),
    source: QuestionSource = Depends(get_question_source)
):
    return success_response({"subjects": source.available_subjects()},
                            "Subjects retrieved successfully")


@router.get("/api/tests/question-count")
def question_count(
    subject: str = Query(..., description="Subject name"),
    difficulty: str = Query(..., description="Easy, Medium or Hard"),
    user: User = Depends(require_role([ROLE_ADMIN])),
    source: QuestionSource = Depends(get_question_source)
):
    """How many questions the source can supply for a subject and difficulty."""
    validate_criteria_names(subject, difficulty)
    return success_response({
        "subject": subject,
        "difficulty": difficulty,
        "count": source.question_count(subject, difficulty),
    }, "Question count retrieved successfully")


@router.get("/api/tests/leave/{leave_id}")
def get_test_by_leave(
    leave_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    test = tests_store.get_test_by_leave(db, leave_id, user)
    return success_response(serialize_test(test, include_answers=user.is_admin),
                            "Test retrieved successfully")


@router.get("/api/tests/{test_id}")
def get_test(
    test_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    test = tests_store.get_test(db, test_id, user)
    return success_response(serialize_test(test, include_answers=user.is_admin),
                            "Test retrieved successfully")


@router.put("/api/tests/{test_id}")
def update_test(
    test_id: str,
    body: TestUpdateRequest,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    test = tests_store.update_test(
        db, test_id, user,
        title=body.title,
        description=body.description,
        mcq_questions=_dump_questions(body.mcq_questions),
        coding_questions=_dump_questions(body.coding_questions),
        pass_marks=body.pass_marks,
        duration=body.duration,
        is_active=body.is_active)
    return success_response(serialize_test(test), "Test updated successfully")


@router.delete("/api/tests/{test_id}")
def delete_test(
    test_id: str,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """Delete a test and its results."""
    tests_store.delete_test(db, test_id, user)
    return success_response(None, "Test deleted successfully")
