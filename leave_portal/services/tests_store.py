"""
Test Store Service - assessments attached 1:1 to leave requests.

Creating a test moves its leave to test_assigned. Any change to the
question sets recomputes total_marks; when no explicit pass mark is given
it defaults to 60% of the total, rounded up, and a defaulted pass mark
follows later total changes while an explicit one is kept. Pass marks
above the total (an uncompletable test) are rejected.
"""

from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_portal.config import DEFAULT_TEST_DURATION
from leave_portal.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from leave_portal.logging_config import get_logger, log_with_context
from leave_portal.models.leave import STATUS_PENDING, STATUS_TEST_ASSIGNED, Leave
from leave_portal.models.test import Test, default_pass_marks
from leave_portal.models.user import User
from leave_portal.services.leaves import load_leave, mark_reviewed

logger = get_logger("test")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_mcq_questions(questions: Optional[list]) -> list:
    """Validate MCQ dicts and return them in canonical form."""
    normalized = []
    for number, q in enumerate(questions or [], start=1):
        text = (q.get("question") or "").strip()
        if not text:
            raise ValidationError("MCQ question {} has no text".format(number))

        options = q.get("options") or []
        if not isinstance(options, list) or len(options) < 2:
            raise ValidationError("MCQ question {} needs at least 2 options".format(number))
        options = [str(o) for o in options]

        correct = q.get("correct_answer")
        if not _is_int(correct) or not 0 <= correct < len(options):
            raise ValidationError(
                "MCQ question {} has an invalid correct answer index".format(number))

        marks = q.get("marks", 1)
        if not _is_int(marks) or marks < 1:
            raise ValidationError("MCQ question {} marks must be at least 1".format(number))

        normalized.append({
            "question": text,
            "options": options,
            "correct_answer": correct,
            "marks": marks,
        })
    return normalized


def normalize_coding_questions(questions: Optional[list]) -> list:
    """Validate coding-output dicts and return them in canonical form."""
    normalized = []
    for number, q in enumerate(questions or [], start=1):
        text = (q.get("question") or "").strip()
        if not text:
            raise ValidationError("Coding question {} has no text".format(number))

        expected = q.get("expected_output")
        if expected is None or not str(expected).strip():
            raise ValidationError("Coding question {} needs an expected output".format(number))

        marks = q.get("marks", 1)
        if not _is_int(marks) or marks < 1:
            raise ValidationError("Coding question {} marks must be at least 1".format(number))

        normalized.append({
            "question": text,
            "expected_output": str(expected).strip(),
            "marks": marks,
        })
    return normalized


def _apply_pass_marks(test: Test, pass_marks: Optional[int]):
    if pass_marks is None or pass_marks == 0:
        test.pass_marks = default_pass_marks(test.total_marks)
        return
    if pass_marks < 0:
        raise ValidationError("Pass marks cannot be negative")
    if pass_marks > test.total_marks:
        raise ValidationError(
            "Pass marks ({}) cannot exceed total marks ({})".format(pass_marks, test.total_marks))
    test.pass_marks = pass_marks


def _ensure_readable(test: Test, caller: User):
    if not caller.is_admin and test.leave.student_id != caller.id:
        raise ForbiddenError("Not authorized to access this test")


def load_test(db: Session, test_id: str) -> Test:
    test = db.query(Test).filter(Test.id == test_id).first()
    if not test:
        raise NotFoundError("Test not found")
    return test


def find_test_for_leave(db: Session, leave_id: str) -> Optional[Test]:
    return db.query(Test).filter(Test.leave_id == leave_id).first()


def create_test(db: Session, admin: User, leave_id: str, title: str,
                description: Optional[str] = None,
                mcq_questions: Optional[list] = None,
                coding_questions: Optional[list] = None,
                pass_marks: Optional[int] = None,
                duration: Optional[int] = None) -> Test:
    """Create the test for a leave and move the leave to test_assigned."""
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    if not leave_id or not title or not title.strip():
        raise ValidationError("Please provide leave ID and test title")

    leave = load_leave(db, leave_id)
    if find_test_for_leave(db, leave_id):
        raise ConflictError("Test already exists for this leave request")

    mcqs = normalize_mcq_questions(mcq_questions)
    codings = normalize_coding_questions(coding_questions)
    if not mcqs and not codings:
        raise ValidationError("A test needs at least one question")
    if duration is not None and duration <= 0:
        raise ValidationError("Duration must be a positive number of seconds")

    test = Test(
        leave_id=leave.id,
        created_by_id=admin.id,
        title=title.strip(),
        description=(description or "").strip() or None,
        duration=duration or DEFAULT_TEST_DURATION,
        is_active=True,
    )
    test.mcq_list = mcqs
    test.coding_list = codings
    test.recompute_total_marks()
    _apply_pass_marks(test, pass_marks)

    leave.status = STATUS_TEST_ASSIGNED
    mark_reviewed(leave, admin)
    db.add(test)

    try:
        db.commit()
    except IntegrityError:
        # a concurrent create for the same leave won the unique constraint
        db.rollback()
        raise ConflictError("Test already exists for this leave request")
    db.refresh(test)

    log_with_context(logger, "INFO", "Test created: {}".format(test.title),
        context={"test_id": test.id, "leave_id": leave.id, "admin_id": admin.id},
        extra_data={"total_marks": test.total_marks, "pass_marks": test.pass_marks,
                    "mcq_count": len(mcqs), "coding_count": len(codings)})
    return test


def get_test(db: Session, test_id: str, caller: User) -> Test:
    test = load_test(db, test_id)
    _ensure_readable(test, caller)
    return test


def get_test_by_leave(db: Session, leave_id: str, caller: User) -> Test:
    test = find_test_for_leave(db, leave_id)
    if not test:
        raise NotFoundError("No test found for this leave request")
    _ensure_readable(test, caller)
    return test


def list_tests(db: Session) -> list:
    return db.query(Test).order_by(Test.created_at.desc()).all()


def list_my_tests(db: Session, student: User) -> list:
    return (db.query(Test)
            .join(Leave, Test.leave_id == Leave.id)
            .filter(Leave.student_id == student.id)
            .order_by(Test.created_at.desc())
            .all())


def update_test(db: Session, test_id: str, admin: User,
                title: Optional[str] = None,
                description: Optional[str] = None,
                mcq_questions: Optional[list] = None,
                coding_questions: Optional[list] = None,
                pass_marks: Optional[int] = None,
                duration: Optional[int] = None,
                is_active: Optional[bool] = None) -> Test:
    """
    Edit a test. Questions stay editable after submissions exist; stored
    results keep their snapshot until they are reevaluated.
    """
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    test = load_test(db, test_id)

    if title is not None:
        if not title.strip():
            raise ValidationError("Test title cannot be empty")
        test.title = title.strip()
    if description is not None:
        test.description = description.strip() or None
    if duration is not None:
        if duration <= 0:
            raise ValidationError("Duration must be a positive number of seconds")
        test.duration = duration
    if is_active is not None:
        test.is_active = is_active

    questions_changed = mcq_questions is not None or coding_questions is not None
    had_default_pass_marks = test.pass_marks == default_pass_marks(test.total_marks)
    if mcq_questions is not None:
        test.mcq_list = normalize_mcq_questions(mcq_questions)
    if coding_questions is not None:
        test.coding_list = normalize_coding_questions(coding_questions)
    if questions_changed:
        if not test.mcq_list and not test.coding_list:
            raise ValidationError("A test needs at least one question")
        test.recompute_total_marks()

    if pass_marks is not None:
        _apply_pass_marks(test, pass_marks)
    elif questions_changed:
        # an explicit pass mark survives question edits, a default one follows the total
        _apply_pass_marks(test, None if had_default_pass_marks else test.pass_marks)

    db.commit()
    db.refresh(test)
    log_with_context(logger, "INFO", "Test updated",
        context={"test_id": test.id, "admin_id": admin.id},
        extra_data={"questions_changed": questions_changed,
                    "total_marks": test.total_marks, "pass_marks": test.pass_marks})
    return test


def delete_test(db: Session, test_id: str, admin: User):
    """
    Delete a test together with its results. A leave still waiting on the
    test goes back to pending; decided leaves keep their status.
    """
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    test = load_test(db, test_id)
    leave = test.leave
    result_count = len(test.results)

    if leave is not None and leave.status == STATUS_TEST_ASSIGNED:
        leave.status = STATUS_PENDING
        mark_reviewed(leave, admin)

    db.delete(test)
    db.commit()
    log_with_context(logger, "INFO", "Test deleted",
        context={"test_id": test_id, "leave_id": leave.id if leave else None, "admin_id": admin.id},
        extra_data={"results_deleted": result_count})
