"""
Remediation Service - second chances and admin overrides on a decided leave.

Per-leave flags, each moving forward only:

    reevaluation_used: False -> True
    retest:            none -> requested -> approved -> used

A disallowed step raises InvalidStateError before anything is changed.
Reevaluation rescoring always uses the test as it is now: if an admin
edited the questions after submission, the edited answer key wins.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session

from leave_portal.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from leave_portal.logging_config import get_logger, log_with_context
from leave_portal.models.leave import STATUS_APPROVED, STATUS_REJECTED, STATUS_TEST_ASSIGNED
from leave_portal.models.test_result import TestResult
from leave_portal.models.user import User
from leave_portal.services.evaluation import apply_result_to_leave, apply_score_card
from leave_portal.services.leaves import load_leave, mark_reviewed, transition_status, validate_remarks
from leave_portal.services.scoring import score_submission
from leave_portal.services.tests_store import load_test

logger = get_logger("remediation")

OVERRIDE_APPROVE_REMARKS = "Leave approved by administrator override"


def _result_for_test(db: Session, test_id: str, student: Optional[User] = None) -> TestResult:
    query = db.query(TestResult).filter(TestResult.test_id == test_id)
    if student is not None:
        query = query.filter(TestResult.student_id == student.id)
    result = query.first()
    if not result:
        if student is not None:
            raise NotFoundError("Test result not found for this student")
        raise NotFoundError("Test result not found")
    return result


def reevaluate(db: Session, test_id: str, caller: User) -> TestResult:
    """
    Rescore an existing result against the test's current answer key,
    once per leave, and re-run the leave decision with the new outcome.
    """
    test = load_test(db, test_id)
    result = _result_for_test(db, test.id)

    if not caller.is_admin and result.student_id != caller.id:
        raise ForbiddenError("You can only reevaluate your own test")

    leave = result.leave
    if leave.reevaluation_used:
        raise InvalidStateError("Reevaluation already used for this leave")

    previous_score = result.total_score
    card = score_submission(
        test.mcq_list, test.coding_list,
        result.mcq_answer_list, result.coding_answer_list,
        max_score=test.total_marks, pass_marks=test.pass_marks)

    apply_score_card(result, card)
    result.reevaluated_at = datetime.now(timezone.utc)
    leave.reevaluation_used = True
    apply_result_to_leave(db, leave, card["passed"])

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(result)

    log_with_context(logger, "INFO",
        "Result reevaluated: {} -> {}/{}".format(previous_score, result.total_score, result.max_score),
        context={"result_id": result.id, "test_id": test.id,
                 "leave_id": leave.id, "caller_id": caller.id},
        extra_data={"passed": result.passed, "leave_status": leave.status})
    return result


def request_retest(db: Session, test_id: str, student: User):
    """Student asks for one retake of a submitted test."""
    result = _result_for_test(db, test_id, student)
    leave = result.leave

    if leave.retest_used:
        raise InvalidStateError("Retest already used for this leave")
    if leave.retest_approved:
        raise InvalidStateError("Retest already approved")
    if leave.retest_requested:
        raise InvalidStateError("Retest request is already pending admin approval")

    leave.retest_requested = True
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO", "Retest requested",
                     context={"leave_id": leave.id, "test_id": test_id, "student_id": student.id})
    return leave


def approve_retest(db: Session, test_id: str, admin: User):
    """Admin grants the requested retake and reopens the test."""
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    result = _result_for_test(db, test_id)
    leave = result.leave

    if leave.retest_used:
        raise InvalidStateError("Retest already used for this leave")
    if leave.retest_approved:
        raise InvalidStateError("Retest already approved")
    if not leave.retest_requested:
        raise InvalidStateError("No retest request is pending for this leave")

    leave.retest_approved = True
    leave.retest_requested = False
    leave.status = STATUS_TEST_ASSIGNED
    mark_reviewed(leave, admin)
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO", "Retest approved",
                     context={"leave_id": leave.id, "test_id": test_id, "admin_id": admin.id})
    return leave


def delete_result(db: Session, result_id: str, caller: User):
    """
    Remove a result.

    A student may only delete their own result to use an approved retest;
    doing so consumes the grant. An admin may delete any result without
    touching the retest flags.
    """
    result = db.query(TestResult).filter(TestResult.id == result_id).first()
    if not result:
        raise NotFoundError("Test result not found")
    leave = result.leave

    if not caller.is_admin:
        if result.student_id != caller.id:
            raise ForbiddenError("You can only delete your own test result")
        if leave.retest_used:
            raise InvalidStateError("Retest already used for this leave")
        if not leave.retest_approved:
            raise InvalidStateError("Retest must be approved by admin before deleting result")

        leave.retest_used = True
        leave.retest_approved = False
        leave.retest_requested = False
        leave.status = STATUS_TEST_ASSIGNED

    db.delete(result)
    db.commit()

    log_with_context(logger, "INFO",
        "Result deleted ({})".format("admin cleanup" if caller.is_admin else "retest consumed"),
        context={"result_id": result_id, "leave_id": leave.id, "caller_id": caller.id})


def reject_with_remarks(db: Session, leave_id: str, admin: User, remarks: str):
    """Force-reject a leave whatever the test said (e.g. integrity violations)."""
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    remarks = validate_remarks(remarks)
    if not remarks:
        raise ValidationError("Please provide remarks for the rejection")

    leave = load_leave(db, leave_id)
    transition_status(db, leave, STATUS_REJECTED, reviewer=admin, remarks=remarks)
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO", "Leave rejected by override",
                     context={"leave_id": leave.id, "admin_id": admin.id})
    return leave


def approve_override(db: Session, leave_id: str, admin: User, remarks: Optional[str] = None):
    """Force-approve a leave whatever the test said; the stored result is untouched."""
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    remarks = validate_remarks(remarks) or OVERRIDE_APPROVE_REMARKS

    leave = load_leave(db, leave_id)
    transition_status(db, leave, STATUS_APPROVED, reviewer=admin, remarks=remarks)
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO", "Leave approved by override",
                     context={"leave_id": leave.id, "admin_id": admin.id})
    return leave
