"""
Leave Service - application, review and bookkeeping of leave requests.

Implements the leave store operations:
1. apply / update own pending leave (date, reason and balance checks)
2. read access (owner or admin)
3. admin status changes with leave-balance deduction
4. deletion of own pending leaves

The balance helpers here are shared with the evaluation and remediation
services so that every path to "approved" deducts the same way, and at
most once per leave.
"""

from datetime import date, datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session

from leave_portal.config import REASON_MAX_LENGTH, REASON_MIN_LENGTH, REMARKS_MAX_LENGTH
from leave_portal.errors import (
    ForbiddenError, InsufficientBalanceError, InvalidStateError, NotFoundError, ValidationError
)
from leave_portal.logging_config import get_logger, log_with_context
from leave_portal.models.leave import (
    LEAVE_STATUSES, LEAVE_TYPES, STATUS_APPROVED, STATUS_PENDING, Leave, inclusive_days
)
from leave_portal.models.user import User

logger = get_logger("leave")


def _validate_leave_fields(start_date: date, end_date: date, reason: str,
                           leave_type: Optional[str], today: Optional[date]) -> str:
    """Check dates, reason and type; return the trimmed reason."""
    if not start_date or not end_date or reason is None:
        raise ValidationError("Please provide start date, end date, and reason")

    today = today or date.today()
    if start_date < today:
        raise ValidationError("Start date cannot be in the past")
    if end_date < start_date:
        raise ValidationError("End date must be after or equal to start date")

    reason = reason.strip()
    if len(reason) < REASON_MIN_LENGTH:
        raise ValidationError(
            "Reason must be at least {} characters long".format(REASON_MIN_LENGTH))
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError(
            "Reason cannot exceed {} characters".format(REASON_MAX_LENGTH))

    if leave_type is not None and leave_type not in LEAVE_TYPES:
        raise ValidationError(
            "Leave type must be one of: {}".format(", ".join(LEAVE_TYPES)))
    return reason


def validate_remarks(remarks: Optional[str]) -> Optional[str]:
    if remarks is None:
        return None
    remarks = remarks.strip()
    if len(remarks) > REMARKS_MAX_LENGTH:
        raise ValidationError(
            "Admin remarks cannot exceed {} characters".format(REMARKS_MAX_LENGTH))
    return remarks or None


def _check_balance(student: User, days: int):
    if student.leave_balance < days:
        raise InsufficientBalanceError(
            "Insufficient leave balance. You have {} days remaining.".format(student.leave_balance))


def load_leave(db: Session, leave_id: str) -> Leave:
    leave = db.query(Leave).filter(Leave.id == leave_id).first()
    if not leave:
        raise NotFoundError("Leave request not found")
    return leave


def mark_reviewed(leave: Leave, reviewer: Optional[User]):
    """Stamp reviewer and review time on a leave."""
    if reviewer is not None:
        leave.reviewed_by_id = reviewer.id
    leave.reviewed_at = datetime.now(timezone.utc)


def deduct_leave_balance(db: Session, leave: Leave) -> bool:
    """
    Take the leave's days off the student's balance, once per leave.

    Returns True when a deduction happened. Does not commit; callers commit
    together with the status change that triggered the deduction.
    """
    if leave.balance_deducted:
        log_with_context(logger, "DEBUG", "Balance already deducted for this leave",
                         context={"leave_id": leave.id})
        return False

    student = leave.student or db.query(User).filter(User.id == leave.student_id).first()
    new_balance = student.leave_balance - leave.total_days
    if new_balance < 0:
        log_with_context(logger, "WARNING",
            "Approval exceeds remaining balance; clamping to 0",
            context={"leave_id": leave.id, "student_id": student.id},
            extra_data={"balance": student.leave_balance, "total_days": leave.total_days})
        new_balance = 0

    student.leave_balance = new_balance
    leave.balance_deducted = True
    log_with_context(logger, "INFO",
        "Deducted {} days from leave balance".format(leave.total_days),
        context={"leave_id": leave.id, "student_id": student.id},
        extra_data={"balance": new_balance})
    return True


def transition_status(db: Session, leave: Leave, status: str,
                      reviewer: Optional[User] = None, remarks: Optional[str] = None):
    """Set a leave's status, stamp the review and deduct balance on approval."""
    leave.status = status
    if remarks:
        leave.admin_remarks = remarks
    mark_reviewed(leave, reviewer)
    if status == STATUS_APPROVED:
        deduct_leave_balance(db, leave)


# ── Leave store operations ───────────────────────────────────


def apply_leave(db: Session, student: User, start_date: date, end_date: date,
                reason: str, leave_type: Optional[str] = None,
                today: Optional[date] = None) -> Leave:
    """Create a pending leave request for a student."""
    reason = _validate_leave_fields(start_date, end_date, reason, leave_type, today)

    days = inclusive_days(start_date, end_date)
    _check_balance(student, days)

    leave = Leave(
        student_id=student.id,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        leave_type=leave_type or "personal",
        status=STATUS_PENDING,
        total_days=days,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO", "Leave applied for {} days".format(days),
                     context={"leave_id": leave.id, "student_id": student.id})
    return leave


def get_leave(db: Session, leave_id: str, caller: User) -> Leave:
    leave = load_leave(db, leave_id)
    if not caller.is_admin and leave.student_id != caller.id:
        raise ForbiddenError("Not authorized to access this leave request")
    return leave


def list_my_leaves(db: Session, student: User) -> list:
    return (db.query(Leave)
            .filter(Leave.student_id == student.id)
            .order_by(Leave.created_at.desc())
            .all())


def list_all_leaves(db: Session, status: Optional[str] = None,
                    start_date: Optional[date] = None,
                    end_date: Optional[date] = None) -> list:
    """List every leave, optionally filtered by status and date range."""
    query = db.query(Leave)
    if status:
        if status not in LEAVE_STATUSES:
            raise ValidationError(
                "Status must be one of: {}".format(", ".join(LEAVE_STATUSES)))
        query = query.filter(Leave.status == status)
    if start_date:
        query = query.filter(Leave.start_date >= start_date)
    if end_date:
        query = query.filter(Leave.end_date <= end_date)
    return query.order_by(Leave.created_at.desc()).all()


def update_own_leave(db: Session, leave_id: str, student: User,
                     start_date: date, end_date: date, reason: str,
                     leave_type: Optional[str] = None,
                     today: Optional[date] = None) -> Leave:
    """Edit a pending leave owned by the student."""
    leave = load_leave(db, leave_id)
    if leave.student_id != student.id:
        raise ForbiddenError("Not authorized to edit this leave request")
    if leave.status != STATUS_PENDING:
        raise InvalidStateError("Only pending leave requests can be edited")
    if leave.balance_deducted:
        raise InvalidStateError("Leave days have already been deducted for this request")

    reason = _validate_leave_fields(start_date, end_date, reason, leave_type, today)
    _check_balance(student, inclusive_days(start_date, end_date))

    leave.start_date = start_date
    leave.end_date = end_date
    leave.reason = reason
    if leave_type:
        leave.leave_type = leave_type
    leave.recompute_total_days()

    db.commit()
    db.refresh(leave)
    log_with_context(logger, "INFO", "Leave updated",
                     context={"leave_id": leave.id, "student_id": student.id},
                     extra_data={"total_days": leave.total_days})
    return leave


def set_leave_status(db: Session, leave_id: str, admin: User, status: str,
                     remarks: Optional[str] = None) -> Leave:
    """
    Admin review: set any valid status, deducting balance on approval.
    Approving more days than the student has left is refused.
    """
    if not admin.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    if not status:
        raise ValidationError("Please provide status")
    if status not in LEAVE_STATUSES:
        raise ValidationError(
            "Status must be one of: {}".format(", ".join(LEAVE_STATUSES)))
    remarks = validate_remarks(remarks)

    leave = load_leave(db, leave_id)
    if status == STATUS_APPROVED and not leave.balance_deducted:
        if leave.student.leave_balance < leave.total_days:
            raise InsufficientBalanceError(
                "Cannot approve {} days: the student has {} days remaining.".format(
                    leave.total_days, leave.student.leave_balance))
    previous = leave.status
    transition_status(db, leave, status, reviewer=admin, remarks=remarks)
    db.commit()
    db.refresh(leave)

    log_with_context(logger, "INFO",
        "Leave status changed: {} -> {}".format(previous, status),
        context={"leave_id": leave.id, "admin_id": admin.id})
    return leave


def delete_leave(db: Session, leave_id: str, student: User):
    """Delete a pending leave owned by the student."""
    leave = load_leave(db, leave_id)
    if leave.student_id != student.id:
        raise ForbiddenError("Not authorized to delete this leave request")
    if leave.status != STATUS_PENDING:
        raise InvalidStateError("Cannot delete leave request that is already processed")
    if leave.test is not None:
        raise InvalidStateError("Cannot delete a leave request that has a test assigned")

    db.delete(leave)
    db.commit()
    log_with_context(logger, "INFO", "Leave deleted",
                     context={"leave_id": leave_id, "student_id": student.id})
