"""
Leave API routes - applying for, reviewing and overriding leave requests.

Provides endpoints for:
- Students: apply, list own, edit / delete own pending requests
- Admins: list with filters, set status, force approve / reject
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from leave_portal.database import get_db
from leave_portal.models.leave import Leave
from leave_portal.models.user import ROLE_ADMIN, ROLE_STUDENT, User
from leave_portal.responses import isoformat, success_response
from leave_portal.security import get_current_user, require_role
from leave_portal.services import leaves as leave_service
from leave_portal.services import remediation

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class LeaveRequest(BaseModel):
    """Schema for applying for or editing a leave."""
    start_date: date
    end_date: date
    reason: str
    leave_type: Optional[str] = None


class LeaveStatusRequest(BaseModel):
    status: str
    admin_remarks: Optional[str] = None


class RemarksRequest(BaseModel):
    remarks: Optional[str] = None


def serialize_user(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "department": user.department,
    }


def serialize_leave(leave: Leave) -> dict:
    """Serialize a Leave ORM object to a dict for API response."""
    return {
        "id": leave.id,
        "student_id": leave.student_id,
        "student": serialize_user(leave.student),
        "start_date": isoformat(leave.start_date),
        "end_date": isoformat(leave.end_date),
        "reason": leave.reason,
        "leave_type": leave.leave_type,
        "status": leave.status,
        "total_days": leave.total_days,
        "admin_remarks": leave.admin_remarks,
        "reviewed_by": serialize_user(leave.reviewed_by),
        "reviewed_at": isoformat(leave.reviewed_at),
        "retest_requested": leave.retest_requested,
        "retest_approved": leave.retest_approved,
        "retest_used": leave.retest_used,
        "reevaluation_used": leave.reevaluation_used,
        "test_id": leave.test.id if leave.test else None,
        "created_at": isoformat(leave.created_at),
        "updated_at": isoformat(leave.updated_at),
    }


@router.post("/api/leaves", status_code=201)
def apply_leave(
    body: LeaveRequest,
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    """Student applies for leave; the request starts as pending."""
    leave = leave_service.apply_leave(
        db, user, body.start_date, body.end_date, body.reason, body.leave_type)
    return success_response(serialize_leave(leave), "Leave request submitted successfully")


@router.get("/api/leaves/my-leaves")
def my_leaves(
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    leaves = leave_service.list_my_leaves(db, user)
    return success_response({
        "count": len(leaves),
        "leave_balance": user.leave_balance,
        "leaves": [serialize_leave(l) for l in leaves],
    }, "Leave requests retrieved successfully")


@router.get("/api/leaves")
def list_leaves(
    status: Optional[str] = Query(None, description="Filter by status"),
    start_date: Optional[date] = Query(None, description="Leaves starting on or after"),
    end_date: Optional[date] = Query(None, description="Leaves ending on or before"),
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """Admin list of all leave requests with optional filters."""
    leaves = leave_service.list_all_leaves(db, status, start_date, end_date)
    return success_response({
        "count": len(leaves),
        "leaves": [serialize_leave(l) for l in leaves],
    }, "Leave requests retrieved successfully")


@router.get("/api/leaves/{leave_id}")
def get_leave(
    leave_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    leave = leave_service.get_leave(db, leave_id, user)
    return success_response(serialize_leave(leave), "Leave request retrieved successfully")


@router.put("/api/leaves/{leave_id}")
def update_leave(
    leave_id: str,
    body: LeaveRequest,
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    leave = leave_service.update_own_leave(
        db, leave_id, user, body.start_date, body.end_date, body.reason, body.leave_type)
    return success_response(serialize_leave(leave), "Leave request updated successfully")


@router.delete("/api/leaves/{leave_id}")
def delete_leave(
    leave_id: str,
    user: User = Depends(require_role([ROLE_STUDENT])),
    db: Session = Depends(get_db)
):
    leave_service.delete_leave(db, leave_id, user)
    return success_response(None, "Leave request deleted successfully")


@router.put("/api/leaves/{leave_id}/status")
def set_leave_status(
    leave_id: str,
    body: LeaveStatusRequest,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """Admin sets a leave's status; approval deducts the student's balance."""
    leave = leave_service.set_leave_status(db, leave_id, user, body.status, body.admin_remarks)
    return success_response(serialize_leave(leave), "Leave request {} successfully".format(leave.status))


@router.post("/api/leaves/{leave_id}/approve-override")
def approve_override(
    leave_id: str,
    body: Optional[RemarksRequest] = None,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    leave = remediation.approve_override(db, leave_id, user, body.remarks if body else None)
    return success_response(serialize_leave(leave), "Leave approved by admin override")


@router.post("/api/leaves/{leave_id}/reject")
def reject_leave(
    leave_id: str,
    body: RemarksRequest,
    user: User = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db)
):
    """Force-reject a leave with mandatory remarks."""
    leave = remediation.reject_with_remarks(db, leave_id, user, body.remarks)
    return success_response(serialize_leave(leave), "Leave rejected with remarks")
