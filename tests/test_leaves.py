"""
Leave store tests: validation, balance bookkeeping and the HTTP surface.
"""
from datetime import date, timedelta

import pytest

from leave_portal.errors import (
    ForbiddenError, InsufficientBalanceError, InvalidStateError, ValidationError
)
from leave_portal.models.leave import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from leave_portal.services import leaves as leave_service

TODAY = date(2026, 3, 2)


def test_single_day_leave_counts_one_day(db_session, student):
    leave = leave_service.apply_leave(db_session, student, TODAY, TODAY,
                                      "Medical appointment", today=TODAY)
    assert leave.total_days == 1


def test_five_day_span_is_inclusive(db_session, student):
    leave = leave_service.apply_leave(db_session, student, TODAY, TODAY + timedelta(days=4),
                                      "Sister's wedding in Kochi", today=TODAY)
    assert leave.total_days == 5


def test_apply_three_days_with_default_balance(db_session, student):
    leave = leave_service.apply_leave(db_session, student, TODAY, TODAY + timedelta(days=2),
                                      "Family function out of town", today=TODAY)
    assert leave.status == STATUS_PENDING
    assert leave.total_days == 3
    assert student.leave_balance == 20


@pytest.mark.parametrize("start, end, reason", [
    (TODAY - timedelta(days=1), TODAY, "Started yesterday already"),
    (TODAY + timedelta(days=3), TODAY + timedelta(days=1), "End before the start date"),
    (TODAY, TODAY, "too short"),
    (TODAY, TODAY, "x" * 501),
])
def test_apply_rejects_invalid_input(db_session, student, start, end, reason):
    with pytest.raises(ValidationError):
        leave_service.apply_leave(db_session, student, start, end, reason, today=TODAY)


def test_apply_rejects_unknown_leave_type(db_session, student):
    with pytest.raises(ValidationError):
        leave_service.apply_leave(db_session, student, TODAY, TODAY,
                                  "Attending a conference", leave_type="holiday", today=TODAY)


def test_apply_rejects_span_above_balance(db_session, student):
    student.leave_balance = 2
    db_session.commit()
    with pytest.raises(InsufficientBalanceError) as exc:
        leave_service.apply_leave(db_session, student, TODAY, TODAY + timedelta(days=2),
                                  "Family function out of town", today=TODAY)
    assert "2 days remaining" in exc.value.message


def test_approval_deducts_balance_once(db_session, student, admin, pending_leave):
    leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_APPROVED)
    assert student.leave_balance == 17
    assert pending_leave.balance_deducted is True

    leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_REJECTED)
    leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_APPROVED)
    assert student.leave_balance == 17


def test_manual_approval_beyond_balance_is_refused(db_session, student, admin, pending_leave):
    student.leave_balance = 1
    db_session.commit()
    with pytest.raises(InsufficientBalanceError) as exc:
        leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_APPROVED)
    assert "1 days remaining" in exc.value.message
    assert pending_leave.status == STATUS_PENDING
    assert pending_leave.balance_deducted is False
    assert student.leave_balance == 1


def test_automatic_deduction_larger_than_balance_clamps_to_zero(db_session, student, pending_leave):
    student.leave_balance = 1
    db_session.commit()
    assert leave_service.deduct_leave_balance(db_session, pending_leave) is True
    assert student.leave_balance == 0


def test_set_status_rejects_unknown_status(db_session, admin, pending_leave):
    with pytest.raises(ValidationError):
        leave_service.set_leave_status(db_session, pending_leave.id, admin, "cancelled")


def test_update_own_recomputes_days(db_session, student, pending_leave, tomorrow):
    leave = leave_service.update_own_leave(db_session, pending_leave.id, student,
                                           tomorrow, tomorrow, "Only one day needed now")
    assert leave.total_days == 1


def test_update_requires_owner_and_pending(db_session, student, other_student, admin,
                                           pending_leave, tomorrow):
    with pytest.raises(ForbiddenError):
        leave_service.update_own_leave(db_session, pending_leave.id, other_student,
                                       tomorrow, tomorrow, "Trying to edit someone else's")

    leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_REJECTED)
    with pytest.raises(InvalidStateError):
        leave_service.update_own_leave(db_session, pending_leave.id, student,
                                       tomorrow, tomorrow, "Editing a decided request")


def test_delete_only_pending(db_session, student, admin, pending_leave):
    leave_service.set_leave_status(db_session, pending_leave.id, admin, STATUS_APPROVED)
    with pytest.raises(InvalidStateError):
        leave_service.delete_leave(db_session, pending_leave.id, student)


def test_list_all_filters(db_session, student, admin, tomorrow):
    first = leave_service.apply_leave(db_session, student, tomorrow, tomorrow,
                                      "First request for leave")
    later = tomorrow + timedelta(days=10)
    leave_service.apply_leave(db_session, student, later, later, "Second request for leave")
    leave_service.set_leave_status(db_session, first.id, admin, STATUS_REJECTED)

    assert [l.id for l in leave_service.list_all_leaves(db_session, status=STATUS_REJECTED)] == [first.id]
    assert len(leave_service.list_all_leaves(db_session, start_date=later)) == 1
    assert len(leave_service.list_all_leaves(db_session, end_date=tomorrow)) == 1


# ── HTTP surface ─────────────────────────────────────────────


def test_api_apply_and_list(client, student_headers, tomorrow):
    resp = client.post("/api/leaves", headers=student_headers, json={
        "start_date": tomorrow.isoformat(),
        "end_date": (tomorrow + timedelta(days=2)).isoformat(),
        "reason": "Family function out of town",
        "leave_type": "personal",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "pending"
    assert body["data"]["total_days"] == 3

    resp = client.get("/api/leaves/my-leaves", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["count"] == 1
    assert resp.json()["data"]["leave_balance"] == 20


def test_api_requires_token(client):
    resp = client.get("/api/leaves/my-leaves")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "unauthenticated",
                           "message": "Not authorized, no token provided"}


def test_api_rejects_bad_token(client):
    resp = client.get("/api/leaves/my-leaves", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_api_admin_cannot_apply(client, admin_headers, tomorrow):
    resp = client.post("/api/leaves", headers=admin_headers, json={
        "start_date": tomorrow.isoformat(),
        "end_date": tomorrow.isoformat(),
        "reason": "Admins do not apply here",
    })
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_api_missing_fields_is_validation_error(client, student_headers):
    resp = client.post("/api/leaves", headers=student_headers, json={"reason": "No dates given"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_api_student_cannot_read_other_leave(client, other_headers, pending_leave):
    resp = client.get(f"/api/leaves/{pending_leave.id}", headers=other_headers)
    assert resp.status_code == 403


def test_api_unknown_leave_is_not_found(client, admin_headers):
    resp = client.get("/api/leaves/does-not-exist", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_api_admin_sets_status(client, admin_headers, pending_leave):
    resp = client.put(f"/api/leaves/{pending_leave.id}/status", headers=admin_headers,
                      json={"status": "approved", "admin_remarks": "Documents verified"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "approved"
    assert data["admin_remarks"] == "Documents verified"
    assert data["reviewed_by"]["email"] == "admin@college.edu"


def test_api_list_rejects_invalid_status_filter(client, admin_headers):
    resp = client.get("/api/leaves", headers=admin_headers, params={"status": "cancelled"})
    assert resp.status_code == 400


def test_api_delete_own_pending(client, student_headers, pending_leave):
    resp = client.delete(f"/api/leaves/{pending_leave.id}", headers=student_headers)
    assert resp.status_code == 200
    resp = client.get("/api/leaves/my-leaves", headers=student_headers)
    assert resp.json()["data"]["count"] == 0
