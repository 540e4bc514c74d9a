"""
Test store tests: creation rules, pass marks, editing and deletion.
"""
import pytest

from conftest import two_mcqs
from leave_portal.errors import ConflictError, NotFoundError, ValidationError
from leave_portal.models.leave import STATUS_PENDING, STATUS_TEST_ASSIGNED
from leave_portal.models.test import Test
from leave_portal.models.test_result import TestResult
from leave_portal.services import tests_store
from leave_portal.services.evaluation import submit_test


def test_create_assigns_leave_and_defaults_pass_marks(db_session, admin, pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Week 1 quiz",
                                   mcq_questions=two_mcqs())
    assert test.total_marks == 10
    assert test.pass_marks == 6
    assert test.duration == 3600
    assert pending_leave.status == STATUS_TEST_ASSIGNED
    assert pending_leave.reviewed_by_id == admin.id
    assert pending_leave.reviewed_at is not None


def test_create_with_coding_questions(db_session, admin, pending_leave):
    test = tests_store.create_test(
        db_session, admin, pending_leave.id, "Mixed quiz",
        mcq_questions=two_mcqs(marks=2),
        coding_questions=[{"question": "print(3 * 3)", "expected_output": " 9 ", "marks": 6}])
    assert test.total_marks == 10
    assert test.coding_list[0]["expected_output"] == "9"


def test_second_test_for_leave_conflicts(db_session, admin, pending_leave):
    tests_store.create_test(db_session, admin, pending_leave.id, "First", mcq_questions=two_mcqs())
    with pytest.raises(ConflictError):
        tests_store.create_test(db_session, admin, pending_leave.id, "Second",
                                mcq_questions=two_mcqs())


def test_create_for_missing_leave(db_session, admin):
    with pytest.raises(NotFoundError):
        tests_store.create_test(db_session, admin, "missing", "Quiz", mcq_questions=two_mcqs())


@pytest.mark.parametrize("questions", [
    [],
    [{"question": "No options", "options": ["only"], "correct_answer": 0}],
    [{"question": "Bad index", "options": ["a", "b"], "correct_answer": 2}],
    [{"question": "Zero marks", "options": ["a", "b"], "correct_answer": 0, "marks": 0}],
])
def test_create_rejects_bad_questions(db_session, admin, pending_leave, questions):
    with pytest.raises(ValidationError):
        tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                mcq_questions=questions)


def test_pass_marks_above_total_rejected(db_session, admin, pending_leave):
    with pytest.raises(ValidationError):
        tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                mcq_questions=two_mcqs(), pass_marks=11)


def test_update_questions_recomputes_totals(db_session, admin, pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                   mcq_questions=two_mcqs())
    test = tests_store.update_test(db_session, test.id, admin, mcq_questions=two_mcqs(marks=10))
    assert test.total_marks == 20
    assert test.pass_marks == 12

    test = tests_store.update_test(db_session, test.id, admin, pass_marks=15, is_active=False)
    assert test.pass_marks == 15
    assert test.is_active is False


def test_question_edit_keeps_explicit_pass_marks(db_session, admin, pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                   mcq_questions=two_mcqs(), pass_marks=9)
    edited = two_mcqs()
    edited[0]["question"] = "What is 2 + 2?"
    test = tests_store.update_test(db_session, test.id, admin, mcq_questions=edited)
    assert test.pass_marks == 9

    test = tests_store.update_test(db_session, test.id, admin, mcq_questions=two_mcqs(marks=10))
    assert test.total_marks == 20
    assert test.pass_marks == 9


def test_question_edit_rejects_kept_pass_marks_above_new_total(db_session, admin, pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                   mcq_questions=two_mcqs(), pass_marks=9)
    with pytest.raises(ValidationError):
        tests_store.update_test(db_session, test.id, admin, mcq_questions=two_mcqs(marks=4))


def test_concurrent_create_loses_on_unique_leave(db_session, admin, pending_leave, monkeypatch):
    tests_store.create_test(db_session, admin, pending_leave.id, "First", mcq_questions=two_mcqs())
    # the second creator read "no test yet" before the first one committed
    monkeypatch.setattr(tests_store, "find_test_for_leave", lambda db, leave_id: None)

    with pytest.raises(ConflictError):
        tests_store.create_test(db_session, admin, pending_leave.id, "Second",
                                mcq_questions=two_mcqs())
    assert db_session.query(Test).filter(Test.leave_id == pending_leave.id).count() == 1
    assert db_session.query(Test).one().title == "First"


def test_delete_reverts_waiting_leave_and_removes_results(db_session, admin, student,
                                                         pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                   mcq_questions=two_mcqs())
    submit_test(db_session, test.id, student, mcq_answers=[])
    assert db_session.query(TestResult).count() == 1

    tests_store.delete_test(db_session, test.id, admin)
    assert db_session.query(TestResult).count() == 0
    # the submission decided the leave, so it keeps its status
    assert pending_leave.status != STATUS_PENDING


def test_delete_before_submission_reverts_to_pending(db_session, admin, pending_leave):
    test = tests_store.create_test(db_session, admin, pending_leave.id, "Quiz",
                                   mcq_questions=two_mcqs())
    tests_store.delete_test(db_session, test.id, admin)
    assert pending_leave.status == STATUS_PENDING


# ── HTTP surface ─────────────────────────────────────────────


def test_api_create_test(client, admin_headers, pending_leave):
    resp = client.post("/api/tests", headers=admin_headers, json={
        "leave_id": pending_leave.id,
        "title": "Week 1 quiz",
        "mcq_questions": two_mcqs(),
    })
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["total_marks"] == 10
    assert data["pass_marks"] == 6
    assert data["leave"]["status"] == "test_assigned"


def test_api_duplicate_test_conflicts(client, admin_headers, pending_leave):
    payload = {"leave_id": pending_leave.id, "title": "Quiz", "mcq_questions": two_mcqs()}
    assert client.post("/api/tests", headers=admin_headers, json=payload).status_code == 201
    resp = client.post("/api/tests", headers=admin_headers, json=payload)
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


def test_api_student_view_hides_answer_key(client, db_session, admin, student_headers,
                                           admin_headers, pending_leave):
    test = tests_store.create_test(
        db_session, admin, pending_leave.id, "Quiz", mcq_questions=two_mcqs(),
        coding_questions=[{"question": "print(1)", "expected_output": "1", "marks": 1}])

    student_view = client.get(f"/api/tests/{test.id}", headers=student_headers).json()["data"]
    assert "correct_answer" not in student_view["mcq_questions"][0]
    assert "expected_output" not in student_view["coding_questions"][0]

    admin_view = client.get(f"/api/tests/{test.id}", headers=admin_headers).json()["data"]
    assert admin_view["mcq_questions"][0]["correct_answer"] == 1

    mine = client.get("/api/tests/my-tests", headers=student_headers).json()["data"]
    assert mine["count"] == 1
    assert "correct_answer" not in mine["tests"][0]["mcq_questions"][0]


def test_api_other_student_cannot_read_test(client, db_session, admin, other_headers,
                                            pending_leave):
    tests_store.create_test(db_session, admin, pending_leave.id, "Quiz", mcq_questions=two_mcqs())
    resp = client.get(f"/api/tests/leave/{pending_leave.id}", headers=other_headers)
    assert resp.status_code == 403


def test_api_student_cannot_create_test(client, student_headers, pending_leave):
    resp = client.post("/api/tests", headers=student_headers, json={
        "leave_id": pending_leave.id, "title": "Quiz", "mcq_questions": two_mcqs(),
    })
    assert resp.status_code == 403
